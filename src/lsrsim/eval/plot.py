from __future__ import annotations

import json
from collections import Counter
from pathlib import Path
from typing import Dict

MESSAGE_EVENTS = {"hello_sent", "lsp_sent", "lsp_forwarded"}


def messages_per_step(events_jsonl: str | Path) -> Dict[int, int]:
    counts: Counter = Counter()
    with Path(events_jsonl).open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            row = json.loads(line)
            if row.get("event") in MESSAGE_EVENTS:
                counts[int(row.get("step", 0))] += 1
    return dict(sorted(counts.items()))


def plot_messages(events_jsonl: str | Path, out_png: str | Path) -> Path:
    try:
        import matplotlib

        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
    except Exception as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for plotting") from exc

    counts = messages_per_step(events_jsonl)
    steps = list(counts)
    values = [counts[s] for s in steps]

    plt.figure(figsize=(10, 4))
    plt.bar(steps, values)
    plt.xlabel("Step")
    plt.ylabel("Messages sent")
    plt.tight_layout()
    out = Path(out_png)
    out.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(out, dpi=150)
    plt.close()
    return out
