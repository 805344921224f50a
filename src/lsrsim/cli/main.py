from __future__ import annotations

import argparse
import json
import logging
from typing import List, Optional

from lsrsim.engine.flood_trace import flood
from lsrsim.runtime.config import load_effective_config, validate_config
from lsrsim.runtime.runner import run_scenario
from lsrsim.utils.io import load_yaml


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lsrsim", description="Link-state routing simulator CLI")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_run = sub.add_parser("run", help="Run a scenario")
    p_run.add_argument("--config", required=True)
    p_run.add_argument("--output-dir", default=None)

    p_validate = sub.add_parser("validate", help="Validate a scenario file")
    p_validate.add_argument("--config", required=True)

    p_flood = sub.add_parser("flood", help="Print the round-by-round textbook flood of a topology")
    p_flood.add_argument("--config", required=True, help="Scenario with a custom topology")
    p_flood.add_argument("--start", required=True)

    p_plot = sub.add_parser("plot", help="Plot messages per step from events.jsonl")
    p_plot.add_argument("--events", required=True)
    p_plot.add_argument("--out", required=True)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "run":
        result = run_scenario(args.config, output_dir=args.output_dir)
        print(json.dumps(result, indent=2, ensure_ascii=False, sort_keys=True))
        return 0

    if args.cmd == "validate":
        cfg = load_effective_config(args.config)
        errors = validate_config(cfg)
        if errors:
            print(json.dumps({"ok": False, "errors": errors}, ensure_ascii=False, indent=2))
            return 1
        print(json.dumps({"ok": True}, ensure_ascii=False, indent=2))
        return 0

    if args.cmd == "flood":
        topo = load_yaml(args.config).get("topology", {})
        edges = [row[:2] if isinstance(row, list) else [row["a"], row["b"]] for row in topo.get("links", [])]
        print(json.dumps(flood(edges, args.start).to_dict(), ensure_ascii=False, indent=2))
        return 0

    if args.cmd == "plot":
        from lsrsim.eval.plot import plot_messages

        out = plot_messages(args.events, args.out)
        print(json.dumps({"ok": True, "out": str(out)}, ensure_ascii=False, indent=2))
        return 0

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
