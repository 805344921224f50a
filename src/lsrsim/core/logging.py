from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from lsrsim.core.types import StepEvent


class JsonlLogger:
    """Append-only JSON-lines trace; a logger without a path discards everything."""

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path else None
        self._fh = None
        if self._path:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = self._path.open("w", encoding="utf-8")

    def log(self, event: str, **kwargs: Any) -> None:
        if not self._fh:
            return
        row = {"event": event, **kwargs}
        self._fh.write(json.dumps(row, sort_keys=True, default=str) + "\n")
        self._fh.flush()

    def log_event(self, event: StepEvent) -> None:
        row = event.to_dict()
        self.log(row.pop("kind"), **row)

    def close(self) -> None:
        if self._fh:
            self._fh.close()
            self._fh = None

    def __enter__(self) -> "JsonlLogger":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
