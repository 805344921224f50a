from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, List, Optional

RouteTables = Dict[str, Dict[str, List[Any]]]


def hash_routes(route_tables: RouteTables) -> str:
    normalized: Dict[str, Dict[str, List[Any]]] = {}
    for node, routes in sorted(route_tables.items()):
        normalized[str(node)] = {}
        for dst, entry in sorted(routes.items()):
            next_hop, cost = entry
            normalized[str(node)][str(dst)] = [str(next_hop), int(cost)]
    payload = json.dumps(normalized, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class ConvergenceTracker:
    """Watches route-table hashes step by step.

    ``converged_step`` is the step at which the tables last changed, once they
    have then stayed identical for ``stable_window`` observations.
    """

    def __init__(self, stable_window: int = 5) -> None:
        self.stable_window = max(1, int(stable_window))
        self._last_hash: Optional[str] = None
        self._same_count = 0
        self.last_change_step: Optional[int] = None
        self.converged_step: Optional[int] = None
        self.changes = 0

    def observe(self, step: int, route_tables: RouteTables) -> bool:
        current = hash_routes(route_tables)
        if current == self._last_hash:
            self._same_count += 1
        else:
            self._same_count = 1
            self._last_hash = current
            self.last_change_step = step
            self.converged_step = None
            self.changes += 1
        if self.converged_step is None and self._same_count >= self.stable_window:
            self.converged_step = self.last_change_step
            return True
        return False

    @property
    def last_hash(self) -> Optional[str]:
        return self._last_hash
