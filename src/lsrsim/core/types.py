from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

RouterId = str
Cost = int

# Next hop recorded for a router's route to itself.
DIRECT = "direct"


class EventKind(str, Enum):
    HELLO_SENT = "hello_sent"
    HELLO_RECEIVED = "hello_received"
    LSP_ORIGINATED = "lsp_originated"
    LSP_SENT = "lsp_sent"
    LSP_FORWARDED = "lsp_forwarded"
    LSP_ACCEPTED = "lsp_accepted"
    LSP_REJECTED = "lsp_rejected"
    LSP_STALE = "lsp_stale"
    ROUTING_TABLE_UPDATED = "routing_table_updated"
    MESSAGE_DROPPED = "message_dropped"
    INCONSISTENCY = "inconsistency"
    MALFORMED_MESSAGE = "malformed_message"
    TOPOLOGY_CHANGED = "topology_changed"
    ROUTER_FAILED = "router_failed"
    ROUTER_RECOVERED = "router_recovered"
    PACKET_INJECTED = "packet_injected"
    OPERATION_REJECTED = "operation_rejected"


class AdjacencyState(str, Enum):
    DOWN = "down"
    NO_NEIGHBORS = "no_neighbors"
    DISCOVERING = "discovering"
    ADJACENT = "adjacent"
    CONVERGED = "converged"


@dataclass(frozen=True)
class StepEvent:
    step: int
    kind: EventKind
    router: Optional[RouterId] = None
    peer: Optional[RouterId] = None
    origin: Optional[RouterId] = None
    sequence: Optional[int] = None
    detail: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        row: Dict[str, Any] = {"step": int(self.step), "kind": self.kind.value}
        for key in ("router", "peer", "origin", "sequence"):
            value = getattr(self, key)
            if value is not None:
                row[key] = value
        if self.detail:
            row["detail"] = dict(self.detail)
        return row


@dataclass(frozen=True)
class RouteEntry:
    next_hop: RouterId
    cost: Cost

    def to_list(self) -> list:
        return [self.next_hop, int(self.cost)]


@dataclass(frozen=True)
class RouteTrace:
    source: RouterId
    destination: RouterId
    path: Tuple[RouterId, ...]
    cost: Cost


@dataclass(frozen=True)
class UnreachableDestination:
    """Query result for a destination without a usable route."""

    source: RouterId
    destination: RouterId
    reason: str


@dataclass(frozen=True)
class OperationResult:
    ok: bool
    message: str = ""
    error: Optional[str] = None


@dataclass(frozen=True)
class ExternalEvent:
    step: int
    action: str
    params: Dict[str, Any] = field(default_factory=dict)
