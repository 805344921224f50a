from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from lsrsim.core.types import Cost, RouterId

NeighborList = Tuple[Tuple[RouterId, Cost], ...]


class MessageKind(str, Enum):
    HELLO = "hello"
    LSP = "lsp"


def _bad_router_id(value: Any) -> bool:
    return not isinstance(value, str) or not value


def _bad_cost(value: Any) -> bool:
    return isinstance(value, bool) or not isinstance(value, int) or value <= 0


@dataclass(frozen=True)
class HelloMessage:
    sender: RouterId
    receiver: RouterId
    cost: Cost
    timestamp: int = 0

    kind = MessageKind.HELLO

    def problem(self) -> Optional[str]:
        if _bad_router_id(self.sender) or _bad_router_id(self.receiver):
            return "hello without sender/receiver"
        if self.sender == self.receiver:
            return "hello addressed to its own sender"
        if _bad_cost(self.cost):
            return f"hello with invalid cost {self.cost!r}"
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind.value,
            "sender": self.sender,
            "receiver": self.receiver,
            "cost": self.cost,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class Lsp:
    """A router's self-description; ``(origin, sequence)`` identifies the content."""

    origin: RouterId
    sequence: int
    neighbors: NeighborList
    timestamp: int = 0

    @property
    def key(self) -> Tuple[RouterId, int]:
        return (self.origin, self.sequence)

    def label(self) -> str:
        return f"LSP-{self.origin}-{self.sequence}"

    def neighbor_costs(self) -> Dict[RouterId, Cost]:
        return {nbr: cost for nbr, cost in self.neighbors}

    def problem(self) -> Optional[str]:
        if _bad_router_id(self.origin):
            return "lsp without origin"
        if isinstance(self.sequence, bool) or not isinstance(self.sequence, int) or self.sequence <= 0:
            return f"lsp with invalid sequence {self.sequence!r}"
        for item in self.neighbors:
            if len(item) != 2 or _bad_router_id(item[0]) or _bad_cost(item[1]):
                return f"lsp with invalid neighbor entry {item!r}"
        return None


@dataclass(frozen=True)
class LspMessage:
    sender: RouterId
    receiver: RouterId
    lsp: Lsp

    kind = MessageKind.LSP

    def problem(self) -> Optional[str]:
        if _bad_router_id(self.sender) or _bad_router_id(self.receiver):
            return "lsp message without sender/receiver"
        return self.lsp.problem()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind.value,
            "sender": self.sender,
            "receiver": self.receiver,
            "origin": self.lsp.origin,
            "sequence": self.lsp.sequence,
            "neighbors": [[nbr, cost] for nbr, cost in self.lsp.neighbors],
            "timestamp": self.lsp.timestamp,
        }


@dataclass(frozen=True)
class PendingForward:
    lsp: Lsp
    received_from: RouterId


Message = Union[HelloMessage, LspMessage]
