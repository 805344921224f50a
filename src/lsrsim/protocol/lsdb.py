from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional

from lsrsim.core.types import Cost, RouterId
from lsrsim.protocol.messages import Lsp, NeighborList


class LspVerdict(str, Enum):
    NEW = "new"
    DUPLICATE = "duplicate"
    STALE = "stale"
    OWN = "own"


@dataclass(frozen=True)
class LsdbEntry:
    origin: RouterId
    sequence: int
    neighbors: NeighborList
    timestamp: int

    def neighbor_costs(self) -> Dict[RouterId, Cost]:
        return {nbr: cost for nbr, cost in self.neighbors}

    def to_lsp(self) -> Lsp:
        return Lsp(
            origin=self.origin,
            sequence=self.sequence,
            neighbors=self.neighbors,
            timestamp=self.timestamp,
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "sequence": self.sequence,
            "neighbors": [[nbr, cost] for nbr, cost in self.neighbors],
            "timestamp": self.timestamp,
        }


class LinkStateDatabase:
    """Most recent LSP per origin, as seen by ``owner``."""

    def __init__(self, owner: RouterId) -> None:
        self.owner = owner
        self._entries: Dict[RouterId, LsdbEntry] = {}

    def classify(self, lsp: Lsp) -> LspVerdict:
        if lsp.origin == self.owner:
            return LspVerdict.OWN
        current = self._entries.get(lsp.origin)
        if current is None or lsp.sequence > current.sequence:
            return LspVerdict.NEW
        if lsp.sequence == current.sequence:
            return LspVerdict.DUPLICATE
        return LspVerdict.STALE

    def install(self, lsp: Lsp) -> bool:
        current = self._entries.get(lsp.origin)
        if current is not None and lsp.sequence <= current.sequence:
            return False
        self._entries[lsp.origin] = LsdbEntry(
            origin=lsp.origin,
            sequence=int(lsp.sequence),
            neighbors=tuple(lsp.neighbors),
            timestamp=int(lsp.timestamp),
        )
        return True

    def get(self, origin: RouterId) -> Optional[LsdbEntry]:
        return self._entries.get(origin)

    def sequence_of(self, origin: RouterId) -> Optional[int]:
        entry = self._entries.get(origin)
        return None if entry is None else entry.sequence

    def entries(self) -> List[LsdbEntry]:
        return [self._entries[origin] for origin in sorted(self._entries)]

    def snapshot(self) -> Dict[RouterId, LsdbEntry]:
        return {entry.origin: entry for entry in self.entries()}

    def __contains__(self, origin: object) -> bool:
        return origin in self._entries

    def __iter__(self) -> Iterator[LsdbEntry]:
        return iter(self.entries())

    def __len__(self) -> int:
        return len(self._entries)
