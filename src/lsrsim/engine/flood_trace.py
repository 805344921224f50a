from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from lsrsim.core.types import RouterId

Adjacency = Dict[RouterId, List[RouterId]]


@dataclass(frozen=True)
class Transmission:
    round: int
    sender: RouterId
    receiver: RouterId
    origin: RouterId

    def to_dict(self) -> Dict[str, object]:
        return {"round": self.round, "sender": self.sender, "receiver": self.receiver, "lsp": f"LSP{self.origin}"}


@dataclass
class FloodTrace:
    """Synchronous-round flood of every node's LSP, in textbook order."""

    start: RouterId
    hellos: List[Tuple[RouterId, RouterId]] = field(default_factory=list)
    rounds: List[List[Transmission]] = field(default_factory=list)
    # (round, node, origin) whenever a node learns a new LSP.
    updates: List[Tuple[int, RouterId, RouterId]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "start": self.start,
            "hellos": [[u, v] for u, v in self.hellos],
            "rounds": [[tx.to_dict() for tx in batch] for batch in self.rounds],
            "updates": [[r, node, f"LSP{origin}"] for r, node, origin in self.updates],
        }


def build_adjacency(edges: Iterable[Sequence[RouterId]]) -> Adjacency:
    """Neighbor lists in edge order; nodes keep first-seen order."""
    graph: Adjacency = {}
    for edge in edges:
        u, v = str(edge[0]), str(edge[1])
        graph.setdefault(u, []).append(v)
        graph.setdefault(v, []).append(u)
    return graph


def hello_order(graph: Adjacency, start: RouterId) -> List[Tuple[RouterId, RouterId]]:
    """Breadth-first Hello walk from ``start``; each visited node greets all its neighbors."""
    visited: Set[RouterId] = set()
    queue = deque([start])
    sent: List[Tuple[RouterId, RouterId]] = []
    while queue:
        node = queue.popleft()
        if node in visited:
            continue
        visited.add(node)
        for nbr in graph.get(node, []):
            sent.append((node, nbr))
            if nbr not in visited:
                queue.append(nbr)
    return sent


def first_round(graph: Adjacency, start: RouterId) -> List[Transmission]:
    """Every node sends its own LSP to every neighbor.

    The start node keeps its neighbor order, every other node rotates its list
    left by one. Transmissions are then ordered: the start node's own, then those
    between other nodes by sender ascending, then those towards the start node
    by sender descending.
    """
    own: List[Transmission] = []
    between: List[Transmission] = []
    towards_start: List[Transmission] = []
    for node, nbrs in graph.items():
        order = list(nbrs) if node == start or len(nbrs) < 2 else nbrs[1:] + nbrs[:1]
        for nbr in order:
            tx = Transmission(round=1, sender=node, receiver=nbr, origin=node)
            if node == start:
                own.append(tx)
            elif nbr == start:
                towards_start.append(tx)
            else:
                between.append(tx)
    between.sort(key=lambda tx: tx.sender)
    towards_start.sort(key=lambda tx: tx.sender, reverse=True)
    return own + between + towards_start


def flood(edges: Iterable[Sequence[RouterId]], start: RouterId) -> FloodTrace:
    graph = build_adjacency(edges)
    if start not in graph:
        raise ValueError(f"start node {start!r} is not part of the topology")

    trace = FloodTrace(start=start, hellos=hello_order(graph, start))
    received: Dict[RouterId, Set[RouterId]] = {node: {node} for node in graph}
    batch = first_round(graph, start)
    round_no = 1
    while batch:
        trace.rounds.append(batch)
        round_no += 1
        inbox: Dict[RouterId, List[Transmission]] = {node: [] for node in graph}
        for tx in batch:
            inbox[tx.receiver].append(tx)
        next_batch: List[Transmission] = []
        for node in graph:
            for tx in inbox[node]:
                if tx.origin in received[node]:
                    continue
                received[node].add(tx.origin)
                trace.updates.append((round_no, node, tx.origin))
                for nbr in graph[node]:
                    if nbr == tx.sender:
                        continue
                    next_batch.append(Transmission(round=round_no, sender=node, receiver=nbr, origin=tx.origin))
        batch = next_batch
    return trace
