from __future__ import annotations

import heapq
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from lsrsim.core.types import DIRECT, Cost, RouteEntry, RouterId
from lsrsim.protocol.lsdb import LsdbEntry

Graph = Dict[RouterId, Dict[RouterId, Cost]]


@dataclass(frozen=True)
class Inconsistency:
    u: RouterId
    v: RouterId
    kind: str
    cost_uv: Optional[Cost]
    cost_vu: Optional[Cost]

    def to_dict(self) -> Dict[str, object]:
        return {
            "kind": self.kind,
            "u": self.u,
            "v": self.v,
            "cost_uv": self.cost_uv,
            "cost_vu": self.cost_vu,
        }


@dataclass
class ViewGraph:
    adjacency: Graph = field(default_factory=dict)
    inconsistencies: List[Inconsistency] = field(default_factory=list)


def build_view_graph(
    self_id: RouterId,
    own_costs: Mapping[RouterId, Cost],
    entries: Iterable[LsdbEntry],
) -> ViewGraph:
    """Combine a router's own neighbor table with its LSDB into an undirected graph.

    An edge is only usable when both endpoints advertise it. A neighbor whose own
    LSP is still unknown leaves the edge out quietly; a neighbor whose LSP exists
    but does not list the edge, or lists it with another cost, is reported as an
    inconsistency. Costs of edges touching ``self_id`` come from ``own_costs``.
    """
    adverts: Dict[RouterId, Dict[RouterId, Cost]] = {}
    for entry in entries:
        if entry.origin == self_id:
            continue
        adverts[entry.origin] = entry.neighbor_costs()
    adverts[self_id] = {nbr: int(cost) for nbr, cost in own_costs.items()}

    nodes: Set[RouterId] = set(adverts)
    for costs in adverts.values():
        nodes.update(costs)

    view = ViewGraph(adjacency={node: {} for node in sorted(nodes)})
    for u in sorted(adverts):
        for v, cost_uv in sorted(adverts[u].items()):
            if v == u:
                continue
            reverse = adverts.get(v)
            if reverse is None:
                continue
            cost_vu = reverse.get(u)
            if cost_vu is None:
                view.inconsistencies.append(
                    Inconsistency(u=u, v=v, kind="one_sided", cost_uv=cost_uv, cost_vu=None)
                )
                continue
            if v < u:
                continue
            if cost_uv != cost_vu:
                view.inconsistencies.append(
                    Inconsistency(u=u, v=v, kind="cost_mismatch", cost_uv=cost_uv, cost_vu=cost_vu)
                )
            if u == self_id:
                cost = cost_uv
            elif v == self_id:
                cost = cost_vu
            else:
                cost = min(cost_uv, cost_vu)
            view.adjacency[u][v] = cost
            view.adjacency[v][u] = cost
    return view


def dijkstra(graph: Mapping[RouterId, Mapping[RouterId, Cost]], start: RouterId) -> Tuple[
    Dict[RouterId, Cost], Dict[RouterId, Optional[RouterId]]
]:
    """Shortest distances and predecessors from ``start``.

    Equal tentative distances are settled in router-id order and a predecessor
    is only replaced by a strictly shorter path, so equal-cost ties resolve to
    the lexicographically first chain.
    """
    distances: Dict[RouterId, Cost] = {start: 0}
    predecessors: Dict[RouterId, Optional[RouterId]] = {start: None}
    visited: Set[RouterId] = set()
    heap: List[Tuple[Cost, RouterId]] = [(0, start)]

    while heap:
        dist_u, u = heapq.heappop(heap)
        if u in visited:
            continue
        visited.add(u)
        for v, weight in sorted(graph.get(u, {}).items()):
            if v in visited:
                continue
            candidate = dist_u + int(weight)
            if candidate < distances.get(v, candidate + 1):
                distances[v] = candidate
                predecessors[v] = u
                heapq.heappush(heap, (candidate, v))
    return distances, predecessors


def first_hop(start: RouterId, dst: RouterId, predecessors: Mapping[RouterId, Optional[RouterId]]) -> Optional[RouterId]:
    hop = dst
    for _ in range(len(predecessors) + 1):
        parent = predecessors.get(hop)
        if parent is None:
            return None
        if parent == start:
            return hop
        hop = parent
    return None


def routing_table_from(
    start: RouterId,
    distances: Mapping[RouterId, Cost],
    predecessors: Mapping[RouterId, Optional[RouterId]],
) -> Dict[RouterId, RouteEntry]:
    table: Dict[RouterId, RouteEntry] = {start: RouteEntry(next_hop=DIRECT, cost=0)}
    for dst in sorted(distances):
        if dst == start:
            continue
        hop = first_hop(start, dst, predecessors)
        if hop is None:
            continue
        table[dst] = RouteEntry(next_hop=hop, cost=int(distances[dst]))
    return table


def compute_routes(
    self_id: RouterId,
    own_costs: Mapping[RouterId, Cost],
    entries: Iterable[LsdbEntry],
) -> Tuple[Dict[RouterId, RouteEntry], List[Inconsistency]]:
    view = build_view_graph(self_id, own_costs, entries)
    distances, predecessors = dijkstra(view.adjacency, self_id)
    return routing_table_from(self_id, distances, predecessors), view.inconsistencies


def all_pairs_costs(graph: Mapping[RouterId, Mapping[RouterId, Cost]]) -> Dict[RouterId, Dict[RouterId, Cost]]:
    return {node: dijkstra(graph, node)[0] for node in sorted(graph)}
