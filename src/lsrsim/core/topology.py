from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from lsrsim.core.types import Cost, RouterId


@dataclass
class Link:
    u: RouterId
    v: RouterId
    cost: Cost
    delay: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {"u": self.u, "v": self.v, "cost": int(self.cost), "delay": int(self.delay)}


def link_key(u: RouterId, v: RouterId) -> Tuple[RouterId, RouterId]:
    return (u, v) if u <= v else (v, u)


def router_names(n_routers: int) -> List[RouterId]:
    """Spreadsheet-style ids: A..Z, AA, AB, ..."""
    names: List[RouterId] = []
    for i in range(max(0, n_routers)):
        label = ""
        idx = i
        while True:
            label = chr(ord("A") + idx % 26) + label
            idx = idx // 26 - 1
            if idx < 0:
                break
        names.append(label)
    return names


class Topology:
    """What physically exists: routers, their up/down state and the links between them.

    Link delay is cosmetic; the engine delivers every message in one step.
    """

    def __init__(self) -> None:
        self._adj: Dict[RouterId, Dict[RouterId, Cost]] = {}
        self._delay: Dict[Tuple[RouterId, RouterId], int] = {}
        self._active: Dict[RouterId, bool] = {}

    def add_router(self, router: RouterId, active: bool = True) -> None:
        self._adj.setdefault(router, {})
        self._active.setdefault(router, bool(active))

    def remove_router(self, router: RouterId) -> List[RouterId]:
        neighbors = sorted(self._adj.get(router, {}))
        for nbr in neighbors:
            self.remove_link(router, nbr)
        self._adj.pop(router, None)
        self._active.pop(router, None)
        return neighbors

    def has_router(self, router: RouterId) -> bool:
        return router in self._adj

    def routers(self) -> List[RouterId]:
        return sorted(self._adj.keys())

    def is_active(self, router: RouterId) -> bool:
        return bool(self._active.get(router, False))

    def set_active(self, router: RouterId, active: bool) -> None:
        if router in self._adj:
            self._active[router] = bool(active)

    def neighbors(self, router: RouterId) -> Dict[RouterId, Cost]:
        return dict(self._adj.get(router, {}))

    def has_link(self, u: RouterId, v: RouterId) -> bool:
        return v in self._adj.get(u, {})

    def cost(self, u: RouterId, v: RouterId) -> Optional[Cost]:
        return self._adj.get(u, {}).get(v)

    def delay(self, u: RouterId, v: RouterId) -> Optional[int]:
        return self._delay.get(link_key(u, v))

    def add_link(self, u: RouterId, v: RouterId, cost: Cost = 1, delay: int = 1) -> None:
        self.add_router(u)
        self.add_router(v)
        self._adj[u][v] = int(cost)
        self._adj[v][u] = int(cost)
        self._delay[link_key(u, v)] = int(delay)

    def remove_link(self, u: RouterId, v: RouterId) -> bool:
        existed = self.has_link(u, v)
        self._adj.get(u, {}).pop(v, None)
        self._adj.get(v, {}).pop(u, None)
        self._delay.pop(link_key(u, v), None)
        return existed

    def links(self) -> List[Link]:
        out: List[Link] = []
        for u in self.routers():
            for v, cost in self._adj[u].items():
                if u < v:
                    out.append(Link(u=u, v=v, cost=cost, delay=self._delay.get((u, v), 1)))
        return sorted(out, key=lambda link: (link.u, link.v))

    def active_graph(self) -> Dict[RouterId, Dict[RouterId, Cost]]:
        graph: Dict[RouterId, Dict[RouterId, Cost]] = {}
        for router in self.routers():
            if not self.is_active(router):
                continue
            graph[router] = {
                nbr: cost for nbr, cost in self._adj[router].items() if self.is_active(nbr)
            }
        return graph

    def snapshot(self) -> Dict[str, Any]:
        return {
            "routers": {r: {"active": self.is_active(r)} for r in self.routers()},
            "links": [link.to_dict() for link in self.links()],
        }

    def copy(self) -> "Topology":
        other = Topology()
        for router in self.routers():
            other.add_router(router, active=self.is_active(router))
        for link in self.links():
            other.add_link(link.u, link.v, link.cost, link.delay)
        return other

    @classmethod
    def from_edges(
        cls,
        edges: Iterable[Sequence[Any]],
        routers: Iterable[RouterId] = (),
    ) -> "Topology":
        t = cls()
        for router in routers:
            t.add_router(str(router))
        for edge in edges:
            u, v = str(edge[0]), str(edge[1])
            cost = int(edge[2]) if len(edge) > 2 else 1
            delay = int(edge[3]) if len(edge) > 3 else 1
            t.add_link(u, v, cost, delay)
        return t

    @classmethod
    def line(cls, n_routers: int, cost: Cost = 1) -> "Topology":
        t = cls()
        names = router_names(n_routers)
        for name in names:
            t.add_router(name)
        for a, b in zip(names, names[1:]):
            t.add_link(a, b, cost)
        return t

    @classmethod
    def ring(cls, n_routers: int, cost: Cost = 1) -> "Topology":
        t = cls.line(n_routers, cost)
        names = router_names(n_routers)
        if n_routers > 2:
            t.add_link(names[-1], names[0], cost)
        return t

    @classmethod
    def star(cls, n_routers: int, cost: Cost = 1, center: int = 0) -> "Topology":
        t = cls()
        names = router_names(n_routers)
        if not names:
            return t
        hub = names[max(0, min(center, len(names) - 1))]
        for name in names:
            t.add_router(name)
            if name != hub:
                t.add_link(hub, name, cost)
        return t

    @classmethod
    def fullmesh(cls, n_routers: int, cost: Cost = 1) -> "Topology":
        t = cls()
        names = router_names(n_routers)
        for name in names:
            t.add_router(name)
        for i, u in enumerate(names):
            for v in names[i + 1:]:
                t.add_link(u, v, cost)
        return t

    @classmethod
    def grid(cls, rows: int, cols: int, cost: Cost = 1) -> "Topology":
        t = cls()
        names = router_names(rows * cols)

        def idx(r: int, c: int) -> RouterId:
            return names[r * cols + c]

        for r in range(rows):
            for c in range(cols):
                u = idx(r, c)
                t.add_router(u)
                if c + 1 < cols:
                    t.add_link(u, idx(r, c + 1), cost)
                if r + 1 < rows:
                    t.add_link(u, idx(r + 1, c), cost)
        return t

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "Topology":
        tp = cfg.get("type", "ring")
        cost = int(cfg.get("default_cost", 1))
        if tp == "line":
            return cls.line(int(cfg.get("n_routers", 5)), cost)
        if tp == "ring":
            return cls.ring(int(cfg.get("n_routers", 5)), cost)
        if tp == "star":
            return cls.star(int(cfg.get("n_routers", 5)), cost, int(cfg.get("center", 0)))
        if tp == "fullmesh":
            return cls.fullmesh(int(cfg.get("n_routers", 5)), cost)
        if tp == "grid":
            return cls.grid(int(cfg.get("rows", 3)), int(cfg.get("cols", 3)), cost)
        raise ValueError(f"Unsupported topology type: {tp}")
