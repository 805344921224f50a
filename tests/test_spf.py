from __future__ import annotations

from lsrsim.core.types import DIRECT, RouteEntry
from lsrsim.protocol.lsdb import LsdbEntry
from lsrsim.protocol.spf import Inconsistency, compute_routes, dijkstra

TEXTBOOK = {
    "A": (("B", 1), ("C", 1)),
    "B": (("A", 1), ("D", 1)),
    "C": (("A", 1), ("D", 1), ("E", 1)),
    "D": (("B", 1), ("C", 1), ("E", 1)),
    "E": (("C", 1), ("D", 1)),
}


def _entries(adverts):
    return [
        LsdbEntry(origin=origin, sequence=1, neighbors=tuple(nbrs), timestamp=0)
        for origin, nbrs in sorted(adverts.items())
    ]


def test_dijkstra_distances_and_predecessors() -> None:
    graph = {"A": {"B": 1, "C": 4}, "B": {"A": 1, "C": 2}, "C": {"A": 4, "B": 2}}
    distances, predecessors = dijkstra(graph, "A")
    assert distances == {"A": 0, "B": 1, "C": 3}
    assert predecessors["C"] == "B"


def test_textbook_routes_from_a() -> None:
    table, issues = compute_routes("A", {"B": 1, "C": 1}, _entries(TEXTBOOK))
    assert issues == []
    assert table["A"] == RouteEntry(next_hop=DIRECT, cost=0)
    assert table["E"] == RouteEntry(next_hop="C", cost=2)
    assert table["D"] == RouteEntry(next_hop="B", cost=2)
    assert len(table) == 5


def test_one_sided_advert_is_not_used() -> None:
    adverts = dict(TEXTBOOK)
    adverts["D"] = (("C", 1), ("E", 1))
    table, issues = compute_routes("A", {"B": 1, "C": 1}, _entries(adverts))
    assert table["D"] == RouteEntry(next_hop="C", cost=2)
    assert issues == [Inconsistency(u="B", v="D", kind="one_sided", cost_uv=1, cost_vu=None)]


def test_cost_mismatch_between_others_uses_lower_cost() -> None:
    adverts = dict(TEXTBOOK)
    adverts["E"] = (("C", 4), ("D", 1))
    table, issues = compute_routes("A", {"B": 1, "C": 1}, _entries(adverts))
    assert table["E"] == RouteEntry(next_hop="C", cost=2)
    assert issues == [Inconsistency(u="C", v="E", kind="cost_mismatch", cost_uv=1, cost_vu=4)]


def test_own_cost_wins_on_edges_touching_self() -> None:
    table, issues = compute_routes("A", {"B": 1, "C": 5}, _entries(TEXTBOOK))
    assert table["C"] == RouteEntry(next_hop="B", cost=3)
    assert [issue.kind for issue in issues] == ["cost_mismatch"]


def test_unreachable_destinations_are_omitted() -> None:
    adverts = {"B": (("A", 2), ("Q", 1))}
    table, issues = compute_routes("A", {"B": 2}, _entries(adverts))
    assert table == {"A": RouteEntry(DIRECT, 0), "B": RouteEntry("B", 2)}
    assert issues == []


def test_own_entry_in_lsdb_is_ignored() -> None:
    adverts = dict(TEXTBOOK)
    adverts["A"] = (("B", 1),)
    table, _ = compute_routes("A", {"B": 1, "C": 1}, _entries(adverts))
    assert table["C"] == RouteEntry(next_hop="C", cost=1)
