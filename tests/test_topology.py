from __future__ import annotations

import pytest

from lsrsim.core.topology import Topology, link_key, router_names


def test_router_names_follow_spreadsheet_columns() -> None:
    names = router_names(28)
    assert names[:3] == ["A", "B", "C"]
    assert names[25] == "Z"
    assert names[26:] == ["AA", "AB"]


def test_generators_build_expected_link_counts() -> None:
    assert len(Topology.line(4).links()) == 3
    assert len(Topology.ring(4).links()) == 4
    assert len(Topology.ring(2).links()) == 1
    assert len(Topology.star(5).links()) == 4
    assert len(Topology.fullmesh(4).links()) == 6
    assert len(Topology.grid(2, 3).links()) == 7


def test_from_edges_keeps_cost_and_cosmetic_delay() -> None:
    topo = Topology.from_edges([("A", "B", 5, 2), ("A", "C")], routers=["Z"])
    assert topo.routers() == ["A", "B", "C", "Z"]
    assert topo.cost("B", "A") == 5
    assert topo.delay("B", "A") == 2
    assert topo.cost("A", "C") == 1
    assert topo.snapshot()["links"][0] == {"u": "A", "v": "B", "cost": 5, "delay": 2}


def test_remove_router_drops_incident_links() -> None:
    topo = Topology.from_edges([("A", "B"), ("B", "C"), ("A", "C")])
    assert topo.remove_router("B") == ["A", "C"]
    assert not topo.has_router("B")
    assert [link_key(link.u, link.v) for link in topo.links()] == [("A", "C")]


def test_active_graph_skips_inactive_routers() -> None:
    topo = Topology.from_edges([("A", "B", 2), ("B", "C", 3)])
    topo.set_active("B", False)
    assert topo.active_graph() == {"A": {}, "C": {}}
    topo.set_active("B", True)
    assert topo.active_graph()["B"] == {"A": 2, "C": 3}


def test_copy_is_independent() -> None:
    topo = Topology.from_edges([("A", "B")])
    other = topo.copy()
    other.remove_link("A", "B")
    assert topo.has_link("A", "B")
    assert not other.has_link("A", "B")


def test_from_config_rejects_unknown_type() -> None:
    assert Topology.from_config({"type": "ring", "n_routers": 3}).routers() == ["A", "B", "C"]
    with pytest.raises(ValueError):
        Topology.from_config({"type": "torus"})
