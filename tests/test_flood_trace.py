from __future__ import annotations

import pytest

from lsrsim.engine.flood_trace import build_adjacency, first_round, flood, hello_order

EDGES = [("A", "B"), ("A", "C"), ("B", "D"), ("C", "D"), ("C", "E"), ("D", "E")]


def test_hello_walk_is_breadth_first() -> None:
    graph = build_adjacency(EDGES)
    assert hello_order(graph, "A") == [
        ("A", "B"), ("A", "C"),
        ("B", "A"), ("B", "D"),
        ("C", "A"), ("C", "D"), ("C", "E"),
        ("D", "B"), ("D", "C"), ("D", "E"),
        ("E", "C"), ("E", "D"),
    ]


def test_first_round_uses_textbook_ordering() -> None:
    graph = build_adjacency(EDGES)
    order = [(tx.sender, tx.receiver) for tx in first_round(graph, "A")]
    assert order == [
        ("A", "B"), ("A", "C"),
        ("B", "D"),
        ("C", "D"), ("C", "E"),
        ("D", "C"), ("D", "E"), ("D", "B"),
        ("E", "D"), ("E", "C"),
        ("C", "A"), ("B", "A"),
    ]


def test_flood_reaches_everyone_once() -> None:
    trace = flood(EDGES, "A")
    learned = {(node, origin) for _, node, origin in trace.updates}
    assert len(trace.updates) == len(learned) == 20
    assert len(trace.rounds[0]) == 12
    for batch in trace.rounds[1:]:
        for tx in batch:
            assert tx.sender != tx.origin
    assert trace.to_dict()["rounds"][0][0] == {"round": 1, "sender": "A", "receiver": "B", "lsp": "LSPA"}


def test_flood_rejects_unknown_start() -> None:
    with pytest.raises(ValueError):
        flood(EDGES, "Z")
