from __future__ import annotations

from lsrsim.core.convergence import ConvergenceTracker, hash_routes


def test_convergence_hash_stable_against_dict_order() -> None:
    a = {
        "A": {"A": ["direct", 0], "C": ["B", 2], "B": ["B", 1]},
        "B": {"B": ["direct", 0], "A": ["A", 1], "C": ["C", 1]},
    }
    b = {
        "B": {"C": ["C", 1], "A": ["A", 1], "B": ["direct", 0]},
        "A": {"B": ["B", 1], "A": ["direct", 0], "C": ["B", 2]},
    }
    assert hash_routes(a) == hash_routes(b)
    b["A"]["C"] = ["B", 3]
    assert hash_routes(a) != hash_routes(b)


def test_tracker_reports_step_of_last_change() -> None:
    tracker = ConvergenceTracker(stable_window=3)
    first = {"A": {"A": ["direct", 0]}}
    second = {"A": {"A": ["direct", 0], "B": ["B", 1]}}

    assert not tracker.observe(1, first)
    assert not tracker.observe(2, second)
    assert not tracker.observe(3, second)
    assert tracker.observe(4, second)
    assert tracker.converged_step == 2
    assert tracker.changes == 2

    assert not tracker.observe(5, first)
    assert tracker.converged_step is None
    assert tracker.last_change_step == 5
