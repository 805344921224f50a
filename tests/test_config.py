from __future__ import annotations

from pathlib import Path

import pytest

from lsrsim.runtime.config import (
    LinkConfig,
    build_topology,
    load_effective_config,
    parse_simulation_config,
    validate_config,
)


def _custom(**extra):
    cfg = {
        "name": "tiny",
        "topology": {
            "type": "custom",
            "routers": ["A", "B", "C"],
            "links": [["A", "B", 2], {"a": "B", "b": "C", "cost": 3, "delay": 4}],
        },
    }
    cfg.update(extra)
    return cfg


def test_valid_custom_config_parses() -> None:
    cfg = _custom(events=[{"step": 5, "action": "fail", "router": "B"}])
    assert validate_config(cfg) == []
    sim_cfg = parse_simulation_config(cfg)
    assert sim_cfg.links == [LinkConfig("A", "B", 2, 1), LinkConfig("B", "C", 3, 4)]
    assert sim_cfg.events[0].params == {"router": "B"}
    assert sim_cfg.hello_interval == 15

    topo = build_topology(sim_cfg)
    assert topo.routers() == ["A", "B", "C"]
    assert topo.delay("B", "C") == 4


def test_validate_collects_every_problem() -> None:
    cfg = _custom(
        hello_interval=0,
        events=[
            {"step": 0, "action": "fail", "router": "A"},
            {"step": 3, "action": "teleport"},
            {"step": 4, "action": "connect", "a": "A"},
        ],
    )
    cfg["topology"]["links"].append(["A", "A", -1])
    errors = validate_config(cfg)
    assert "hello_interval must be a positive integer" in errors
    assert "events[0].step must be a positive integer" in errors
    assert any(e.startswith("events[1].action") for e in errors)
    assert "events[2] (connect) is missing 'b'" in errors
    assert "topology.links[2]: needs two distinct routers" in errors
    assert "topology.links[2]: cost must be a positive integer" in errors


def test_missing_topology_is_reported() -> None:
    assert validate_config({}) == ["Missing 'topology' config"]
    assert validate_config({"topology": {"type": "torus"}})[0].startswith("topology.type must be one of")
    with pytest.raises(ValueError):
        parse_simulation_config({"topology": {}})


def test_generated_topology_type() -> None:
    sim_cfg = parse_simulation_config({"topology": {"type": "grid", "rows": 2, "cols": 2}})
    assert len(build_topology(sim_cfg).links()) == 4


def test_effective_config_merges_defaults(tmp_path: Path) -> None:
    configs = tmp_path / "configs"
    configs.mkdir()
    (configs / "defaults.yaml").write_text(
        "hello_interval: 15\nmax_steps: 80\ntopology:\n  type: ring\n  n_routers: 5\n",
        encoding="utf-8",
    )
    (configs / "mine.yaml").write_text(
        "name: mine\nmax_steps: 20\ntopology:\n  n_routers: 3\n",
        encoding="utf-8",
    )
    cfg = load_effective_config(configs / "mine.yaml")
    assert cfg["max_steps"] == 20
    assert cfg["hello_interval"] == 15
    assert cfg["topology"] == {"type": "ring", "n_routers": 3}


def test_shipped_scenarios_are_valid() -> None:
    root = Path(__file__).resolve().parents[1] / "configs"
    for name in ("textbook.yaml", "classroom_demo.yaml"):
        assert validate_config(load_effective_config(root / name)) == []


def test_link_delay_must_be_non_negative_integer() -> None:
    cfg = _custom()
    cfg["topology"]["links"] = [
        {"a": "A", "b": "B", "cost": 1, "delay": -1},
        {"a": "B", "b": "C", "cost": 1, "delay": 1.5},
        ["A", "C", 1, 0],
    ]
    assert validate_config(cfg) == [
        "topology.links[0]: delay must be a non-negative integer",
        "topology.links[1]: delay must be a non-negative integer",
    ]
    with pytest.raises(ValueError, match="delay must be a non-negative integer"):
        parse_simulation_config(cfg)
