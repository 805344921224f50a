from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from lsrsim.core.topology import Topology
from lsrsim.engine.network import ACTIONS
from lsrsim.utils.io import deep_merge, load_yaml

TOPOLOGY_TYPES = ("custom", "line", "ring", "star", "fullmesh", "grid")

REQUIRED_PARAMS = {
    "create": ("router",),
    "delete": ("router",),
    "fail": ("router",),
    "recover": ("router",),
    "connect": ("a", "b"),
    "disconnect": ("a", "b"),
    "inject": ("kind", "source", "target"),
}


@dataclass(frozen=True)
class LinkConfig:
    a: str
    b: str
    cost: int = 1
    delay: int = 1


@dataclass(frozen=True)
class ScheduledAction:
    step: int
    action: str
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SimulationConfig:
    name: str
    hello_interval: int
    max_steps: int
    convergence_window: int
    stop_when_converged: bool
    output_dir: str
    topology: Dict[str, Any]
    routers: List[str]
    links: List[LinkConfig]
    events: List[ScheduledAction]


def find_root(config_path: str | Path) -> Path:
    cfg_path = Path(config_path).resolve()
    parts = cfg_path.parts
    if "configs" in parts:
        cfg_idx = parts.index("configs")
        return Path(*parts[:cfg_idx]) if cfg_idx > 0 else Path("/")
    return cfg_path.parent


def load_effective_config(config_path: str | Path) -> Dict[str, Any]:
    """Scenario file merged over ``configs/defaults.yaml`` of the same tree, if any."""
    defaults_path = find_root(config_path) / "configs" / "defaults.yaml"
    cfg: Dict[str, Any] = {}
    if defaults_path.exists():
        cfg = load_yaml(defaults_path)
    return deep_merge(cfg, load_yaml(config_path))


def _link_row(row: Any) -> Dict[str, Any]:
    if isinstance(row, dict):
        return {
            "a": row.get("a"),
            "b": row.get("b"),
            "cost": row.get("cost", 1),
            "delay": row.get("delay", 1),
        }
    if isinstance(row, (list, tuple)) and 2 <= len(row) <= 4:
        values = list(row) + [1] * (4 - len(row))
        return {"a": values[0], "b": values[1], "cost": values[2], "delay": values[3]}
    raise ValueError(f"cannot read link {row!r}")


def _positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_config(cfg: Dict[str, Any]) -> list[str]:
    errors: list[str] = []

    topo = cfg.get("topology")
    if topo is None:
        errors.append("Missing 'topology' config")
    elif not isinstance(topo, dict):
        errors.append("'topology' must be a dict")
    else:
        tp = topo.get("type")
        if tp is None:
            errors.append("topology.type is required")
        elif tp not in TOPOLOGY_TYPES:
            errors.append(f"topology.type must be one of {', '.join(TOPOLOGY_TYPES)}")
        elif tp == "custom":
            links = topo.get("links", [])
            if not isinstance(links, list):
                errors.append("topology.links must be a list")
                links = []
            if not links and not topo.get("routers"):
                errors.append("custom topology needs routers or links")
            for i, row in enumerate(links):
                try:
                    link = _link_row(row)
                except ValueError as exc:
                    errors.append(f"topology.links[{i}]: {exc}")
                    continue
                if not link["a"] or not link["b"] or link["a"] == link["b"]:
                    errors.append(f"topology.links[{i}]: needs two distinct routers")
                if not _positive_int(link["cost"]):
                    errors.append(f"topology.links[{i}]: cost must be a positive integer")
                delay = link["delay"]
                if isinstance(delay, bool) or not isinstance(delay, int) or delay < 0:
                    errors.append(f"topology.links[{i}]: delay must be a non-negative integer")

    for key in ("hello_interval", "max_steps", "convergence_window"):
        if key in cfg and not _positive_int(cfg[key]):
            errors.append(f"{key} must be a positive integer")

    events = cfg.get("events", [])
    if not isinstance(events, list):
        errors.append("'events' must be a list")
        events = []
    for i, row in enumerate(events):
        if not isinstance(row, dict):
            errors.append(f"events[{i}] must be a dict")
            continue
        if not _positive_int(row.get("step")):
            errors.append(f"events[{i}].step must be a positive integer")
        action = row.get("action")
        if action not in ACTIONS:
            errors.append(f"events[{i}].action must be one of {', '.join(ACTIONS)}")
            continue
        for name in REQUIRED_PARAMS[action]:
            if name not in row:
                errors.append(f"events[{i}] ({action}) is missing '{name}'")

    return errors


def parse_simulation_config(cfg: Dict[str, Any]) -> SimulationConfig:
    errors = validate_config(cfg)
    if errors:
        raise ValueError("Invalid config: " + "; ".join(errors))

    topo = dict(cfg["topology"])
    links: List[LinkConfig] = []
    routers: List[str] = []
    if topo.get("type") == "custom":
        routers = [str(r) for r in topo.get("routers", [])]
        for row in topo.get("links", []):
            link = _link_row(row)
            links.append(
                LinkConfig(a=str(link["a"]), b=str(link["b"]), cost=int(link["cost"]), delay=int(link["delay"]))
            )

    events = [
        ScheduledAction(
            step=int(row["step"]),
            action=str(row["action"]),
            params={k: v for k, v in row.items() if k not in {"step", "action"}},
        )
        for row in cfg.get("events", [])
    ]

    return SimulationConfig(
        name=str(cfg.get("name", "run")),
        hello_interval=int(cfg.get("hello_interval", 15)),
        max_steps=int(cfg.get("max_steps", 200)),
        convergence_window=int(cfg.get("convergence_window", 5)),
        stop_when_converged=bool(cfg.get("stop_when_converged", True)),
        output_dir=str(cfg.get("output_dir", "results/runs")),
        topology=topo,
        routers=routers,
        links=links,
        events=sorted(events, key=lambda e: e.step),
    )


def build_topology(sim_cfg: SimulationConfig) -> Topology:
    if sim_cfg.topology.get("type") != "custom":
        return Topology.from_config(sim_cfg.topology)
    return Topology.from_edges(
        [(link.a, link.b, link.cost, link.delay) for link in sim_cfg.links],
        routers=sim_cfg.routers,
    )
