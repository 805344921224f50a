"""Scenario configs and runner."""

from lsrsim.runtime.config import (
    LinkConfig,
    ScheduledAction,
    SimulationConfig,
    load_effective_config,
    parse_simulation_config,
    validate_config,
)
from lsrsim.runtime.runner import ScenarioRunner, run_scenario

__all__ = [
    "LinkConfig",
    "ScenarioRunner",
    "ScheduledAction",
    "SimulationConfig",
    "load_effective_config",
    "parse_simulation_config",
    "run_scenario",
    "validate_config",
]
