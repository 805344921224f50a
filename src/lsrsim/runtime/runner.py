from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Optional

from lsrsim.core.convergence import ConvergenceTracker
from lsrsim.core.logging import JsonlLogger
from lsrsim.core.types import EventKind
from lsrsim.runtime.config import build_topology, load_effective_config, parse_simulation_config
from lsrsim.sim import Simulator
from lsrsim.utils.io import dump_json, ensure_dir, now_tag

logger = logging.getLogger(__name__)

MESSAGE_KINDS = {EventKind.HELLO_SENT, EventKind.LSP_SENT, EventKind.LSP_FORWARDED}


class ScenarioRunner:
    """Runs one scenario config and writes ``result.json``, ``config.effective.json`` and ``events.jsonl``."""

    def run(self, config: Dict[str, Any]) -> Dict[str, Any]:
        sim_cfg = parse_simulation_config(config)
        topology = build_topology(sim_cfg)

        output_dir = Path(sim_cfg.output_dir)
        ensure_dir(output_dir)
        run_id = f"{sim_cfg.name}_{now_tag()}"
        run_dir = ensure_dir(output_dir / run_id)
        trace = JsonlLogger(run_dir / "events.jsonl")

        sim = Simulator(hello_interval=sim_cfg.hello_interval, trace=trace)
        sim.start(topology)
        for action in sim_cfg.events:
            outcome = sim.schedule(action.step, action.action, **action.params)
            if not outcome.ok:
                raise ValueError(f"cannot schedule {action.action} at step {action.step}: {outcome.message}")
        last_event_step = max((action.step for action in sim_cfg.events), default=0)

        tracker = ConvergenceTracker(stable_window=sim_cfg.convergence_window)
        route_hashes: List[Optional[str]] = []
        messages_per_step: List[int] = []
        kind_counts: Counter = Counter()
        convergence_steps: List[int] = []
        was_converged = False

        for _ in range(sim_cfg.max_steps):
            events = sim.next_step()
            step = sim.step
            kind_counts.update(event.kind.value for event in events)
            messages_per_step.append(sum(1 for event in events if event.kind in MESSAGE_KINDS))
            tracker.observe(step, sim.routing_snapshot())
            route_hashes.append(tracker.last_hash)

            converged = sim.is_converged()
            if converged and not was_converged:
                convergence_steps.append(step)
                logger.info("%s: network converged at step %d", sim_cfg.name, step)
            was_converged = converged
            if sim_cfg.stop_when_converged and converged and step >= last_event_step:
                break
        trace.close()

        if not was_converged:
            logger.warning("%s: not converged after %d steps", sim_cfg.name, sim.step)

        network = sim.network
        result_payload = {
            "run_id": run_id,
            "name": sim_cfg.name,
            "hello_interval": sim_cfg.hello_interval,
            "steps_run": sim.step,
            "converged_step": tracker.converged_step,
            "convergence_steps": convergence_steps,
            "network_converged": was_converged,
            "route_hashes": route_hashes,
            "route_tables": sim.routing_snapshot(),
            "router_states": {
                rid: network.router_state(rid).value for rid in sorted(network.routers)
            },
            "messages_per_step": messages_per_step,
            "event_counts": dict(sorted(kind_counts.items())),
            "delivered_messages": network.delivered,
            "dropped_messages": network.dropped,
            "events_scheduled": len(sim_cfg.events),
            "topology": sim.get_topology(),
            "events_file": str(run_dir / "events.jsonl"),
        }
        dump_json(run_dir / "result.json", result_payload)
        dump_json(run_dir / "config.effective.json", config)
        return result_payload


def run_scenario(config_path: str | Path, output_dir: str | None = None) -> Dict[str, Any]:
    cfg = load_effective_config(config_path)
    if output_dir is not None:
        cfg["output_dir"] = output_dir
    return ScenarioRunner().run(cfg)
