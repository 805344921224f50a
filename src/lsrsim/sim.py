from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Union

from lsrsim.core.errors import LsrSimError
from lsrsim.core.logging import JsonlLogger
from lsrsim.core.topology import Topology
from lsrsim.core.types import (
    AdjacencyState,
    Cost,
    EventKind,
    OperationResult,
    RouteEntry,
    RouterId,
    RouteTrace,
    StepEvent,
    UnreachableDestination,
)
from lsrsim.engine.network import Network
from lsrsim.protocol.lsdb import LsdbEntry

logger = logging.getLogger(__name__)


class Simulator:
    """Driver-facing API of the link-state simulator.

    Topology and injection mistakes never raise out of here: they are logged,
    reported as an ``operation_rejected`` event and returned as a failed
    ``OperationResult``. Events produced between steps are returned by the
    following ``next_step()`` call together with that step's own events.
    """

    def __init__(self, hello_interval: int = 15, trace: JsonlLogger | None = None) -> None:
        self.network = Network(hello_interval=hello_interval, trace=trace)

    @property
    def step(self) -> int:
        return self.network.current_step

    def _attempt(self, action: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> OperationResult:
        try:
            fn(*args, **kwargs)
        except LsrSimError as exc:
            logger.warning("%s rejected: %s", action, exc)
            self.network.emit(
                EventKind.OPERATION_REJECTED,
                detail={"action": action, "error": type(exc).__name__, "message": str(exc)},
            )
            return OperationResult(ok=False, message=str(exc), error=type(exc).__name__)
        return OperationResult(ok=True, message=action)

    # Topology changes

    def create_router(self, router_id: RouterId) -> OperationResult:
        return self._attempt("create", self.network.create_router, router_id)

    def delete_router(self, router_id: RouterId) -> OperationResult:
        return self._attempt("delete", self.network.delete_router, router_id)

    def connect_routers(self, a: RouterId, b: RouterId, cost: Cost = 1, delay: int = 1) -> OperationResult:
        return self._attempt("connect", self.network.connect_routers, a, b, cost=cost, delay=delay)

    def disconnect_routers(self, a: RouterId, b: RouterId) -> OperationResult:
        return self._attempt("disconnect", self.network.disconnect_routers, a, b)

    def fail_router(self, router_id: RouterId) -> OperationResult:
        return self._attempt("fail", self.network.fail_router, router_id)

    def recover_router(self, router_id: RouterId) -> OperationResult:
        return self._attempt("recover", self.network.recover_router, router_id)

    def inject_custom_packet(
        self,
        kind: str,
        source: RouterId,
        target: RouterId,
        lsp_owner: Optional[RouterId] = None,
        sequence: Optional[int] = None,
    ) -> OperationResult:
        return self._attempt(
            "inject",
            self.network.inject_packet,
            kind,
            source,
            target,
            lsp_owner=lsp_owner,
            sequence=sequence,
        )

    def schedule(self, step: int, action: str, **params: Any) -> OperationResult:
        return self._attempt("schedule", self.network.schedule, step, action, **params)

    # Clock

    def start(self, topology: Topology | None = None) -> None:
        self.network.start(topology)

    def next_step(self) -> List[StepEvent]:
        return self.network.next_step()

    def run(self, steps: int) -> List[StepEvent]:
        events: List[StepEvent] = []
        for _ in range(max(0, int(steps))):
            events.extend(self.next_step())
        return events

    def run_until_converged(self, max_steps: int = 100) -> Optional[int]:
        """Step until every active router is converged; the step reached, or None."""
        for _ in range(max(0, int(max_steps))):
            self.next_step()
            if self.network.is_converged():
                return self.network.current_step
        return None

    def is_converged(self) -> bool:
        return self.network.is_converged()

    # Queries

    def get_lsdb(self, router_id: RouterId) -> Dict[RouterId, LsdbEntry]:
        return self.network.lsdb_of(router_id)

    def get_routing_table(self, router_id: RouterId) -> Dict[RouterId, RouteEntry]:
        return self.network.routing_table_of(router_id)

    def get_route(self, source: RouterId, destination: RouterId) -> Union[RouteEntry, UnreachableDestination]:
        router = self.network.routers.get(source)
        if router is None:
            return UnreachableDestination(source, destination, f"router {source} does not exist")
        if not router.active:
            return UnreachableDestination(source, destination, f"router {source} is down")
        entry = router.routing_table.get(destination)
        if entry is None:
            return UnreachableDestination(source, destination, f"{source} has no route to {destination}")
        return entry

    def get_topology(self) -> Dict[str, Any]:
        return self.network.topology.snapshot()

    def router_state(self, router_id: RouterId) -> Optional[AdjacencyState]:
        if router_id not in self.network.routers:
            return None
        return self.network.router_state(router_id)

    def trace_route(self, source: RouterId, destination: RouterId) -> Union[RouteTrace, UnreachableDestination]:
        return self.network.trace_route(source, destination)

    def routing_snapshot(self) -> Dict[RouterId, Dict[RouterId, List[Any]]]:
        return {
            rid: {dst: entry.to_list() for dst, entry in sorted(router.routing_table.items())}
            for rid, router in sorted(self.network.routers.items())
        }

    def format_routing_table(self, router_id: RouterId) -> str:
        router = self.network.routers.get(router_id)
        return "" if router is None else router.format_routing_table()

    def describe(self) -> Dict[str, Any]:
        return self.network.describe()
