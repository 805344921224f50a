from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple, Union

from lsrsim.core.errors import InvalidPacketInjection, InvalidTopologyOperation, LsrSimError
from lsrsim.core.logging import JsonlLogger
from lsrsim.core.topology import Topology
from lsrsim.core.types import (
    DIRECT,
    AdjacencyState,
    Cost,
    EventKind,
    ExternalEvent,
    RouteEntry,
    RouterId,
    RouteTrace,
    StepEvent,
    UnreachableDestination,
)
from lsrsim.protocol.context import NetworkContext
from lsrsim.protocol.lsdb import LsdbEntry
from lsrsim.protocol.messages import HelloMessage, LspMessage, Message, MessageKind
from lsrsim.protocol.router import Router
from lsrsim.protocol.spf import dijkstra

logger = logging.getLogger(__name__)

ACTIONS = ("create", "delete", "connect", "disconnect", "fail", "recover", "inject")


class Network(NetworkContext):
    """Discrete-step link-state engine over a ``Topology``.

    Every message sent during step ``k`` (or between steps ``k`` and ``k+1``)
    is delivered during step ``k+1``, in send order. Each step runs:

    1. periodic Hello every ``hello_interval`` steps, then scheduled actions;
    2. delivery of due messages;
    3. per router, sorted by id: discard duplicates, recompute stale routing
       tables, forward pending LSPs;
    4. floods requested by Hello processing, sorted by router id.
    """

    def __init__(self, hello_interval: int = 15, trace: JsonlLogger | None = None) -> None:
        self.topology = Topology()
        self.hello_interval = max(1, int(hello_interval))
        self.trace = trace or JsonlLogger()
        self.routers: Dict[RouterId, Router] = {}
        self.current_step = 0
        self.delivered = 0
        self.dropped = 0
        self._in_flight: List[Tuple[int, Message]] = []
        self._flood_requests: Set[RouterId] = set()
        self._scheduled: List[ExternalEvent] = []
        self._events: List[StepEvent] = []
        self._retired_sequences: Dict[RouterId, int] = {}

    # NetworkContext

    @property
    def step(self) -> int:
        return self.current_step

    def send(self, message: Message) -> None:
        self._in_flight.append((self.current_step + 1, message))
        if message.kind is MessageKind.HELLO:
            self.emit(
                EventKind.HELLO_SENT,
                router=message.sender,
                peer=message.receiver,
                detail={"cost": message.cost},
            )
            return
        lsp = message.lsp
        kind = EventKind.LSP_SENT if lsp.origin == message.sender else EventKind.LSP_FORWARDED
        self.emit(
            kind,
            router=message.sender,
            peer=message.receiver,
            origin=lsp.origin,
            sequence=lsp.sequence,
            detail={"expected_reject": self._expect_reject(message)},
        )

    def emit(
        self,
        kind: EventKind,
        router: Optional[RouterId] = None,
        peer: Optional[RouterId] = None,
        origin: Optional[RouterId] = None,
        sequence: Optional[int] = None,
        detail: Optional[Dict[str, Any]] = None,
    ) -> None:
        event = StepEvent(
            step=self.current_step,
            kind=kind,
            router=router,
            peer=peer,
            origin=origin,
            sequence=sequence,
            detail=dict(detail or {}),
        )
        self._events.append(event)
        self.trace.log_event(event)

    def is_active(self, router: RouterId) -> bool:
        return router in self.routers and self.routers[router].active

    def request_flood(self, router: RouterId) -> None:
        self._flood_requests.add(router)

    # Clock

    def start(self, topology: Topology | None = None) -> None:
        """(Re)initialize every router with an empty LSDB and queue the initial Hellos."""
        if topology is not None:
            self.topology = topology.copy()
        self.routers = {}
        self.current_step = 0
        self._in_flight = []
        self._flood_requests = set()
        self._retired_sequences = {}
        for rid in self.topology.routers():
            router = Router(rid)
            self.routers[rid] = router
            if self.topology.is_active(rid):
                router.start(self)
        for link in self.topology.links():
            if self.is_active(link.u) and self.is_active(link.v):
                self.routers[link.u].send_hello_to(self, link.v, link.cost)
                self.routers[link.v].send_hello_to(self, link.u, link.cost)
        logger.info(
            "network started with %d routers and %d links",
            len(self.routers),
            len(self.topology.links()),
        )

    def next_step(self) -> List[StepEvent]:
        self.current_step += 1
        step = self.current_step
        if step % self.hello_interval == 0:
            self._periodic_hello()
        self._run_scheduled(step)
        self._deliver_due(step)

        ordered = [self.routers[rid] for rid in sorted(self.routers) if self.routers[rid].active]
        for router in ordered:
            router.process_rejected(self)
        for router in ordered:
            router.process_routing_table_update(self)
        for router in ordered:
            router.process_pending_forwards(self)

        requests, self._flood_requests = sorted(self._flood_requests), set()
        for rid in requests:
            router = self.routers.get(rid)
            if router is not None and router.active:
                router.flood_lsp(self)
        return self.drain_events()

    def drain_events(self) -> List[StepEvent]:
        events, self._events = self._events, []
        return events

    def schedule(self, step: int, action: str, **params: Any) -> ExternalEvent:
        if action not in ACTIONS:
            raise InvalidTopologyOperation(f"unknown action {action!r}; expected one of {', '.join(ACTIONS)}")
        if int(step) <= self.current_step:
            raise InvalidTopologyOperation(f"step {step} is not in the future (now at {self.current_step})")
        event = ExternalEvent(step=int(step), action=action, params=dict(params))
        self._scheduled.append(event)
        self._scheduled.sort(key=lambda e: e.step)
        return event

    def apply_action(self, action: str, params: Mapping[str, Any]) -> None:
        if action == "create":
            self.create_router(_param(params, "router"))
        elif action == "delete":
            self.delete_router(_param(params, "router"))
        elif action == "connect":
            self.connect_routers(
                _param(params, "a"),
                _param(params, "b"),
                cost=params.get("cost", 1),
                delay=params.get("delay", 1),
            )
        elif action == "disconnect":
            self.disconnect_routers(_param(params, "a"), _param(params, "b"))
        elif action == "fail":
            self.fail_router(_param(params, "router"))
        elif action == "recover":
            self.recover_router(_param(params, "router"))
        elif action == "inject":
            self.inject_packet(
                _param(params, "kind"),
                _param(params, "source"),
                _param(params, "target"),
                lsp_owner=params.get("lsp_owner"),
                sequence=params.get("sequence"),
            )
        else:
            raise InvalidTopologyOperation(f"unknown action {action!r}")

    def _periodic_hello(self) -> None:
        for rid in sorted(self.routers):
            self.routers[rid].send_hello(self)

    def _run_scheduled(self, step: int) -> None:
        due = [event for event in self._scheduled if event.step <= step]
        if not due:
            return
        self._scheduled = [event for event in self._scheduled if event.step > step]
        for event in due:
            try:
                self.apply_action(event.action, event.params)
            except LsrSimError as exc:
                logger.warning("step %d: scheduled %s failed: %s", step, event.action, exc)
                self.emit(
                    EventKind.OPERATION_REJECTED,
                    detail={
                        "action": event.action,
                        "params": dict(event.params),
                        "error": type(exc).__name__,
                        "message": str(exc),
                    },
                )

    def _deliver_due(self, step: int) -> None:
        due = [message for when, message in self._in_flight if when <= step]
        self._in_flight = [(when, message) for when, message in self._in_flight if when > step]
        for message in due:
            reason = self._drop_reason(message)
            if reason is not None:
                self.dropped += 1
                self.emit(
                    EventKind.MESSAGE_DROPPED,
                    router=message.receiver,
                    peer=message.sender,
                    detail={"type": message.kind.value, "reason": reason},
                )
                continue
            self.delivered += 1
            self.routers[message.receiver].receive_message(self, message)

    def _drop_reason(self, message: Message) -> Optional[str]:
        receiver = self.routers.get(message.receiver)
        if receiver is None:
            return "receiver does not exist"
        if not receiver.active:
            return "receiver is down"
        if message.problem() is not None:
            return None
        sender = self.routers.get(message.sender)
        if sender is None:
            return "sender does not exist"
        # Anything a router sent before going down dies with it.
        if not sender.active:
            return "sender is down"
        if not self.topology.has_link(message.sender, message.receiver):
            return "link no longer exists"
        return None

    def _expect_reject(self, message: LspMessage) -> bool:
        receiver = self.routers.get(message.receiver)
        if receiver is None:
            return False
        if message.lsp.origin == message.receiver:
            return True
        stored = receiver.lsdb.sequence_of(message.lsp.origin)
        return stored is not None and stored >= message.lsp.sequence

    # Topology changes

    def create_router(self, router_id: RouterId) -> Router:
        if not isinstance(router_id, str) or not router_id or router_id == DIRECT:
            raise InvalidTopologyOperation(f"invalid router id {router_id!r}")
        if router_id in self.routers:
            raise InvalidTopologyOperation(f"router {router_id} already exists")
        self.topology.add_router(router_id)
        router = Router(router_id, sequence=self._retired_sequences.pop(router_id, 0))
        self.routers[router_id] = router
        router.start(self)
        self.emit(EventKind.TOPOLOGY_CHANGED, router=router_id, detail={"action": "create"})
        logger.info("router %s created", router_id)
        return router

    def delete_router(self, router_id: RouterId) -> List[RouterId]:
        router = self._require_router(router_id)
        former = self.topology.remove_router(router_id)
        for nbr in former:
            survivor = self.routers.get(nbr)
            if survivor is not None and survivor.active:
                survivor.remove_neighbor(self, router_id)
        del self.routers[router_id]
        self._flood_requests.discard(router_id)
        self._retired_sequences[router_id] = router.sequence
        self.emit(
            EventKind.TOPOLOGY_CHANGED,
            router=router_id,
            detail={"action": "delete", "former_neighbors": former},
        )
        logger.info("router %s deleted (links to %s removed)", router_id, ", ".join(former) or "nobody")
        return former

    def connect_routers(self, a: RouterId, b: RouterId, cost: Cost = 1, delay: int = 1) -> None:
        if a == b:
            raise InvalidTopologyOperation(f"cannot link {a} to itself")
        for rid in (a, b):
            if not self._require_router(rid).active:
                raise InvalidTopologyOperation(f"router {rid} is down")
        if self.topology.has_link(a, b):
            raise InvalidTopologyOperation(f"link {a}-{b} already exists")
        if isinstance(cost, bool) or not isinstance(cost, int) or cost <= 0:
            raise InvalidTopologyOperation(f"link cost must be a positive integer, got {cost!r}")
        if isinstance(delay, bool) or not isinstance(delay, int) or delay < 0:
            raise InvalidTopologyOperation(f"link delay must be a non-negative integer, got {delay!r}")

        self.topology.add_link(a, b, cost, delay)
        self.routers[a].send_hello_to(self, b, cost)
        self.routers[b].send_hello_to(self, a, cost)
        self.emit(
            EventKind.TOPOLOGY_CHANGED,
            router=a,
            peer=b,
            detail={"action": "connect", "cost": cost, "delay": delay},
        )
        logger.info("link %s-%s added (cost %d)", a, b, cost)

    def disconnect_routers(self, a: RouterId, b: RouterId) -> None:
        self._require_router(a)
        self._require_router(b)
        if not self.topology.remove_link(a, b):
            raise InvalidTopologyOperation(f"no link between {a} and {b}")
        for here, there in ((a, b), (b, a)):
            router = self.routers[here]
            if router.active:
                router.remove_neighbor(self, there)
        self.emit(EventKind.TOPOLOGY_CHANGED, router=a, peer=b, detail={"action": "disconnect"})
        logger.info("link %s-%s removed", a, b)

    def fail_router(self, router_id: RouterId) -> List[RouterId]:
        router = self._require_router(router_id)
        if not router.active:
            raise InvalidTopologyOperation(f"router {router_id} is already down")
        saved = router.fail(self)
        self.topology.set_active(router_id, False)
        self._flood_requests.discard(router_id)
        for nbr in sorted(self.topology.neighbors(router_id)):
            other = self.routers[nbr]
            if other.active:
                other.handle_neighbor_failure(self, router_id)
        self.emit(EventKind.ROUTER_FAILED, router=router_id, detail={"saved_neighbors": saved})
        logger.info("router %s failed", router_id)
        return saved

    def recover_router(self, router_id: RouterId) -> Dict[RouterId, Cost]:
        router = self._require_router(router_id)
        if router.active:
            raise InvalidTopologyOperation(f"router {router_id} is not down")
        self.topology.set_active(router_id, True)
        # Physical links decide who gets a Hello; saved neighbors whose link is gone are skipped.
        targets = {
            nbr: cost
            for nbr, cost in self.topology.neighbors(router_id).items()
            if self.is_active(nbr)
        }
        router.recover(self, targets)
        self.emit(
            EventKind.ROUTER_RECOVERED,
            router=router_id,
            detail={"saved_neighbors": sorted(router.saved_neighbors), "hello_to": sorted(targets)},
        )
        logger.info("router %s recovered", router_id)
        return targets

    def inject_packet(
        self,
        kind: str,
        source: RouterId,
        target: RouterId,
        lsp_owner: Optional[RouterId] = None,
        sequence: Optional[int] = None,
    ) -> Message:
        kind = str(kind).lower()
        if kind not in (MessageKind.HELLO.value, MessageKind.LSP.value):
            raise InvalidPacketInjection(f"unknown packet type {kind!r}")
        for rid in (source, target):
            if rid not in self.routers:
                raise InvalidPacketInjection(f"router {rid} does not exist")
            if not self.routers[rid].active:
                raise InvalidPacketInjection(f"router {rid} is down")
        if source == target:
            raise InvalidPacketInjection("source and target must differ")
        if not self.topology.has_link(source, target):
            raise InvalidPacketInjection(f"{source} and {target} are not directly connected")

        if kind == MessageKind.HELLO.value:
            message: Message = HelloMessage(
                sender=source,
                receiver=target,
                cost=int(self.topology.cost(source, target)),
                timestamp=self.current_step,
            )
            label = "Hello"
        else:
            sender = self.routers[source]
            if target not in sender.neighbors:
                raise InvalidPacketInjection(f"{source} has not discovered {target} as a neighbor yet")
            if lsp_owner is None or sequence is None:
                raise InvalidPacketInjection("an LSP needs both an owner and a sequence number")
            entry = sender.lsdb.get(lsp_owner)
            if entry is None or entry.sequence != sequence:
                raise InvalidPacketInjection(f"{source} does not hold LSP-{lsp_owner}-{sequence}")
            message = LspMessage(sender=source, receiver=target, lsp=entry.to_lsp())
            label = message.lsp.label()

        self.emit(EventKind.PACKET_INJECTED, router=source, peer=target, detail={"packet": label})
        self.send(message)
        logger.info("injected %s from %s to %s", label, source, target)
        return message

    # Queries

    def lsdb_of(self, router_id: RouterId) -> Dict[RouterId, LsdbEntry]:
        router = self.routers.get(router_id)
        return {} if router is None else router.lsdb.snapshot()

    def routing_table_of(self, router_id: RouterId) -> Dict[RouterId, RouteEntry]:
        router = self.routers.get(router_id)
        return {} if router is None else dict(router.routing_table)

    def in_flight(self) -> List[Message]:
        return [message for _, message in self._in_flight]

    def router_state(self, router_id: RouterId) -> AdjacencyState:
        router = self._require_router(router_id)
        if not router.active:
            return AdjacencyState.DOWN
        bidirectional = [
            nbr
            for nbr in router.neighbors
            if self.is_active(nbr) and router_id in self.routers[nbr].neighbors
        ]
        if not bidirectional:
            if router.neighbors or router.hello_pending:
                return AdjacencyState.DISCOVERING
            return AdjacencyState.NO_NEIGHBORS
        if self._router_converged(router, self.topology.active_graph()):
            return AdjacencyState.CONVERGED
        return AdjacencyState.ADJACENT

    def is_converged(self) -> bool:
        if self._flood_requests or any(self._unsettled(m) for m in self.in_flight()):
            return False
        graph = self.topology.active_graph()
        return all(
            self._router_converged(router, graph)
            for router in self.routers.values()
            if router.active
        )

    def _unsettled(self, message: Message) -> bool:
        # A Hello repeating a known neighbor and cost only confirms liveness.
        if message.kind is MessageKind.HELLO:
            receiver = self.routers.get(message.receiver)
            if receiver is not None and receiver.link_cost.get(message.sender) == message.cost:
                return False
        return True

    def _router_converged(self, router: Router, graph: Mapping[RouterId, Mapping[RouterId, Cost]]) -> bool:
        rid = router.router_id
        if router.has_pending_work() or rid in self._flood_requests:
            return False
        for message in self.in_flight():
            if rid in (message.sender, message.receiver) and self._unsettled(message):
                return False
        expected, _ = dijkstra(graph, rid)
        actual = {dst: entry.cost for dst, entry in router.routing_table.items()}
        return actual == expected

    def trace_route(self, source: RouterId, destination: RouterId) -> Union[RouteTrace, UnreachableDestination]:
        """Follow installed routing tables hop by hop, like a ping would."""
        for rid, role in ((source, "source"), (destination, "destination")):
            if rid not in self.routers:
                return UnreachableDestination(source, destination, f"{role} {rid} does not exist")
            if not self.routers[rid].active:
                return UnreachableDestination(source, destination, f"{role} {rid} is down")

        path = [source]
        cost = 0
        current = source
        while current != destination:
            router = self.routers.get(current)
            if router is None or not router.active:
                return UnreachableDestination(source, destination, f"{current} is down")
            entry = router.routing_table.get(destination)
            if entry is None:
                return UnreachableDestination(source, destination, f"{current} has no route to {destination}")
            hop_cost = self.topology.cost(current, entry.next_hop)
            if hop_cost is None:
                return UnreachableDestination(
                    source, destination, f"{current} forwards to {entry.next_hop} over a missing link"
                )
            if entry.next_hop in path:
                return UnreachableDestination(source, destination, f"routing loop at {entry.next_hop}")
            path.append(entry.next_hop)
            cost += hop_cost
            current = entry.next_hop
        return RouteTrace(source=source, destination=destination, path=tuple(path), cost=cost)

    def describe(self) -> Dict[str, Any]:
        routers = {}
        for rid in sorted(self.routers):
            row = self.routers[rid].to_dict()
            row["state"] = self.router_state(rid).value
            routers[rid] = row
        return {
            "step": self.current_step,
            "topology": self.topology.snapshot(),
            "routers": routers,
            "in_flight": len(self._in_flight),
            "delivered": self.delivered,
            "dropped": self.dropped,
        }

    def _require_router(self, router_id: RouterId) -> Router:
        router = self.routers.get(router_id)
        if router is None:
            raise InvalidTopologyOperation(f"router {router_id} does not exist")
        return router


def _param(params: Mapping[str, Any], name: str) -> Any:
    if name not in params:
        raise InvalidTopologyOperation(f"missing parameter {name!r}")
    return params[name]
