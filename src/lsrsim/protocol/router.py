from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Set

from lsrsim.core.types import DIRECT, Cost, EventKind, RouteEntry, RouterId
from lsrsim.protocol.context import NetworkContext
from lsrsim.protocol.lsdb import LinkStateDatabase, LspVerdict
from lsrsim.protocol.messages import (
    HelloMessage,
    Lsp,
    LspMessage,
    MessageKind,
    NeighborList,
    PendingForward,
)
from lsrsim.protocol.spf import compute_routes

logger = logging.getLogger(__name__)


class Router:
    """Per-node link-state protocol state.

    A router owns its neighbor table, its LSDB, its own sequence counter and its
    routing table. Everything it sends or reports goes through the
    ``NetworkContext`` handed to each operation.
    """

    def __init__(self, router_id: RouterId, sequence: int = 0) -> None:
        self.router_id = router_id
        self.active = False
        self.neighbors: Set[RouterId] = set()
        self.link_cost: Dict[RouterId, Cost] = {}
        self.lsdb = LinkStateDatabase(router_id)
        self.sequence = int(sequence)
        self.routing_table: Dict[RouterId, RouteEntry] = {}
        self.needs_table_update = False
        # Hellos sent to routers that have not yet sent one back.
        self.hello_pending: Set[RouterId] = set()
        self.saved_neighbors: Dict[RouterId, Cost] = {}
        self._pending: List[PendingForward] = []
        self._rejected: List[LspMessage] = []
        self._handlers: Dict[MessageKind, Callable[[NetworkContext, Any], None]] = {}
        self.register_handler(MessageKind.HELLO, self.receive_hello)
        self.register_handler(MessageKind.LSP, self.receive_lsp)

    def register_handler(self, kind: MessageKind, handler: Callable[[NetworkContext, Any], None]) -> None:
        self._handlers[kind] = handler

    def start(self, ctx: NetworkContext) -> None:
        _ = ctx
        self.active = True
        self.routing_table = {self.router_id: RouteEntry(next_hop=DIRECT, cost=0)}

    def neighbor_list(self) -> NeighborList:
        return tuple((nbr, int(self.link_cost[nbr])) for nbr in sorted(self.neighbors))

    def has_pending_work(self) -> bool:
        return bool(self._pending or self._rejected or self.needs_table_update)

    # Hello / adjacency

    def send_hello(self, ctx: NetworkContext) -> int:
        """Re-send Hello on every live neighbor relationship whose far end is up."""
        if not self.active or not self.neighbors:
            return 0
        sent = 0
        for nbr in sorted(self.neighbors):
            if not ctx.is_active(nbr):
                continue
            self.send_hello_to(ctx, nbr, self.link_cost[nbr])
            sent += 1
        return sent

    def send_hello_to(self, ctx: NetworkContext, neighbor: RouterId, cost: Cost) -> None:
        if not self.active:
            return
        if neighbor not in self.neighbors:
            self.hello_pending.add(neighbor)
        ctx.send(HelloMessage(sender=self.router_id, receiver=neighbor, cost=int(cost), timestamp=ctx.step))

    def receive_message(self, ctx: NetworkContext, message: Any) -> None:
        handler = self._handlers.get(getattr(message, "kind", None))
        if handler is None:
            self._malformed(ctx, message, "unknown message type")
            return
        problem = message.problem()
        if problem is None and message.receiver != self.router_id:
            problem = f"message addressed to {message.receiver!r}"
        if problem is not None:
            self._malformed(ctx, message, problem)
            return
        if not self.active:
            return
        handler(ctx, message)

    def receive_hello(self, ctx: NetworkContext, msg: HelloMessage) -> None:
        sender = msg.sender
        if not ctx.is_active(sender):
            logger.debug("%s: ignored Hello from %s, which is down", self.router_id, sender)
            return
        ctx.emit(EventKind.HELLO_RECEIVED, router=self.router_id, peer=sender, detail={"cost": msg.cost})
        self.hello_pending.discard(sender)
        first_contact = sender not in self.neighbors
        if not first_contact and self.link_cost.get(sender) == msg.cost:
            return

        self.neighbors.add(sender)
        self.link_cost[sender] = int(msg.cost)
        self.needs_table_update = True
        ctx.request_flood(self.router_id)
        if first_contact:
            logger.debug("%s: new neighbor %s (cost %s)", self.router_id, sender, msg.cost)
            self.send_database(ctx, sender)
        else:
            logger.debug("%s: cost to %s changed to %s", self.router_id, sender, msg.cost)

    def send_database(self, ctx: NetworkContext, neighbor: RouterId) -> int:
        """Send every LSDB entry to a freshly discovered neighbor."""
        entries = self.lsdb.entries()
        for entry in entries:
            ctx.send(LspMessage(sender=self.router_id, receiver=neighbor, lsp=entry.to_lsp()))
        return len(entries)

    # LSP origination and flooding

    def flood_lsp(self, ctx: NetworkContext) -> Optional[Lsp]:
        if not self.active:
            return None
        self.sequence += 1
        lsp = Lsp(
            origin=self.router_id,
            sequence=self.sequence,
            neighbors=self.neighbor_list(),
            timestamp=ctx.step,
        )
        self.lsdb.install(lsp)
        ctx.emit(
            EventKind.LSP_ORIGINATED,
            router=self.router_id,
            origin=self.router_id,
            sequence=lsp.sequence,
            detail={"neighbors": [[nbr, cost] for nbr, cost in lsp.neighbors]},
        )
        for nbr in sorted(self.neighbors):
            ctx.send(LspMessage(sender=self.router_id, receiver=nbr, lsp=lsp))
        return lsp

    def receive_lsp(self, ctx: NetworkContext, msg: LspMessage) -> LspVerdict:
        lsp = msg.lsp
        verdict = self.lsdb.classify(lsp)
        if verdict is LspVerdict.OWN:
            ctx.emit(
                EventKind.LSP_REJECTED,
                router=self.router_id,
                peer=msg.sender,
                origin=lsp.origin,
                sequence=lsp.sequence,
                detail={"reason": "own"},
            )
        elif verdict is LspVerdict.NEW:
            self.lsdb.install(lsp)
            self._pending.append(PendingForward(lsp=lsp, received_from=msg.sender))
            self.needs_table_update = True
            ctx.emit(
                EventKind.LSP_ACCEPTED,
                router=self.router_id,
                peer=msg.sender,
                origin=lsp.origin,
                sequence=lsp.sequence,
            )
        elif verdict is LspVerdict.DUPLICATE:
            self._rejected.append(msg)
        else:
            stored = self.lsdb.sequence_of(lsp.origin)
            logger.debug(
                "%s: stale %s from %s (have sequence %s)",
                self.router_id,
                lsp.label(),
                msg.sender,
                stored,
            )
            ctx.emit(
                EventKind.LSP_STALE,
                router=self.router_id,
                peer=msg.sender,
                origin=lsp.origin,
                sequence=lsp.sequence,
                detail={"stored_sequence": stored},
            )
        return verdict

    def process_rejected(self, ctx: NetworkContext) -> int:
        rejected, self._rejected = self._rejected, []
        for msg in rejected:
            ctx.emit(
                EventKind.LSP_REJECTED,
                router=self.router_id,
                peer=msg.sender,
                origin=msg.lsp.origin,
                sequence=msg.lsp.sequence,
                detail={"reason": "duplicate"},
            )
        return len(rejected)

    def process_routing_table_update(self, ctx: NetworkContext) -> bool:
        if not self.needs_table_update:
            return False
        self.compute_routing_table(ctx)
        return True

    def process_pending_forwards(self, ctx: NetworkContext) -> int:
        """Forward each queued LSP once, to every neighbor except the one it came from."""
        pending, self._pending = self._pending, []
        seen: Set[tuple] = set()
        sent = 0
        for item in pending:
            if item.lsp.key in seen:
                continue
            seen.add(item.lsp.key)
            for nbr in sorted(self.neighbors):
                if nbr == item.received_from:
                    continue
                ctx.send(LspMessage(sender=self.router_id, receiver=nbr, lsp=item.lsp))
                sent += 1
        return sent

    # Routing

    def compute_routing_table(self, ctx: NetworkContext) -> bool:
        table, issues = compute_routes(self.router_id, self.link_cost, self.lsdb.entries())
        self.needs_table_update = False
        for issue in issues:
            if issue.kind == "cost_mismatch":
                logger.warning(
                    "%s: %s-%s advertised with cost %s and %s",
                    self.router_id,
                    issue.u,
                    issue.v,
                    issue.cost_uv,
                    issue.cost_vu,
                )
            else:
                logger.debug("%s: %s lists %s but not the reverse", self.router_id, issue.u, issue.v)
            ctx.emit(EventKind.INCONSISTENCY, router=self.router_id, detail=issue.to_dict())

        changed = table != self.routing_table
        self.routing_table = table
        ctx.emit(
            EventKind.ROUTING_TABLE_UPDATED,
            router=self.router_id,
            detail={
                "changed": changed,
                "routes": {dst: entry.to_list() for dst, entry in sorted(table.items())},
            },
        )
        return changed

    # Topology changes

    def remove_neighbor(self, ctx: NetworkContext, neighbor: RouterId) -> bool:
        self.hello_pending.discard(neighbor)
        if neighbor not in self.neighbors:
            return False
        self.neighbors.discard(neighbor)
        self.link_cost.pop(neighbor, None)
        self.needs_table_update = True
        self.flood_lsp(ctx)
        return True

    def handle_neighbor_failure(self, ctx: NetworkContext, neighbor: RouterId) -> bool:
        removed = self.remove_neighbor(ctx, neighbor)
        if removed:
            logger.info("%s: neighbor %s failed", self.router_id, neighbor)
        return removed

    def fail(self, ctx: NetworkContext) -> List[RouterId]:
        """Go down, keeping the neighbor/cost snapshot; the LSDB stays as it was."""
        _ = ctx
        self.saved_neighbors = dict(self.link_cost)
        self.active = False
        self.neighbors.clear()
        self.link_cost.clear()
        self.hello_pending.clear()
        self._pending.clear()
        self._rejected.clear()
        self.needs_table_update = False
        self.routing_table = {}
        return sorted(self.saved_neighbors)

    def recover(self, ctx: NetworkContext, targets: Mapping[RouterId, Cost]) -> Optional[Lsp]:
        """Come back with no live neighbors, say Hello to ``targets`` and flood at once."""
        self.active = True
        self.neighbors.clear()
        self.link_cost.clear()
        self.routing_table = {self.router_id: RouteEntry(next_hop=DIRECT, cost=0)}
        self.needs_table_update = True
        for nbr, cost in sorted(targets.items()):
            self.send_hello_to(ctx, nbr, cost)
        return self.flood_lsp(ctx)

    # Reporting

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.router_id,
            "active": self.active,
            "sequence": self.sequence,
            "neighbors": {nbr: self.link_cost[nbr] for nbr in sorted(self.neighbors)},
            "lsdb": {entry.origin: entry.to_dict() for entry in self.lsdb.entries()},
            "routing_table": {dst: entry.to_list() for dst, entry in sorted(self.routing_table.items())},
        }

    def format_routing_table(self) -> str:
        lines = [f"Routing table of {self.router_id}", f"{'dest':<8}{'next hop':<10}cost"]
        for dst, entry in sorted(self.routing_table.items()):
            lines.append(f"{dst:<8}{entry.next_hop:<10}{entry.cost}")
        return "\n".join(lines)

    def _malformed(self, ctx: NetworkContext, message: Any, reason: str) -> None:
        sender = getattr(message, "sender", None)
        logger.debug("%s: dropped malformed message from %r: %s", self.router_id, sender, reason)
        ctx.emit(
            EventKind.MALFORMED_MESSAGE,
            router=self.router_id,
            peer=sender if isinstance(sender, str) else None,
            detail={"reason": reason},
        )
