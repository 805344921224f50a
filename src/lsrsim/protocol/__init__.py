"""Link-state protocol state machine: messages, LSDB, SPF and routers."""

from lsrsim.protocol.context import NetworkContext
from lsrsim.protocol.lsdb import LinkStateDatabase, LsdbEntry, LspVerdict
from lsrsim.protocol.messages import HelloMessage, Lsp, LspMessage, MessageKind, PendingForward
from lsrsim.protocol.router import Router
from lsrsim.protocol.spf import Inconsistency, compute_routes, dijkstra

__all__ = [
    "HelloMessage",
    "Inconsistency",
    "LinkStateDatabase",
    "LsdbEntry",
    "Lsp",
    "LspMessage",
    "LspVerdict",
    "MessageKind",
    "NetworkContext",
    "PendingForward",
    "Router",
    "compute_routes",
    "dijkstra",
]
