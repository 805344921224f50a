from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from lsrsim.core.types import EventKind, RouterId
from lsrsim.protocol.messages import Message


class NetworkContext(ABC):
    """Everything a router may touch outside its own state.

    Routers never hold a reference to the network; every operation that sends,
    emits or asks about other routers receives the context explicitly.
    """

    @property
    @abstractmethod
    def step(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def send(self, message: Message) -> None:
        raise NotImplementedError

    @abstractmethod
    def emit(
        self,
        kind: EventKind,
        router: Optional[RouterId] = None,
        peer: Optional[RouterId] = None,
        origin: Optional[RouterId] = None,
        sequence: Optional[int] = None,
        detail: Optional[Dict[str, Any]] = None,
    ) -> None:
        raise NotImplementedError

    @abstractmethod
    def is_active(self, router: RouterId) -> bool:
        raise NotImplementedError

    @abstractmethod
    def request_flood(self, router: RouterId) -> None:
        """Ask for ``router`` to flood its own LSP once the current step's phases are done."""
        raise NotImplementedError
