from __future__ import annotations


class LsrSimError(Exception):
    """Base class for recoverable simulator errors."""


class InvalidTopologyOperation(LsrSimError):
    """Raised for topology edits that cannot be applied, e.g. linking a down router."""


class InvalidPacketInjection(LsrSimError):
    """Raised when a hand-crafted packet violates adjacency or LSDB possession rules."""
