"""Step-driven flooding engine."""

from lsrsim.engine.flood_trace import FloodTrace, Transmission, flood
from lsrsim.engine.network import ACTIONS, Network

__all__ = [
    "ACTIONS",
    "FloodTrace",
    "Network",
    "Transmission",
    "flood",
]
