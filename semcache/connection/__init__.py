"""
Connection module for semcache.

This module provides:
- Topology selection (single node or cluster) and client construction
- Connection lifecycle events (connect, ready, reconnecting, error)
"""

from .events import ConnectionEvent, ConnectionObserver, ConnectionState, ObservedRetry
from .resolver import ConnectionResolver

__all__ = [
    "ConnectionEvent",
    "ConnectionObserver",
    "ConnectionResolver",
    "ConnectionState",
    "ObservedRetry",
]
