"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests.
"""

import os
import socket
from contextlib import closing
from typing import AsyncGenerator, List, Optional, Tuple

import pytest
import pytest_asyncio
from redis.exceptions import ConnectionError

from semcache.cache.facade import Cache
from semcache.cache.memory import MemoryStore
from semcache.connection.events import ConnectionEvent, ConnectionObserver


# ============================================================================
# Store Doubles
# ============================================================================

class FailingStore:
    """
    Client double whose every command fails like an unreachable server.

    Attributes:
        calls: Names of the commands that were attempted
    """

    def __init__(self):
        self.calls: List[str] = []

    def __getattr__(self, name: str):
        async def command(*args, **kwargs):
            self.calls.append(name)
            raise ConnectionError("Error 111 connecting to 127.0.0.1:6379. Connection refused.")
        return command

    async def aclose(self) -> None:
        pass


class RecordingObserver(ConnectionObserver):
    """Observer that keeps every emitted event instead of logging it."""

    def __init__(self):
        super().__init__(log_events=False)
        self.events: List[Tuple[ConnectionEvent, Optional[BaseException]]] = []
        for event in ConnectionEvent:
            self.on(event, lambda error, event=event: self.events.append((event, error)))

    @property
    def names(self) -> List[str]:
        return [event.value for event, _ in self.events]


# ============================================================================
# Store Fixtures
# ============================================================================

@pytest.fixture
def store() -> MemoryStore:
    """Create a fresh, empty MemoryStore."""
    return MemoryStore()


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


# ============================================================================
# Cache Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def cache(store: MemoryStore, observer: RecordingObserver) -> AsyncGenerator[Cache, None]:
    """
    A running Cache backed by the in-process store.

    The environment is replaced by an empty mapping so that cacheHost and
    friends on the test machine do not leak in.
    """
    c = Cache(client=store, observer=observer, environ={})
    await c.run()

    yield c

    await c.close()


@pytest_asyncio.fixture
async def broken_cache(
        failing_store: FailingStore,
        observer: RecordingObserver,
) -> AsyncGenerator[Cache, None]:
    """A running Cache whose store refuses every command."""
    c = Cache(client=failing_store, observer=observer, environ={})
    await c.run()

    yield c

    await c.close()


# ============================================================================
# Live Redis
# ============================================================================

def find_free_port() -> int:
    """Find a local port nothing listens on."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(("127.0.0.1", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


@pytest.fixture
def closed_port() -> int:
    return find_free_port()


def redis_reachable(host: str, port: int) -> bool:
    """Check whether something listens on host:port."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.settimeout(0.5)
        return s.connect_ex((host, port)) == 0


@pytest.fixture
def live_redis() -> None:
    """Skip unless a Redis server is reachable at cacheHost/cachePort."""
    host = os.environ.get("cacheHost", "127.0.0.1").split(",")[0]
    port = int(os.environ.get("cachePort", "6379"))
    if not redis_reachable(host, port):
        pytest.skip(f"no Redis server at {host}:{port}")


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests that need a live Redis server"
    )

