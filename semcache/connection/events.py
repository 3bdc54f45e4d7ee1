"""
Connection Lifecycle Events

Reports the four lifecycle signals of the shared store connection:

    connect       socket to a node established
    ready         handshake (AUTH, etc.) finished, commands can flow
    reconnecting  a command or connect attempt failed and will be retried
    error         a connection-level failure reached the cache layer

Handlers are passive: they run inline, must return immediately and never
touch cache state. A handler that raises is logged and skipped.
"""

import copy
import inspect
import logging
from enum import Enum
from typing import Callable, Dict, List, Optional

from redis.asyncio.retry import Retry

logger = logging.getLogger(__name__)

Handler = Callable[[Optional[BaseException]], None]


class ConnectionEvent(Enum):
    """Lifecycle signals emitted for the store connection."""
    ERROR = "error"
    CONNECT = "connect"
    RECONNECTING = "reconnecting"
    READY = "ready"


class ConnectionState(Enum):
    """Last known state of the connection."""
    CONNECTING = "connecting"
    READY = "ready"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"
    ERROR = "error"


_STATE_AFTER = {
    ConnectionEvent.CONNECT: ConnectionState.CONNECTING,
    ConnectionEvent.READY: ConnectionState.READY,
    ConnectionEvent.RECONNECTING: ConnectionState.RECONNECTING,
    ConnectionEvent.ERROR: ConnectionState.ERROR,
}


def _log_error(error: Optional[BaseException]) -> None:
    logger.error(f"Redis throws error {error}")


def _log_connect(error: Optional[BaseException]) -> None:
    logger.info("Redis has connected")


def _log_reconnecting(error: Optional[BaseException]) -> None:
    logger.warning("Redis has lost connection, it is trying to reconnect")


def _log_ready(error: Optional[BaseException]) -> None:
    logger.info("Redis is ready to work hard!")


class ConnectionObserver:
    """
    Fan-out of connection lifecycle events to registered handlers.

    The default handlers write one diagnostic log line per event. Extra
    handlers can be added with on().

    Attributes:
        state: Last ConnectionState derived from emitted events
    """

    def __init__(self, log_events: bool = True):
        self._handlers: Dict[ConnectionEvent, List[Handler]] = {
            event: [] for event in ConnectionEvent
        }
        self.state = ConnectionState.CLOSED

        if log_events:
            self.on(ConnectionEvent.ERROR, _log_error)
            self.on(ConnectionEvent.CONNECT, _log_connect)
            self.on(ConnectionEvent.RECONNECTING, _log_reconnecting)
            self.on(ConnectionEvent.READY, _log_ready)

    def on(self, event: ConnectionEvent, handler: Handler) -> None:
        """Register handler for event."""
        self._handlers[event].append(handler)

    def emit(self, event: ConnectionEvent, error: Optional[BaseException] = None) -> None:
        """Update state and notify every handler of event."""
        self.state = _STATE_AFTER[event]
        for handler in self._handlers[event]:
            try:
                handler(error)
            except Exception:
                logger.exception(f"Handler for '{event.value}' failed")

    def closed(self) -> None:
        self.state = ConnectionState.CLOSED

    async def on_connection(self, connection) -> None:
        """
        Connect hook for redis connections.

        Runs in place of the connection's own on_connect(), so it performs
        the handshake itself and reports connect/ready around it.
        """
        self.emit(ConnectionEvent.CONNECT)
        await connection.on_connect()
        self.emit(ConnectionEvent.READY)


class ObservedRetry(Retry):
    """
    redis Retry policy that reports retried failures as 'reconnecting'.

    Only failures followed by another attempt are reported; the final
    failure surfaces to the caller and becomes an 'error' event there.
    """

    def __init__(self, observer: ConnectionObserver, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.observer = observer

    def _will_retry(self, failures: int) -> bool:
        return self._retries < 0 or failures <= self._retries

    async def call_with_retry(self, do, fail, *args, **kwargs):
        failures = 0

        async def _fail(error, *rest):
            nonlocal failures
            failures += 1
            if self._will_retry(failures):
                self.observer.emit(ConnectionEvent.RECONNECTING, error)
            result = fail(error, *rest)
            if inspect.isawaitable(result):
                await result

        return await super().call_with_retry(do, _fail, *args, **kwargs)

    def __deepcopy__(self, memo):
        # Connections copy their retry policy; the observer must stay shared
        return ObservedRetry(
            self.observer,
            copy.deepcopy(self._backoff, memo),
            self._retries,
            self._supported_errors,
        )
