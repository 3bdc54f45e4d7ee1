"""
Cache Facade Module

The public cache vocabulary, built on the shared store connection:

    get / put / forever / forget / has / pull / add / remember
    multiget / multiput / ttl

Every operation validates its key first and reports failure through its
return value (None, False or []) instead of raising. Operations are
coroutines except forget(), which schedules a background delete.

Usage:
    async with Cache({"cacheHost": "127.0.0.1"}) as cache:
        await cache.put("user:1", {"name": "alice"}, 60)
        profile = await cache.remember("user:2", 60, load_profile)
"""

import asyncio
import inspect
import logging
from typing import Any, Iterable, List, Mapping, Optional

from redis.exceptions import ConnectionError, RedisError, ResponseError, TimeoutError

from ..config.settings import CacheConfig, resolve_config
from ..connection.events import ConnectionEvent, ConnectionObserver
from ..connection.resolver import ConnectionResolver
from ..exceptions import ProducerError, SerializationError, StoreUnavailableError
from .codec import decode, encode
from .keys import is_valid_key
from .tasks import BackgroundTasks

logger = logging.getLogger(__name__)

# Store failures every operation converts to its failure value
_STORE_FAILURES = (RedisError, OSError, StoreUnavailableError)


class Cache:
    """
    Semantic cache in front of a Redis node or cluster.

    The facade owns one client for its lifetime. Pass client= to inject
    an existing one (a MemoryStore in tests, a pre-built Redis in an app);
    otherwise run() builds it from the resolved configuration.

    Attributes:
        config: Resolved CacheConfig (frozen after run())
        observer: ConnectionObserver receiving lifecycle events
        tasks: BackgroundTasks holding fire-and-forget operations
    """

    def __init__(
            self,
            config: Optional[Mapping[str, Any]] = None,
            client: Any = None,
            observer: Optional[ConnectionObserver] = None,
            environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize the facade. Does not touch the network.

        Args:
            config: Explicit config mapping (cacheHost, cachePort, ...)
            client: Pre-built store client to use instead of building one
            observer: Lifecycle observer (a logging one by default)
            environ: Environment snapshot (default os.environ)
        """
        self._environ = environ
        self._client = client
        self._running = False
        self.observer = observer if observer is not None else ConnectionObserver()
        self.tasks = BackgroundTasks()
        self.config: CacheConfig = resolve_config(environ, config)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def configure(self, config: Optional[Mapping[str, Any]]) -> CacheConfig:
        """
        Replace the explicit configuration layer and re-resolve.

        Has no effect once run() has been called.
        """
        if self._running:
            logger.warning("configure() called after run(); live connection keeps its config")
            return self.config
        self.config = resolve_config(self._environ, config)
        return self.config

    async def run(self) -> None:
        """Build (unless injected) and open the store connection."""
        if self._running:
            logger.warning("run() called twice; keeping the existing connection")
            return
        logger.debug(f"Connecting with {self.config!r}")
        resolver = ConnectionResolver(self.config, self.observer)
        self._client = await resolver.connect(self._client)
        self._running = True

    async def close(self) -> None:
        """Wait for background operations, then close the client."""
        await self.tasks.drain()
        if self._client is not None:
            await self._client.aclose()
        self._running = False
        self.observer.closed()

    async def drain(self) -> None:
        """Wait until every fire-and-forget operation has finished."""
        await self.tasks.drain()

    async def __aenter__(self) -> "Cache":
        await self.run()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def running(self) -> bool:
        return self._running

    @property
    def client(self) -> Any:
        return self._client

    def _store(self) -> Any:
        if not self._running or self._client is None:
            raise StoreUnavailableError("cache is not running, call run() first")
        return self._client

    def _report(self, operation: str, key: Any, error: Exception) -> None:
        """Log a store failure; connection-level ones also go to the observer."""
        if isinstance(error, (ConnectionError, TimeoutError, OSError)):
            self.observer.emit(ConnectionEvent.ERROR, error)
        logger.debug(f"{operation} failed for key {key!r}: {error}")

    # ------------------------------------------------------------------
    # Scalar entries
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Any:
        """
        Retrieve a value.

        Returns:
            The decoded value, or None on miss, bad key, store error
            or undecodable payload
        """
        if not is_valid_key(key):
            return None
        try:
            text = await self._store().get(key)
        except _STORE_FAILURES as e:
            self._report("get", key, e)
            return None
        return decode(text)

    async def _write(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        payload = encode(value)
        if ttl is not None:
            await self._store().set(key, payload, ex=ttl)
        else:
            await self._store().set(key, payload)

    async def put(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Store a value, expiring after ttl seconds when ttl is given.

        Returns:
            True on success, False on bad key, encode or store failure
        """
        if not is_valid_key(key):
            return False
        try:
            await self._write(key, value, ttl)
        except SerializationError as e:
            logger.debug(f"put rejected value for key {key!r}: {e}")
            return False
        except _STORE_FAILURES as e:
            self._report("put", key, e)
            return False
        return True

    async def forever(self, key: str, value: Any) -> bool:
        """Store a value with no expiration."""
        return await self.put(key, value)

    def forget(self, key: str) -> Optional[asyncio.Task]:
        """
        Delete a key in the background.

        Best effort: the returned task resolves to None whether or not
        the delete succeeded. Returns None for an invalid key.
        """
        if not is_valid_key(key):
            return None
        return self.tasks.spawn(self._delete(key), f"DEL {key}")

    async def _delete(self, key: str) -> None:
        await self._store().delete(key)

    async def has(self, key: str) -> bool:
        """True iff the store reports the key exists."""
        if not is_valid_key(key):
            return False
        try:
            return bool(await self._store().exists(key))
        except _STORE_FAILURES as e:
            self._report("has", key, e)
            return False

    async def ttl(self, key: str) -> Optional[int]:
        """
        Remaining seconds for key as reported by the store.

        Returns:
            Seconds left, -1 for no expiration, -2 for a missing key,
            None on bad key or store error
        """
        if not is_valid_key(key):
            return None
        try:
            return await self._store().ttl(key)
        except _STORE_FAILURES as e:
            self._report("ttl", key, e)
            return None

    async def pull(self, key: str) -> Any:
        """
        Retrieve a value and delete it in one GETDEL.

        Falls back to GET then background DEL on stores without GETDEL.
        """
        if not is_valid_key(key):
            return None
        try:
            text = await self._store().getdel(key)
        except ResponseError as e:
            if "unknown command" not in str(e).lower():
                self._report("pull", key, e)
                return None
            return await self._pull_in_two_steps(key)
        except _STORE_FAILURES as e:
            self._report("pull", key, e)
            return None
        return decode(text)

    async def _pull_in_two_steps(self, key: str) -> Any:
        value = await self.get(key)
        if value is not None:
            self.forget(key)
        return value

    async def add(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Store a value only if the key does not exist (SET NX).

        Returns:
            True if written, False if the key existed or on failure
        """
        if not is_valid_key(key):
            return False
        try:
            written = await self._store().set(key, encode(value), ex=ttl, nx=True)
        except SerializationError as e:
            logger.debug(f"add rejected value for key {key!r}: {e}")
            return False
        except _STORE_FAILURES as e:
            self._report("add", key, e)
            return False
        return bool(written)

    async def remember(self, key: str, ttl: Optional[int], value_or_producer: Any = None) -> Any:
        """
        Read-through: return the cached value, or produce and store one.

        On a miss, value_or_producer is called when callable (awaiting
        its result if needed) and otherwise used as the value. A produced
        value is written back in the background when ttl is given; the
        write is not complete when this returns. A failing producer
        yields None and nothing is written.

        Only None counts as a miss; stored falsy values are hits.
        """
        if not is_valid_key(key):
            return None

        cached = await self.get(key)
        if cached is not None:
            return cached

        value = await self._produce(key, value_or_producer)
        if value is not None and ttl is not None:
            self.tasks.spawn(self._write(key, value, ttl), f"write-back of {key}")
        return value

    async def _produce(self, key: str, value_or_producer: Any) -> Any:
        if not callable(value_or_producer):
            return value_or_producer
        try:
            result = value_or_producer()
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            error = ProducerError(f"producer for key {key!r} failed: {e!r}", key=key)
            logger.warning(str(error))
            return None
        return result

    # ------------------------------------------------------------------
    # Hash entries
    # ------------------------------------------------------------------

    async def multiget(self, key: str, fields: Iterable[str]) -> List[Any]:
        """
        Retrieve hash fields of key, in the order requested.

        A single string is treated as one field name.

        Returns:
            Decoded values aligned with fields (None for missing fields),
            or [] on bad key or store error
        """
        if not is_valid_key(key):
            return []
        fields = [fields] if isinstance(fields, str) else list(fields)
        if not fields:
            return []
        try:
            raw = await self._store().hmget(key, fields)
        except _STORE_FAILURES as e:
            self._report("multiget", key, e)
            return []
        return [decode(text) for text in raw]

    async def multiput(self, key: str, data: Mapping[str, Any], ttl: Optional[int] = None) -> bool:
        """
        Store several hash fields under key.

        A truthy ttl schedules a background EXPIRE on the whole hash.

        Returns:
            True unless the key is invalid or the hash write failed
        """
        if not is_valid_key(key):
            return False
        try:
            mapping = {field: encode(value) for field, value in data.items()}
            await self._store().hset(key, mapping=mapping)
        except SerializationError as e:
            logger.debug(f"multiput rejected data for key {key!r}: {e}")
            return False
        except _STORE_FAILURES as e:
            self._report("multiput", key, e)
            return False

        if ttl:
            self.tasks.spawn(self._expire(key, ttl), f"EXPIRE {key}")
        return True

    async def _expire(self, key: str, ttl: int) -> None:
        await self._store().expire(key, ttl)
