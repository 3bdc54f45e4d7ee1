"""
In-Process Store Module

An asyncio, in-memory stand-in for the Redis command subset the cache
facade issues, so the facade can run without a network store (tests,
local development).

Supported: ping, get, set (ex, nx), getdel, delete, exists, hset
(mapping), hmget, expire, ttl, aclose. Results are shaped like redis-py
responses with decode_responses=True.
"""

import time
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from redis.exceptions import DataError, ResponseError

WRONGTYPE = "WRONGTYPE Operation against a key holding the wrong kind of value"

Entry = Union[str, Dict[str, str]]


class MemoryStore:
    """
    In-memory key-value store with TTL support.

    Entries are only removed by DEL, GETDEL or expiry; the store never
    evicts to make room.

    Internal Storage:
        Format: key -> (value, expiration_timestamp)
        value is a str for plain entries, a dict for hashes
        expiration_timestamp = 0 means no expiration
    """

    def __init__(self):
        self._store: Dict[str, Tuple[Entry, float]] = {}

    def _live(self, key: str) -> Optional[Tuple[Entry, float]]:
        """Return the entry for key, dropping it if expired."""
        item = self._store.get(key)
        if item is None:
            return None
        _, expires_at = item
        if expires_at and expires_at <= time.time():
            # Lazy expiration
            self._store.pop(key, None)
            return None
        return item

    def _insert(self, key: str, value: Entry, expires_at: float) -> None:
        self._store[key] = (value, expires_at)

    @staticmethod
    def _text(value: Any) -> str:
        if isinstance(value, bytes):
            return value.decode()
        return value if isinstance(value, str) else str(value)

    async def ping(self) -> bool:
        return True

    async def get(self, name: str) -> Optional[str]:
        item = self._live(name)
        if item is None:
            return None
        value, _ = item
        if not isinstance(value, str):
            raise ResponseError(WRONGTYPE)
        return value

    async def set(
            self,
            name: str,
            value: Any,
            ex: Optional[int] = None,
            nx: bool = False,
    ) -> Optional[bool]:
        """
        SET name value [EX ex] [NX]

        Returns:
            True when written, None when nx is set and the key exists
        """
        if ex is not None and int(ex) <= 0:
            raise ResponseError("invalid expire time in 'set' command")
        if nx and self._live(name) is not None:
            return None
        expires_at = time.time() + int(ex) if ex is not None else 0
        self._insert(name, self._text(value), expires_at)
        return True

    async def getdel(self, name: str) -> Optional[str]:
        value = await self.get(name)
        if value is not None:
            self._store.pop(name, None)
        return value

    async def delete(self, *names: str) -> int:
        removed = 0
        for name in names:
            if self._live(name) is not None:
                self._store.pop(name, None)
                removed += 1
        return removed

    async def exists(self, *names: str) -> int:
        return sum(1 for name in names if self._live(name) is not None)

    async def hset(
            self,
            name: str,
            key: Optional[str] = None,
            value: Any = None,
            mapping: Optional[Mapping[str, Any]] = None,
    ) -> int:
        """
        HSET name field value [field value ...]

        Returns:
            Number of fields that were newly added
        """
        pairs = dict(mapping or {})
        if key is not None:
            pairs[key] = value
        if not pairs:
            raise DataError("'hset' with no key value pairs")

        item = self._live(name)
        if item is None:
            fields, expires_at = {}, 0
        else:
            fields, expires_at = item
            if not isinstance(fields, dict):
                raise ResponseError(WRONGTYPE)

        added = sum(1 for field in pairs if field not in fields)
        # HSET keeps the existing expiration
        merged = dict(fields)
        merged.update({str(f): self._text(v) for f, v in pairs.items()})
        self._insert(name, merged, expires_at)
        return added

    async def hmget(self, name: str, keys: List[str], *args: str) -> List[Optional[str]]:
        fields = list(keys) + list(args)
        item = self._live(name)
        if item is None:
            return [None] * len(fields)
        value, _ = item
        if not isinstance(value, dict):
            raise ResponseError(WRONGTYPE)
        return [value.get(field) for field in fields]

    async def expire(self, name: str, time_seconds: int) -> bool:
        item = self._live(name)
        if item is None:
            return False
        value, _ = item
        if int(time_seconds) <= 0:
            self._store.pop(name, None)
            return True
        self._store[name] = (value, time.time() + int(time_seconds))
        return True

    async def ttl(self, name: str) -> int:
        """Remaining seconds, -1 if no expiration, -2 if missing."""
        item = self._live(name)
        if item is None:
            return -2
        _, expires_at = item
        if not expires_at:
            return -1
        remaining_ms = (expires_at - time.time()) * 1000
        return int((remaining_ms + 500) // 1000)

    async def aclose(self) -> None:
        """Nothing to release; present for client parity."""

    def size(self) -> int:
        """Number of stored keys, possibly including expired ones."""
        return len(self._store)

    def clear(self) -> None:
        self._store.clear()

    def cleanup_expired(self) -> int:
        """
        Remove all expired keys (active expiration).

        Returns:
            Number of keys removed
        """
        now = time.time()
        to_delete = [k for k, (_, exp) in self._store.items() if exp and exp <= now]
        for key in to_delete:
            self._store.pop(key, None)
        return len(to_delete)
