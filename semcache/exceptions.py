"""
Error taxonomy for semcache.

Public cache operations never raise these to callers; they are raised
internally and converted to each operation's failure value. The one
exception is ConfigurationError, which propagates from Cache() and configure().
"""

from typing import Optional


class CacheError(Exception):
    """Base class for all semcache errors."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class StoreUnavailableError(CacheError):
    """The backing store could not be reached."""


class SerializationError(CacheError):
    """A value could not be encoded for storage."""


class ProducerError(CacheError):
    """A remember() producer raised or its awaitable failed."""


class ConfigurationError(CacheError):
    """Configuration values could not be resolved."""
