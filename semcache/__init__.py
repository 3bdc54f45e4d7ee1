"""
semcache: Semantic Caching Facade

A small, uniform cache vocabulary (get, put, remember, pull, add, forget,
forever, multiget, multiput) in front of a Redis node or cluster,
built on Python asyncio.
"""

from .cache.facade import Cache
from .config.settings import CacheConfig, resolve_config

__version__ = "1.0.0"

__all__ = ["Cache", "CacheConfig", "resolve_config"]
