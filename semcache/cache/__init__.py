"""Cache module for semcache."""

from .codec import decode, encode
from .facade import Cache
from .keys import is_valid_key
from .memory import MemoryStore
from .tasks import BackgroundTasks

__all__ = ["BackgroundTasks", "Cache", "MemoryStore", "decode", "encode", "is_valid_key"]
