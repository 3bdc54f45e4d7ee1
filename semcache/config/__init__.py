"""Configuration module for semcache."""

from .settings import CacheConfig, DEFAULTS, resolve_config, settings

__all__ = ["CacheConfig", "DEFAULTS", "resolve_config", "settings"]
