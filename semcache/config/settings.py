"""
semcache Configuration Settings

Connection settings are resolved from three layers, highest first:

    1. Environment variables  cacheHost, cachePort, cachePassword, cacheCluster
    2. An explicit mapping    using the same field names
    3. Built-in defaults      127.0.0.1:6379, no password, single node

A comma in the host ("10.0.0.1,10.0.0.2") selects cluster mode, each
address paired with the single configured port.
"""

import os
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple

from ..exceptions import ConfigurationError

# Environment / explicit config field names
HOST_FIELD = "cacheHost"
PORT_FIELD = "cachePort"
PASSWORD_FIELD = "cachePassword"
CLUSTER_FIELD = "cacheCluster"

FIELDS = (HOST_FIELD, PORT_FIELD, PASSWORD_FIELD, CLUSTER_FIELD)

DEFAULTS: Mapping[str, Any] = {
    HOST_FIELD: "127.0.0.1",
    PORT_FIELD: 6379,
    PASSWORD_FIELD: None,
    CLUSTER_FIELD: False,
}

_TRUTHY = {"true", "1", "yes", "on"}


@dataclass(frozen=True)
class CacheConfig:
    """Resolved connection configuration. Immutable once built."""

    host: str = DEFAULTS[HOST_FIELD]
    port: int = DEFAULTS[PORT_FIELD]
    password: Optional[str] = None
    cluster_mode: bool = False

    @property
    def nodes(self) -> List[Tuple[str, int]]:
        """(host, port) pairs for every comma-separated address."""
        hosts = [h.strip() for h in self.host.split(",")]
        return [(h, self.port) for h in hosts if h]

    def __repr__(self) -> str:
        # Never print the password
        return (f"CacheConfig(host={self.host!r}, port={self.port}, "
                f"password={'***' if self.password else None}, "
                f"cluster_mode={self.cluster_mode})")


def _pick(field: str, *layers: Optional[Mapping[str, Any]]) -> Any:
    """Return the first non-empty value for field across layers."""
    for layer in layers:
        if not layer:
            continue
        value = layer.get(field)
        if value is not None and value != "":
            return value
    return None


def _parse_port(value: Any) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid port: {value!r}")
    if not 0 < port < 65536:
        raise ConfigurationError(f"Port out of range: {port}")
    return port


def _parse_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def resolve_config(
        environ: Optional[Mapping[str, str]] = None,
        explicit: Optional[Mapping[str, Any]] = None,
        defaults: Mapping[str, Any] = DEFAULTS,
) -> CacheConfig:
    """
    Merge configuration layers into one CacheConfig.

    Args:
        environ: Environment snapshot (defaults to os.environ)
        explicit: Caller supplied mapping with the same field names
        defaults: Built-in fallbacks

    Returns:
        Frozen CacheConfig

    Raises:
        ConfigurationError: if the port cannot be parsed
    """
    if environ is None:
        environ = os.environ

    host = str(_pick(HOST_FIELD, environ, explicit, defaults))
    port = _parse_port(_pick(PORT_FIELD, environ, explicit, defaults))
    password = _pick(PASSWORD_FIELD, environ, explicit, defaults)
    cluster = _pick(CLUSTER_FIELD, environ, explicit, defaults)

    return CacheConfig(
        host=host,
        port=port,
        password=str(password) if password is not None else None,
        cluster_mode="," in host or (cluster is not None and _parse_flag(cluster)),
    )


@dataclass
class Settings:
    """Process settings that are not part of the connection config."""

    LOG_LEVEL: str = os.environ.get("cacheLogLevel", "INFO")
    DEBUG: bool = os.environ.get("cacheDebug", "false").lower() == "true"

    # Retry settings handed to the redis client
    RETRY_ATTEMPTS: int = 3
    BACKOFF_CAP: float = 2.0
    BACKOFF_BASE: float = 0.05


# Global settings instance
settings = Settings()
