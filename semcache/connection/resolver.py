"""
Connection Resolver Module

Turns a resolved CacheConfig into the long-lived store client:

- One address                  -> redis.asyncio.Redis
- Comma separated addresses,
  or cluster flag set          -> redis.asyncio.cluster.RedisCluster

Construction never touches the network. connect() issues a PING and
reports the outcome through the ConnectionObserver; a failure is reported,
never raised, so the process keeps running and each cache operation fails
by its own contract until the client's retry logic recovers.
"""

import logging
from typing import Any, Optional

from redis.asyncio import Redis
from redis.asyncio.cluster import ClusterNode, RedisCluster
from redis.backoff import ExponentialBackoff
from redis.cluster import LoadBalancingStrategy
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from ..config.settings import CacheConfig, settings
from .events import ConnectionEvent, ConnectionObserver, ObservedRetry

logger = logging.getLogger(__name__)

# Refused or reset sockets surface as plain OSError while connecting
RETRY_ERRORS = (ConnectionError, TimeoutError, OSError)


class ConnectionResolver:
    """
    Builds and opens the store client for a CacheConfig.

    Attributes:
        config: The resolved configuration
        observer: Receives connect/ready/reconnecting/error events
    """

    def __init__(self, config: CacheConfig, observer: ConnectionObserver):
        self.config = config
        self.observer = observer
        # True when the client reports connect/ready from its own hook
        self._hooked = False

    def _retry(self) -> ObservedRetry:
        return ObservedRetry(
            self.observer,
            ExponentialBackoff(cap=settings.BACKOFF_CAP, base=settings.BACKOFF_BASE),
            settings.RETRY_ATTEMPTS,
            supported_errors=RETRY_ERRORS,
        )

    def build(self) -> Any:
        """
        Construct the client for the configured topology.

        Returns:
            Redis for a single node, RedisCluster for cluster mode
        """
        if self.config.cluster_mode:
            nodes = [ClusterNode(host, port) for host, port in self.config.nodes]
            logger.debug(f"Building cluster client for {len(nodes)} startup nodes")
            self._hooked = False
            return RedisCluster(
                startup_nodes=nodes,
                password=self.config.password,
                decode_responses=True,
                load_balancing_strategy=LoadBalancingStrategy.ROUND_ROBIN_REPLICAS,
                retry=self._retry(),
                retry_on_error=[ConnectionError, TimeoutError],
            )

        logger.debug(f"Building single node client for {self.config.host}:{self.config.port}")
        self._hooked = True
        return Redis(
            host=self.config.host,
            port=self.config.port,
            password=self.config.password,
            decode_responses=True,
            retry=self._retry(),
            retry_on_error=[ConnectionError, TimeoutError],
            redis_connect_func=self.observer.on_connection,
        )

    async def connect(self, client: Optional[Any] = None) -> Any:
        """
        Open the connection, building the client first if none is given.

        Args:
            client: An already constructed client (injected), or None

        Returns:
            The client, whether or not the first PING succeeded
        """
        if client is None:
            client = self.build()
        else:
            self._hooked = False

        try:
            await client.ping()
        except (RedisError, OSError) as e:
            self.observer.emit(ConnectionEvent.ERROR, e)
            return client

        if not self._hooked:
            self.observer.emit(ConnectionEvent.CONNECT)
            self.observer.emit(ConnectionEvent.READY)
        return client
