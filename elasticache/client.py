"""
ElastiCache Client Module

The cache client facade. It runs the discovery pipeline

    resolve endpoint -> fetch node-list line -> parse topology

and configures an emcache client against the discovered nodes.

Usage:
    client, err = await new_client("MY_CLUSTER_ENDPOINT")
    if err is not None:
        ...  # client is usable but has no nodes
    await client.set(Item(key="greeting", value=b"hello", expiration=60))
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional, Sequence, Set, Tuple

import emcache

from .cluster.key_lister import ClusterKeyLister
from .config.settings import ClientConfig
from .discovery.client import DiscoveryClient
from .discovery.node import Topology
from .discovery.parser import TopologyParser
from .discovery.resolver import resolve_endpoint
from .exceptions import ElastiCacheError, NoNodesAvailableError

logger = logging.getLogger(__name__)

MemcachedFactory = Callable[..., Awaitable[Any]]
KeyListerFactory = Callable[[Sequence[str], ClientConfig], Any]


class ClientState(Enum):
    """Enumeration of client states."""
    UNCONFIGURED = auto()  # Discovery failed or never succeeded
    CONFIGURED = auto()    # Topology discovered (possibly zero nodes)


@dataclass
class Item:
    """
    A value to store in the cache.

    Attributes:
        key: The cache key
        value: The raw value
        expiration: Expiration in seconds, or a unix timestamp (0 = never)
    """
    key: str
    value: bytes
    expiration: int = 0


class _ClusterView:
    """
    Everything derived from one discovered topology, swapped as a unit.

    Operations hold the view through `in_use()` so that a replaced view
    only closes its memcached client once they have finished.
    """

    def __init__(self, topology: Topology, memcached: Optional[Any] = None, key_lister: Optional[Any] = None):
        self.topology = topology
        self.memcached = memcached
        self.key_lister = key_lister
        self._active = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @asynccontextmanager
    async def in_use(self) -> AsyncIterator["_ClusterView"]:
        self._active += 1
        self._idle.clear()
        try:
            yield self
        finally:
            self._active -= 1
            if self._active == 0:
                self._idle.set()

    async def retire(self) -> None:
        """Wait for in-flight operations, then close the memcached client."""
        await self._idle.wait()
        if self.memcached is not None:
            await self.memcached.close()


async def _create_emcache_client(topology: Topology, config: ClientConfig) -> Any:
    """Create an emcache client for the nodes of a topology."""
    return await emcache.create_client(
        [emcache.MemcachedHostAddress(node.ip, node.port) for node in topology],
        timeout=config.client_timeout,
        max_connections=config.max_connections,
    )


def _create_key_lister(addresses: Sequence[str], config: ClientConfig) -> ClusterKeyLister:
    return ClusterKeyLister(addresses, timeout=config.client_timeout)


class CacheClient:
    """
    Memcached client configured from ElastiCache auto-discovery.

    A client is always usable as an object. When discovery fails it stays
    UNCONFIGURED with zero nodes and keeps the failure in `last_error`.

    Attributes:
        config: The configuration owned by this client
        state: UNCONFIGURED or CONFIGURED
        last_error: The most recent discovery failure, if any
    """

    def __init__(
            self,
            config: Optional[ClientConfig] = None,
            memcached_factory: Optional[MemcachedFactory] = None,
            key_lister_factory: Optional[KeyListerFactory] = None,
    ):
        """
        Initialize an unconfigured client. Use `create()` to also discover.

        Args:
            config: Client configuration (defaults to ClientConfig())
            memcached_factory: Coroutine building the memcached client from
                (topology, config); defaults to an emcache client
            key_lister_factory: Callable building the key lister from
                (addresses, config); defaults to ClusterKeyLister
        """
        self.config = config if config is not None else ClientConfig()
        self.discovery = DiscoveryClient(timeout=self.config.discovery_timeout)
        self.parser = TopologyParser()
        self._memcached_factory = memcached_factory or _create_emcache_client
        self._key_lister_factory = key_lister_factory or _create_key_lister

        self.state = ClientState.UNCONFIGURED
        self.last_error: Optional[ElastiCacheError] = None
        self._view = _ClusterView(topology=Topology.empty())
        self._refresh_lock = asyncio.Lock()
        self._closed = False

    @classmethod
    async def create(cls, config: Optional[ClientConfig] = None, **kwargs) -> "CacheClient":
        """
        Create a client and run topology discovery once.

        Discovery failures do not raise; check `state` or `last_error`.

        Args:
            config: Client configuration
            **kwargs: Factories forwarded to the constructor
        """
        client = cls(config, **kwargs)
        try:
            await client.refresh_topology()
        except ElastiCacheError as exc:
            logger.warning(f"Client created without nodes: {exc}")
        return client

    @property
    def topology(self) -> Topology:
        """The most recently discovered topology."""
        return self._view.topology

    @property
    def addresses(self) -> List[str]:
        """The "ip:port" of each known node."""
        return self._view.topology.addresses

    @property
    def is_configured(self) -> bool:
        return self.state == ClientState.CONFIGURED

    async def discover(self) -> Topology:
        """
        Run the discovery pipeline without touching client state.

        Raises:
            ConfigurationError: If the endpoint address is not set
            NetworkError: If the endpoint cannot be reached
            ProtocolError: If the reply cannot be read or parsed
        """
        endpoint = resolve_endpoint(self.config.endpoint_env_var, self.config.environ)
        raw_line = await self.discovery.fetch_topology_line(endpoint)
        return self.parser.parse(raw_line)

    async def refresh_topology(self) -> Topology:
        """
        Rediscover the cluster and switch to the new node list.

        Topology, memcached client and key lister are replaced together.
        On failure the current ones are kept and the error is raised.

        Returns:
            The newly discovered topology
        """
        async with self._refresh_lock:
            try:
                topology = await self.discover()
            except ElastiCacheError as exc:
                self.last_error = exc
                raise

            key_lister = self._key_lister_factory(topology.addresses, self.config)
            memcached = None
            if topology:
                memcached = await self._memcached_factory(topology, self.config)

            previous = self._view
            self._view = _ClusterView(topology=topology, memcached=memcached, key_lister=key_lister)
            self.state = ClientState.CONFIGURED
            self.last_error = None
            self._closed = False

            logger.info(f"Configured with {len(topology)} nodes: {topology.addresses}")

            await previous.retire()

            return topology

    async def set(self, item: Item) -> None:
        """
        Store an item on the cluster.

        Raises:
            NoNodesAvailableError: If the client has no cache nodes
        """
        async with self._view.in_use() as view:
            if view.memcached is None:
                raise NoNodesAvailableError(self._no_nodes_message())

            await view.memcached.set(item.key.encode(), item.value, exptime=item.expiration)

    async def list_all_keys(self) -> Set[str]:
        """
        List the keys stored across all nodes of the cluster.

        Raises:
            NoNodesAvailableError: If discovery has never succeeded
        """
        async with self._view.in_use() as view:
            if view.key_lister is None:
                raise NoNodesAvailableError(self._no_nodes_message())

            return await view.key_lister.list_all_keys()

    async def close(self) -> None:
        """Close the memcached client. Later operations raise NoNodesAvailableError."""
        async with self._refresh_lock:
            previous = self._view
            self._view = _ClusterView(topology=previous.topology)
            self._closed = True
            await previous.retire()

    def _no_nodes_message(self) -> str:
        if self._closed:
            return "client is closed"
        if self.state == ClientState.UNCONFIGURED:
            return "client is not configured, topology discovery has not succeeded"
        return "cluster reported no nodes"

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def __repr__(self) -> str:
        return (f"CacheClient(state={self.state.name}, "
                f"endpoint_env_var={self.config.endpoint_env_var!r}, "
                f"nodes={self.addresses})")


async def new_client(
        source_name: str = "",
        config: Optional[ClientConfig] = None,
        **kwargs,
) -> Tuple[CacheClient, Optional[ElastiCacheError]]:
    """
    Create a client bound to a configuration source name.

    Args:
        source_name: Configuration key of the endpoint address. Empty uses
            ELASTICACHE_ENDPOINT. Ignored when `config` is given.
        config: Full client configuration
        **kwargs: Factories forwarded to CacheClient

    Returns:
        (client, error). The client is never None; error is None on success.
    """
    if config is None:
        config = ClientConfig(endpoint_env_var=source_name)

    client = await CacheClient.create(config, **kwargs)
    return client, client.last_error
