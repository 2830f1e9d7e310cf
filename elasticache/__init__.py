"""
ElastiCache: Memcached Cluster Auto-Discovery Client

Discovers the nodes of an ElastiCache memcached cluster through its
configuration endpoint and configures a memcached client for them.
"""

from .client import CacheClient, ClientState, Item, new_client
from .config.settings import ClientConfig
from .discovery.node import Node, Topology
from .exceptions import (
    ConfigurationError,
    ElastiCacheError,
    NetworkError,
    NoNodesAvailableError,
    ProtocolError,
)

__version__ = "1.0.0"

__all__ = [
    "CacheClient",
    "ClientConfig",
    "ClientState",
    "ConfigurationError",
    "ElastiCacheError",
    "Item",
    "NetworkError",
    "NoNodesAvailableError",
    "Node",
    "ProtocolError",
    "Topology",
    "new_client",
]
