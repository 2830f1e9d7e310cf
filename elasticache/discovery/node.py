"""
Cluster Node and Topology Definitions

This module defines the data structures produced by topology discovery.
Both are immutable once built.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Tuple


MIN_PORT = 1
MAX_PORT = 65535


@dataclass(frozen=True)
class Node:
    """
    A single cache node reported by the configuration endpoint.

    Attributes:
        host: Logical hostname of the node
        ip: IP address literal of the node
        port: TCP port the node serves memcached on

    The connection string is always derived from ip and port, see `address`.
    """
    host: str
    ip: str
    port: int

    def __post_init__(self):
        """Validate the node fields after initialization."""
        if not self.host:
            raise ValueError("node host must not be empty")
        if not self.ip:
            raise ValueError("node ip must not be empty")
        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise ValueError(f"node port must be an integer, got {self.port!r}")
        if not MIN_PORT <= self.port <= MAX_PORT:
            raise ValueError(f"node port out of range: {self.port}")

    @property
    def address(self) -> str:
        """Connection string for the node, "ip:port"."""
        return f"{self.ip}:{self.port}"


@dataclass(frozen=True)
class Topology:
    """
    Ordered collection of nodes, in the order the endpoint reported them.

    Attributes:
        nodes: The nodes of the cluster
    """
    nodes: Tuple[Node, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "nodes", tuple(self.nodes))

    @classmethod
    def empty(cls) -> "Topology":
        """Create a topology without any node."""
        return cls()

    @property
    def addresses(self) -> List[str]:
        """The "ip:port" address of each node, in order."""
        return [node.address for node in self.nodes]

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    def __getitem__(self, index: int) -> Node:
        return self.nodes[index]

    def __bool__(self) -> bool:
        return bool(self.nodes)
