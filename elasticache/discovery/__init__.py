"""
Discovery module for the ElastiCache client.

This module provides the auto-discovery pipeline:
- Configuration endpoint lookup
- The "config get cluster" exchange with the endpoint
- Parsing of the reported node list
"""

from .client import DiscoveryClient, fetch_topology_line, read_topology_line
from .node import Node, Topology
from .parser import TopologyParser, format_topology, parse_topology
from .resolver import resolve_endpoint, split_address

__all__ = [
    "DiscoveryClient",
    "Node",
    "Topology",
    "TopologyParser",
    "fetch_topology_line",
    "format_topology",
    "parse_topology",
    "read_topology_line",
    "resolve_endpoint",
    "split_address",
]
