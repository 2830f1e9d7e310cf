"""
Cluster module for the ElastiCache client.

This module provides cluster-wide helpers that work on the discovered
node address list.
"""

from .key_lister import ClusterKeyLister

__all__ = ['ClusterKeyLister']
