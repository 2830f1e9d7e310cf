"""
Endpoint Resolver Module

Looks up the configuration endpoint address of a cluster by name.
"""

import logging
import os
from typing import Mapping, Optional, Tuple

from ..config.settings import settings
from ..exceptions import ConfigurationError, NetworkError
from .node import MAX_PORT, MIN_PORT

logger = logging.getLogger(__name__)


def resolve_endpoint(source_name: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """
    Look up the configuration endpoint address.

    Args:
        source_name: Configuration key holding the "host:port" address.
            An empty name falls back to ELASTICACHE_ENDPOINT.
        environ: Configuration store to consult (default: os.environ)

    Returns:
        The "host:port" address of the configuration endpoint

    Raises:
        ConfigurationError: If the key is absent or empty
    """
    name = source_name or settings.DEFAULT_ENDPOINT_ENV_VAR
    store = os.environ if environ is None else environ

    endpoint = store.get(name, "")
    if not endpoint:
        logger.error(f"ElastiCache endpoint not set ({name})")
        raise ConfigurationError("ElastiCache endpoint not set")

    logger.debug(f"Resolved {name} to {endpoint}")
    return endpoint


def split_address(address: str) -> Tuple[str, int]:
    """
    Split a "host:port" address into its parts.

    Bracketed IPv6 literals ("[::1]:11211") have their brackets removed.

    Raises:
        NetworkError: If the address cannot be dialed
    """
    host, sep, raw_port = address.rpartition(":")
    if not sep or not host or not (raw_port.isascii() and raw_port.isdigit()):
        raise NetworkError(f"invalid address {address!r}, expected host:port")

    port = int(raw_port)
    if not MIN_PORT <= port <= MAX_PORT:
        raise NetworkError(f"invalid port in address {address!r}")

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]

    return host, port
