"""
ElastiCache Client Configuration Settings

This module contains the process-level defaults for the auto-discovery
client, read once from the environment at import time, and the
per-instance ClientConfig that each CacheClient owns.
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional


def parse_timeout(raw: str) -> Optional[float]:
    """Parse a timeout value where '0' or 'none' disables the timeout."""
    if raw.strip().lower() in ("", "0", "none"):
        return None
    timeout = float(raw)
    if timeout < 0:
        raise ValueError(f"timeout must not be negative, got {raw!r}")
    return timeout or None


@dataclass
class Settings:
    """Client configuration defaults."""

    # Discovery settings
    DEFAULT_ENDPOINT_ENV_VAR: str = "ELASTICACHE_ENDPOINT"
    DISCOVERY_TIMEOUT: Optional[float] = parse_timeout(
        os.environ.get("ELASTICACHE_DISCOVERY_TIMEOUT", "5.0")
    )
    READ_BUFFER_SIZE: int = 64 * 1024  # Longest accepted response line

    # Memcached client settings
    CLIENT_TIMEOUT: float = float(os.environ.get("ELASTICACHE_CLIENT_TIMEOUT", "1.0"))
    MAX_CONNECTIONS: int = int(os.environ.get("ELASTICACHE_MAX_CONNECTIONS", "2"))

    # Logging settings
    DEBUG: bool = os.environ.get("ELASTICACHE_DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.environ.get("ELASTICACHE_LOG_LEVEL", "INFO")
    LOG_FILE: Optional[str] = os.environ.get("ELASTICACHE_LOG_FILE") or None


# Global settings instance
settings = Settings()


@dataclass(frozen=True)
class ClientConfig:
    """
    Configuration owned by a single CacheClient.

    Every client carries its own copy, so clients bound to different
    configuration endpoints can live side by side in one process.

    Attributes:
        endpoint_env_var: Name of the configuration key holding the
            "host:port" of the configuration endpoint. An empty name
            falls back to ELASTICACHE_ENDPOINT.
        discovery_timeout: Seconds allowed for connecting to the endpoint
            and for reading its reply. None waits forever.
        client_timeout: Operation timeout passed to the memcached client.
        max_connections: Connection pool size per node for the memcached client.
        environ: Configuration store to look the endpoint up in.
            None means os.environ at lookup time.
    """
    endpoint_env_var: str = settings.DEFAULT_ENDPOINT_ENV_VAR
    discovery_timeout: Optional[float] = settings.DISCOVERY_TIMEOUT
    client_timeout: float = settings.CLIENT_TIMEOUT
    max_connections: int = settings.MAX_CONNECTIONS
    environ: Optional[Mapping[str, str]] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if not self.endpoint_env_var:
            object.__setattr__(self, "endpoint_env_var", settings.DEFAULT_ENDPOINT_ENV_VAR)
        if self.discovery_timeout is not None and self.discovery_timeout <= 0:
            raise ValueError(f"discovery_timeout must be positive, got {self.discovery_timeout}")
        if self.max_connections < 1:
            raise ValueError(f"max_connections must be at least 1, got {self.max_connections}")
