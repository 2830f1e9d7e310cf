"""
Error Definitions

Every failure raised by the discovery pipeline or the client facade is an
ElastiCacheError. Each pipeline stage raises its own subclass and the
stages above let it propagate unchanged.
"""

from typing import Optional


class ElastiCacheError(Exception):
    """
    Base class for all ElastiCache client errors.

    Attributes:
        message: Human readable description
        cause: The underlying exception, when there is one
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class ConfigurationError(ElastiCacheError):
    """The configuration endpoint address could not be found."""


class NetworkError(ElastiCacheError):
    """A TCP connection could not be established."""


class ProtocolError(ElastiCacheError):
    """A reply could not be read or its payload could not be parsed."""


class NoNodesAvailableError(ElastiCacheError):
    """A cache operation was requested but the client has no cache nodes."""
