"""Configuration module for the ElastiCache client."""

from .settings import ClientConfig, Settings, settings

__all__ = ["ClientConfig", "Settings", "settings"]
