"""Configuration loading and validation."""

from .loader import load_config
from .schema import (
    ClientConfig,
    CredentialsConfig,
    LoggingConfig,
    MessengerConfig,
    ReconnectConfig,
    RetryConfig,
    ServerConfig,
)

__all__ = [
    # Loader
    "load_config",
    # Root config
    "MessengerConfig",
    # Sections
    "ServerConfig",
    "ReconnectConfig",
    "RetryConfig",
    "CredentialsConfig",
    "ClientConfig",
    "LoggingConfig",
]
