"""Utility functions and helpers.

This module provides various utilities for the messenger client:
- security: Secret redaction, service URL validation
- async_helpers: Error types and async retry
- logging: Structured logging with secret sanitization
"""

from messenger_sync.utils.async_helpers import (
    AdmissionError,
    ApiDecodeError,
    ApiError,
    AuthenticationError,
    BannedError,
    MessengerError,
    TransportClosed,
    TransportError,
)
from messenger_sync.utils.logging import (
    LogEventNames,
    LogFormat,
    LogLevel,
    bind_context,
    clear_context,
    configure_logging,
    unbind_context,
)
from messenger_sync.utils.security import (
    RedactionError,
    SecretRedactor,
    SecurityError,
)

__all__ = [
    # Errors
    "AdmissionError",
    "ApiDecodeError",
    "ApiError",
    "AuthenticationError",
    "BannedError",
    # Logging
    "LogEventNames",
    "LogFormat",
    "LogLevel",
    "MessengerError",
    # Security
    "RedactionError",
    "SecretRedactor",
    "SecurityError",
    "TransportClosed",
    "TransportError",
    "bind_context",
    "clear_context",
    "configure_logging",
    "unbind_context",
]
