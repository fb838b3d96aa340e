"""Error types and retry helpers for the messenger client.

This module provides:
- The exception hierarchy raised by adapters and the session gate
- Retry decorators with exponential backoff for idempotent API reads

Transport failures on the push connection are never raised to the consumer;
the reconnection engine catches them and retries on its own schedule.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

import httpx
import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

log = structlog.get_logger()

P = ParamSpec("P")
T = TypeVar("T")


# =============================================================================
# Custom Exceptions
# =============================================================================


class MessengerError(Exception):
    """Base exception for all messenger client errors."""


class ApiError(MessengerError):
    """A request/response API call failed.

    Attributes:
        status_code: HTTP status of the failed response, if one was received.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(ApiError):
    """Credentials were rejected."""


class BannedError(AuthenticationError):
    """The server reported the account as banned.

    Attributes:
        reason: Human-readable ban reason.
    """

    def __init__(self, reason: str, status_code: int | None = None) -> None:
        super().__init__(f"Account banned: {reason}", status_code)
        self.reason = reason


class ApiDecodeError(ApiError):
    """A response body did not match its schema."""


class AdmissionError(MessengerError):
    """An outbound operation was refused locally (banned or outdated).

    Attributes:
        reason: Human-readable refusal reason.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class TransportError(MessengerError):
    """The push connection failed to open, read or write."""


class TransportClosed(TransportError):
    """The remote end closed the push connection cleanly."""


# =============================================================================
# Retry Decorator
# =============================================================================


def _log_retry(retry_state: RetryCallState) -> None:
    """Log retry attempts for debugging."""
    if retry_state.outcome is None:
        return

    exception = retry_state.outcome.exception()
    if exception:
        log.warning(
            "retrying_operation",
            attempt=retry_state.attempt_number,
            exception_type=type(exception).__name__,
            exception_message=str(exception),
            wait_time=retry_state.next_action.sleep if retry_state.next_action else 0,
        )


def create_retry(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 30.0,
    retry_on: tuple[type[Exception], ...] = (httpx.TimeoutException, httpx.NetworkError),
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Create a customized retry decorator.

    Args:
        max_attempts: Maximum number of attempts.
        min_wait: Minimum wait time between retries (seconds).
        max_wait: Maximum wait time between retries (seconds).
        retry_on: Tuple of exception types to retry on.

    Returns:
        A retry decorator configured with the given parameters.
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(retry_on),
        before_sleep=_log_retry,
        reraise=True,
    )
