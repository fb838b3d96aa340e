"""Security utilities for credential redaction and endpoint validation.

Session tokens and passwords travel through log statements (request URLs,
frame previews, error messages). The redactor here is applied to every log
entry and fails closed: a pattern error raises instead of letting the raw
text through.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING
from urllib.parse import urlparse

import structlog

if TYPE_CHECKING:
    from collections.abc import Sequence

log = structlog.get_logger()


class SecurityError(Exception):
    """Base exception for security-related errors."""


class RedactionError(SecurityError):
    """Raised when secret redaction fails."""


HTTP_SCHEMES = frozenset({"http", "https"})
PUSH_SCHEMES = frozenset({"ws", "wss"})


class SecretRedactor:
    """Detects and redacts credentials from text.

    Usage:
        redactor = SecretRedactor()
        safe_text = redactor.redact('{"token": "abc123"}')

    Attributes:
        patterns: List of compiled regex patterns to detect secrets.
        placeholder: The string to replace secrets with (default: "[REDACTED]").
    """

    # Each pattern keeps the key (group 1) and replaces only the value
    DEFAULT_PATTERNS: tuple[tuple[str, str], ...] = (
        (r"(?i)(bearer\s+)[\w.~+/=-]+", "Bearer token"),
        (r'(?i)("(?:token|password|auth_token)"\s*:\s*)"[^"]*"', "JSON credential field"),
        (r"(?i)((?:token|password|passwd|secret)\s*[=:]\s*)[\"']?[^\s\"',}]+", "Key/value secret"),
        (r"()eyJ[a-zA-Z0-9_-]*\.eyJ[a-zA-Z0-9_-]*\.[a-zA-Z0-9_-]*", "JWT token"),
    )

    def __init__(
        self,
        placeholder: str = "[REDACTED]",
        custom_patterns: Sequence[tuple[str, str]] | None = None,
    ) -> None:
        """Initialize the SecretRedactor.

        Args:
            placeholder: String to replace detected secrets with.
            custom_patterns: Additional (pattern, name) tuples to detect.
                Each pattern must have exactly one capture group holding the
                prefix to keep.

        Raises:
            RedactionError: If any pattern fails to compile.
        """
        self.placeholder = placeholder
        self._pattern_names: dict[re.Pattern[str], str] = {}

        all_patterns = list(self.DEFAULT_PATTERNS)
        if custom_patterns:
            all_patterns.extend(custom_patterns)

        try:
            for pattern_str, name in all_patterns:
                compiled = re.compile(pattern_str)
                self._pattern_names[compiled] = name
        except re.error as e:
            msg = f"Failed to compile secret pattern '{pattern_str}': {e}"
            log.error("pattern_compilation_failed", pattern=pattern_str, error=str(e))
            raise RedactionError(msg) from e

    @property
    def patterns(self) -> list[re.Pattern[str]]:
        """Return the list of compiled patterns."""
        return list(self._pattern_names.keys())

    def redact(self, text: str) -> str:
        """Redact all credentials from the given text.

        Args:
            text: The text to scan and redact secrets from.

        Returns:
            The text with all detected secrets replaced with placeholder.

        Raises:
            RedactionError: If redaction fails for any reason.
        """
        if not text:
            return text

        replacement = rf"\g<1>{self.placeholder}"
        try:
            result = text
            for pattern in self._pattern_names:
                result = pattern.sub(replacement, result)
            return result
        except Exception as e:
            msg = f"Redaction failed: {e}"
            log.error("redaction_failed", error=str(e))
            raise RedactionError(msg) from e

    def has_secrets(self, text: str) -> bool:
        """Check if text contains any credentials."""
        if not text:
            return False
        return any(pattern.search(text) for pattern in self._pattern_names)


def validate_service_url(url: str, schemes: frozenset[str]) -> bool:
    """Check that a service URL is absolute and uses an allowed scheme.

    Args:
        url: URL to validate.
        schemes: Allowed lowercase scheme names.

    Returns:
        True if the URL is usable, False otherwise.
    """
    if not url:
        return False

    try:
        parsed = urlparse(url)
    except ValueError:
        return False

    return parsed.scheme.lower() in schemes and bool(parsed.hostname)
