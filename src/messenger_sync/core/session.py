"""Auth/session gate: credential and admission flags.

The gate is the single source of truth for "is authenticated outbound
traffic allowed". It is shared between the push connection thread (which
applies bans and reads the token on every fresh connection) and the
consumer (which logs in and out), so every access goes through one lock.

Admission flags are one-way: once ``banned`` or ``outdated`` is set it stays
set for the lifetime of the gate.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

import structlog
from packaging.version import InvalidVersion, Version

from messenger_sync.utils.async_helpers import AdmissionError
from messenger_sync.utils.logging import LogEventNames

log = structlog.get_logger()

CredentialListener = Callable[[str | None], None]

OUTDATED_REASON = "Client is outdated. Update to keep chatting."


class SessionGate:
    """Holds the session credential and the banned/outdated flags.

    Listeners registered with ``add_credential_listener`` are told about
    every accepted credential change, including the implicit clear caused by
    a ban. The reconnection engine uses this to authenticate an already-open
    socket.

    Example:
        gate = SessionGate()
        gate.set_credential("token-123", username="alice")
        gate.check_admission()  # raises AdmissionError once banned/outdated
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._token: str | None = None
        self._username: str | None = None
        self._banned = False
        self._ban_reason: str | None = None
        self._outdated = False
        self._listeners: list[CredentialListener] = []

    # =========================================================================
    # Read access
    # =========================================================================

    @property
    def token(self) -> str | None:
        with self._lock:
            return self._token

    @property
    def username(self) -> str | None:
        with self._lock:
            return self._username

    @property
    def logged_in(self) -> bool:
        with self._lock:
            return self._token is not None

    @property
    def banned(self) -> bool:
        with self._lock:
            return self._banned

    @property
    def ban_reason(self) -> str | None:
        with self._lock:
            return self._ban_reason

    @property
    def outdated(self) -> bool:
        with self._lock:
            return self._outdated

    @property
    def suppressed(self) -> bool:
        """True when either admission flag is set."""
        with self._lock:
            return self._banned or self._outdated

    def admission_error(self) -> str | None:
        """Return the user-facing refusal reason, or None if admitted."""
        with self._lock:
            if self._banned:
                return f"Account banned: {self._ban_reason}"
            if self._outdated:
                return OUTDATED_REASON
            return None

    def check_admission(self) -> None:
        """Raise AdmissionError if outbound activity is suppressed."""
        reason = self.admission_error()
        if reason is not None:
            log.warning(LogEventNames.ADMISSION_REFUSED, reason=reason)
            raise AdmissionError(reason)

    # =========================================================================
    # Credential
    # =========================================================================

    def add_credential_listener(self, listener: CredentialListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def set_credential(self, token: str | None, username: str | None = None) -> bool:
        """Set or clear the session credential.

        Clearing only stops future authentication; it does not close an
        open connection. Refused while banned or outdated.

        Args:
            token: New bearer token, or None to log out.
            username: Account name the token belongs to.

        Returns:
            True if the change was applied.
        """
        with self._lock:
            refused = self._banned or self._outdated
            if not refused:
                self._token = token
                self._username = username if token is not None else None
            listeners = list(self._listeners)

        if refused:
            log.warning(LogEventNames.CREDENTIAL_REFUSED, clearing=token is None)
            return False

        if token is None:
            log.info(LogEventNames.CREDENTIAL_CLEARED)
        else:
            log.info(LogEventNames.CREDENTIAL_SET, username=username)

        self._notify(listeners, token)
        return True

    def _notify(self, listeners: list[CredentialListener], token: str | None) -> None:
        for listener in listeners:
            try:
                listener(token)
            except Exception as e:
                log.warning("credential_listener_failed", error=str(e))

    # =========================================================================
    # Admission flags
    # =========================================================================

    def apply_ban(self, reason: str) -> bool:
        """Mark the account banned and drop the credential.

        Only the first call has any effect; later calls keep the original
        reason.

        Returns:
            True if this call set the flag.
        """
        with self._lock:
            if self._banned:
                return False
            self._banned = True
            self._ban_reason = reason
            self._token = None
            self._username = None
            listeners = list(self._listeners)

        log.error(LogEventNames.ACCOUNT_BANNED, reason=reason)
        self._notify(listeners, None)
        return True

    def mark_outdated(self) -> bool:
        """Set the outdated flag. Returns True if this call set it."""
        with self._lock:
            if self._outdated:
                return False
            self._outdated = True

        log.warning(LogEventNames.CLIENT_OUTDATED)
        return True

    def check_version(self, installed: str, required: str | None) -> bool:
        """Compare the installed version against the required one.

        Sets ``outdated`` when the installed version is older. Versions that
        are not PEP 440 compliant are compared as plain strings and any
        difference counts as outdated.

        Returns:
            True if the client is outdated after the check.
        """
        if not required:
            return self.outdated

        try:
            is_older = Version(installed) < Version(required)
        except InvalidVersion:
            is_older = installed.strip() != required.strip()

        if is_older:
            log.info("version_check_failed", installed=installed, required=required)
            self.mark_outdated()
        return self.outdated
