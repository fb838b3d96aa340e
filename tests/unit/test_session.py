"""Tests for the auth/session gate."""

from unittest.mock import MagicMock

import pytest

from messenger_sync.core.session import OUTDATED_REASON, SessionGate
from messenger_sync.utils.async_helpers import AdmissionError


class TestCredential:
    """Test setting and clearing the session credential."""

    def test_initial_state(self, gate: SessionGate) -> None:
        """Test a fresh gate."""
        assert gate.token is None
        assert not gate.logged_in
        assert not gate.banned
        assert not gate.outdated
        assert gate.admission_error() is None

    def test_set_and_clear(self, gate: SessionGate) -> None:
        """Test login then logout."""
        assert gate.set_credential("tok", "alice")
        assert gate.token == "tok"
        assert gate.username == "alice"
        assert gate.logged_in

        assert gate.set_credential(None)
        assert gate.token is None
        assert gate.username is None

    def test_listener_notified(self, gate: SessionGate) -> None:
        """Test that listeners see every accepted change."""
        listener = MagicMock()
        gate.add_credential_listener(listener)

        gate.set_credential("tok", "alice")
        gate.set_credential(None)

        assert [c.args for c in listener.call_args_list] == [("tok",), (None,)]

    def test_failing_listener_does_not_break_gate(self, gate: SessionGate) -> None:
        """Test that a raising listener is logged and skipped."""
        gate.add_credential_listener(MagicMock(side_effect=RuntimeError("boom")))
        second = MagicMock()
        gate.add_credential_listener(second)

        assert gate.set_credential("tok")
        second.assert_called_once_with("tok")

    def test_refused_when_outdated(self, gate: SessionGate) -> None:
        """Test that an outdated client cannot set a credential."""
        listener = MagicMock()
        gate.add_credential_listener(listener)
        gate.mark_outdated()

        assert gate.set_credential("tok") is False
        assert gate.token is None
        listener.assert_not_called()

    def test_refused_when_banned(self, gate: SessionGate) -> None:
        """Test that a banned account cannot log in again."""
        gate.apply_ban("spam")
        assert gate.set_credential("tok") is False
        assert gate.token is None


class TestAdmissionFlags:
    """Test ban and outdated flags."""

    def test_ban_clears_credential(self, gate: SessionGate) -> None:
        """Test that a ban drops the token and notifies listeners."""
        listener = MagicMock()
        gate.add_credential_listener(listener)
        gate.set_credential("tok", "alice")

        assert gate.apply_ban("spam") is True

        assert gate.banned
        assert gate.ban_reason == "spam"
        assert gate.token is None
        assert gate.username is None
        listener.assert_called_with(None)

    def test_first_ban_wins(self, gate: SessionGate) -> None:
        """Test that later bans keep the first reason."""
        gate.apply_ban("spam")
        assert gate.apply_ban("abuse") is False
        assert gate.ban_reason == "spam"

    def test_mark_outdated_once(self, gate: SessionGate) -> None:
        """Test the outdated flag return values."""
        assert gate.mark_outdated() is True
        assert gate.mark_outdated() is False
        assert gate.outdated
        assert gate.suppressed

    def test_check_admission_banned(self, gate: SessionGate) -> None:
        """Test the banned refusal message."""
        gate.apply_ban("spam")
        with pytest.raises(AdmissionError, match="Account banned: spam"):
            gate.check_admission()

    def test_check_admission_outdated(self, gate: SessionGate) -> None:
        """Test the outdated refusal message."""
        gate.mark_outdated()
        with pytest.raises(AdmissionError) as exc_info:
            gate.check_admission()
        assert exc_info.value.reason == OUTDATED_REASON

    def test_check_admission_passes(self, gate: SessionGate) -> None:
        """Test that a clean gate admits."""
        gate.check_admission()


class TestVersionCheck:
    """Test the installed vs required version comparison."""

    @pytest.mark.parametrize(
        "installed,required,outdated",
        [
            ("1.0.0", "1.2.0", True),
            ("1.2.0", "1.2.0", False),
            ("1.3.0", "1.2.0", False),
            ("1.10.0", "1.9.0", False),
            ("1.0.0", None, False),
            ("1.0.0", "", False),
            ("build-a", "build-b", True),
            ("build-a", "build-a", False),
        ],
    )
    def test_version_comparison(
        self, installed: str, required: str | None, outdated: bool
    ) -> None:
        """Test which version pairs mark the client outdated."""
        gate = SessionGate()
        assert gate.check_version(installed, required) is outdated
        assert gate.outdated is outdated

    def test_outdated_is_permanent(self, gate: SessionGate) -> None:
        """Test that a later passing check does not clear the flag."""
        gate.check_version("1.0.0", "2.0.0")
        assert gate.check_version("3.0.0", "2.0.0") is True
