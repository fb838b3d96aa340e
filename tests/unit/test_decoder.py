"""Tests for push frame decoding and routing."""

import json

import pytest
from conftest import ban_frame, message_frame

from messenger_sync.core.decoder import DEFAULT_BAN_REASON, PushMessageDecoder
from messenger_sync.core.event_queue import EventQueue
from messenger_sync.core.session import SessionGate
from messenger_sync.models.events import BanNotice, NewMessage
from messenger_sync.models.wire import BannedFrame, NewMessageFrame


class TestDecode:
    """Test frame classification."""

    def test_decode_new_message(self, decoder: PushMessageDecoder) -> None:
        """Test parsing a new_message frame."""
        frame = decoder.decode(message_frame("42", sender="bob", recipient="alice"))
        assert isinstance(frame, NewMessageFrame)
        assert frame.message.from_ == "bob"
        assert frame.message.to == "alice"

    def test_decode_banned(self, decoder: PushMessageDecoder) -> None:
        """Test parsing a banned frame."""
        frame = decoder.decode(ban_frame("spam"))
        assert isinstance(frame, BannedFrame)
        assert frame.reason == "spam"

    def test_decode_bytes_frame(self, decoder: PushMessageDecoder) -> None:
        """Test that binary frames are decoded as UTF-8 text."""
        frame = decoder.decode(message_frame("1").encode("utf-8"))
        assert isinstance(frame, NewMessageFrame)

    def test_numeric_ids_become_strings(self, decoder: PushMessageDecoder) -> None:
        """Test that a numeric id is coerced to its string form."""
        payload = {
            "type": "new_message",
            "message": {"id": 5, "from": "bob", "to": "alice", "content": "hi", "timestamp": 1},
        }
        frame = decoder.decode(json.dumps(payload))
        assert isinstance(frame, NewMessageFrame)
        assert frame.message.id == "5"

    def test_extra_fields_ignored(self, decoder: PushMessageDecoder) -> None:
        """Test that unknown fields do not fail decoding."""
        payload = json.loads(message_frame("7"))
        payload["server_time"] = 123
        payload["message"]["edited"] = False
        assert isinstance(decoder.decode(json.dumps(payload)), NewMessageFrame)

    @pytest.mark.parametrize(
        "frame",
        [
            "not json at all",
            "[1, 2, 3]",
            '"just a string"',
            "{}",
            '{"type": 12}',
            '{"type": "new_message"}',
            '{"type": "new_message", "message": {"id": "1", "from": "bob"}}',
            '{"type": "new_message", "message": {"id": "1", "from": "a", "to": "b", '
            '"content": "x", "timestamp": "yesterday"}}',
            b"\xff\xfe\xfd",
        ],
    )
    def test_malformed_frames_dropped(self, decoder: PushMessageDecoder, frame: str) -> None:
        """Test that malformed frames decode to None without raising."""
        assert decoder.decode(frame) is None

    def test_unknown_type_ignored(self, decoder: PushMessageDecoder) -> None:
        """Test that unrecognised frame types are ignored."""
        assert decoder.decode('{"type": "typing", "user": "bob"}') is None


class TestHandle:
    """Test routing of decoded frames."""

    def test_new_message_enqueued(self, decoder: PushMessageDecoder, queue: EventQueue) -> None:
        """Test that a new message becomes a queued NewMessage event."""
        event = decoder.handle(message_frame("1", sender="bob", recipient="alice"))

        assert isinstance(event, NewMessage)
        assert event.message.sender == "bob"
        assert event.message.recipient == "alice"
        assert event.message.body == "hello 1"
        assert event.message.sent_at == 1700000000
        assert queue.drain_pending() == [event]

    def test_duplicate_ids_all_enqueued(
        self, decoder: PushMessageDecoder, queue: EventQueue
    ) -> None:
        """Test that the decoder leaves deduplication to the cache."""
        decoder.handle(message_frame("1"))
        decoder.handle(message_frame("1"))
        assert len(queue) == 2

    def test_ban_applied_to_gate(
        self, decoder: PushMessageDecoder, gate: SessionGate, queue: EventQueue
    ) -> None:
        """Test that a ban sets the flag, records the reason and drops the token."""
        gate.set_credential("tok", "alice")

        event = decoder.handle(ban_frame("spam"))

        assert event == BanNotice(reason="spam")
        assert gate.banned
        assert gate.ban_reason == "spam"
        assert gate.token is None
        assert not gate.logged_in
        assert queue.drain_pending() == [event]

    def test_ban_twice_single_notice(
        self, decoder: PushMessageDecoder, gate: SessionGate, queue: EventQueue
    ) -> None:
        """Test that a repeated ban produces one notice and keeps the first reason."""
        decoder.handle(ban_frame("spam"))
        assert decoder.handle(ban_frame("abuse")) is None

        assert gate.ban_reason == "spam"
        assert queue.drain_pending() == [BanNotice(reason="spam")]

    def test_ban_without_reason(self, decoder: PushMessageDecoder, gate: SessionGate) -> None:
        """Test the default reason for a ban frame without one."""
        event = decoder.handle(ban_frame(None))
        assert event == BanNotice(reason=DEFAULT_BAN_REASON)
        assert gate.ban_reason == DEFAULT_BAN_REASON

    def test_garbage_not_enqueued(self, decoder: PushMessageDecoder, queue: EventQueue) -> None:
        """Test that malformed and unknown frames leave the queue empty."""
        assert decoder.handle("{broken") is None
        assert decoder.handle('{"type": "presence"}') is None
        assert len(queue) == 0
