"""Push frame decoding and routing.

Each complete inbound frame is classified by its ``type`` field:

- ``banned``: applied to the session gate immediately (flag, reason,
  credential cleared); the first notice is also queued so the consumer can
  show one alert.
- ``new_message``: converted to a ChatMessage and queued. The decoder never
  touches the message cache; the consumer is its only writer.
- anything else: ignored.

Malformed frames are logged and dropped. Nothing here raises into the
receive loop.
"""

from __future__ import annotations

import json
from typing import Any

import structlog
from pydantic import ValidationError

from messenger_sync.core.event_queue import EventQueue
from messenger_sync.core.session import SessionGate
from messenger_sync.models.events import BanNotice, InboundEvent, NewMessage
from messenger_sync.models.wire import (
    KNOWN_FRAME_TYPES,
    BannedFrame,
    NewMessageFrame,
    push_frame_adapter,
)
from messenger_sync.utils.logging import LogEventNames

log = structlog.get_logger()

DEFAULT_BAN_REASON = "No reason provided"

# Longest frame excerpt included in malformed-frame logs
FRAME_PREVIEW_CHARS = 120


def _preview(text: str) -> str:
    if len(text) <= FRAME_PREVIEW_CHARS:
        return text
    return text[:FRAME_PREVIEW_CHARS] + "..."


class PushMessageDecoder:
    """Classifies push frames and routes them to the gate or the queue."""

    def __init__(self, gate: SessionGate, queue: EventQueue) -> None:
        self._gate = gate
        self._queue = queue

    def decode(self, frame: str | bytes) -> NewMessageFrame | BannedFrame | None:
        """Parse one frame into its typed schema.

        Returns:
            The parsed frame, or None for unknown or malformed frames.
        """
        try:
            text = frame.decode("utf-8") if isinstance(frame, bytes) else frame
        except UnicodeDecodeError as e:
            log.warning(LogEventNames.FRAME_MALFORMED, error=str(e))
            return None

        try:
            payload: Any = json.loads(text)
        except json.JSONDecodeError as e:
            log.warning(LogEventNames.FRAME_MALFORMED, error=str(e), frame=_preview(text))
            return None

        if not isinstance(payload, dict) or not isinstance(payload.get("type"), str):
            log.warning(
                LogEventNames.FRAME_MALFORMED,
                error="missing type discriminant",
                frame=_preview(text),
            )
            return None

        frame_type = payload["type"]
        if frame_type not in KNOWN_FRAME_TYPES:
            log.debug(LogEventNames.FRAME_IGNORED, frame_type=frame_type)
            return None

        try:
            return push_frame_adapter.validate_python(payload)
        except ValidationError as e:
            log.warning(
                LogEventNames.FRAME_MALFORMED,
                frame_type=frame_type,
                errors=e.error_count(),
                frame=_preview(text),
            )
            return None

    def handle(self, frame: str | bytes) -> InboundEvent | None:
        """Decode one frame and route it.

        Returns:
            The event queued for the consumer, if any.
        """
        parsed = self.decode(frame)

        if isinstance(parsed, BannedFrame):
            reason = parsed.reason or DEFAULT_BAN_REASON
            if not self._gate.apply_ban(reason):
                log.debug("duplicate_ban_notice_suppressed", reason=reason)
                return None
            ban = BanNotice(reason=self._gate.ban_reason or reason)
            self._queue.put(ban)
            return ban

        if isinstance(parsed, NewMessageFrame):
            message = parsed.message.to_message()
            event = NewMessage(message=message)
            self._queue.put(event)
            log.debug(
                LogEventNames.MESSAGE_PUSHED,
                message_id=message.id,
                sender=message.sender,
                recipient=message.recipient,
            )
            return event

        return None
