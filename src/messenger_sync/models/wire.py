"""Pydantic schemas for the service's JSON payloads.

Every response body and every push frame is decoded through exactly one of
these models. A payload that does not fit its model is a decode failure;
there is no best-effort reconstruction of partial shapes.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .message import ChatMessage, ConversationKind, ConversationSummary, UserSummary


class WireModel(BaseModel):
    """Base for all wire payloads."""

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        coerce_numbers_to_str=True,
        frozen=True,
    )


class WireMessage(WireModel):
    """Message object as sent by the server."""

    id: str
    from_: str = Field(alias="from")
    to: str
    content: str
    timestamp: int

    def to_message(self) -> ChatMessage:
        return ChatMessage(
            id=self.id,
            sender=self.from_,
            recipient=self.to,
            body=self.content,
            sent_at=self.timestamp,
        )


class WireConversation(WireModel):
    id: str
    name: str | None = None
    type: str = "direct"

    def to_summary(self) -> ConversationSummary:
        kind = ConversationKind.GROUP if self.type.lower() == "group" else ConversationKind.DIRECT
        return ConversationSummary(id=self.id, name=self.name or "Unnamed Chat", kind=kind)


class WireUser(WireModel):
    id: str
    username: str

    def to_summary(self) -> UserSummary:
        return UserSummary(id=self.id, username=self.username)


class WireGroupRef(WireModel):
    id: str


# =============================================================================
# Request/response bodies
# =============================================================================


class LoginResponse(WireModel):
    token: str


class RegisterResponse(WireModel):
    success: bool


class BanResponse(WireModel):
    """Error body returned by ``/login`` for banned accounts."""

    banned: bool = False
    reason: str | None = None


class ConversationListResponse(WireModel):
    chats: list[WireConversation]


class MessageListResponse(WireModel):
    messages: list[WireMessage]


class MessageResponse(WireModel):
    message: WireMessage


class UserSearchResponse(WireModel):
    users: list[WireUser]


class CreateGroupResponse(WireModel):
    group: WireGroupRef


# =============================================================================
# Push frames
# =============================================================================


class NewMessageFrame(WireModel):
    type: Literal["new_message"]
    message: WireMessage


class BannedFrame(WireModel):
    type: Literal["banned"]
    reason: str | None = None


PushFrame = Annotated[NewMessageFrame | BannedFrame, Field(discriminator="type")]

push_frame_adapter: TypeAdapter[NewMessageFrame | BannedFrame] = TypeAdapter(PushFrame)

KNOWN_FRAME_TYPES = frozenset({"new_message", "banned"})
