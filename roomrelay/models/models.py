# roomrelay/models/models.py
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

SYSTEM_AUTHOR = "system"

# Server -> client event names
MESSAGE = "message"
CHAT_HISTORY = "chatHistory"
ROOM_USERS = "roomUsers"
CHAT_CLEARED = "chatCleared"
ERROR = "error"


# ============================================================================
# STORED MESSAGES
# ============================================================================

class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class MessageRecord(CamelModel):
    """Persisted form of a chat message. ``reply_to`` is the parent's id."""
    id: str
    author_id: str = Field(alias="authorId")
    room: str
    message: str
    timestamp: datetime
    reply_to: Optional[str] = Field(default=None, alias="replyTo")


class ReplySummary(CamelModel):
    id: str
    author_id: str = Field(alias="authorId")
    message: str


class ResolvedMessage(CamelModel):
    """A stored message with its reply reference replaced by the parent summary."""
    id: str
    author_id: str = Field(alias="authorId")
    room: str
    message: str
    timestamp: datetime
    reply_to: Optional[ReplySummary] = Field(default=None, alias="replyTo")

    @classmethod
    def from_record(cls, record: MessageRecord, parent: Optional[MessageRecord]) -> "ResolvedMessage":
        summary = None
        if parent is not None and parent.room == record.room:
            summary = ReplySummary(id=parent.id, author_id=parent.author_id, message=parent.message)
        return cls(
            id=record.id,
            author_id=record.author_id,
            room=record.room,
            message=record.message,
            timestamp=record.timestamp,
            reply_to=summary,
        )


class SystemNotice(CamelModel):
    author_id: str = Field(default=SYSTEM_AUTHOR, alias="authorId")
    message: str
    reply_to: None = Field(default=None, alias="replyTo")


class RoomUsers(BaseModel):
    count: int


class RoomInfo(BaseModel):
    name: str
    member_count: int = 0


# ============================================================================
# CLIENT -> SERVER EVENTS
# ============================================================================

class JoinRoomData(BaseModel):
    room: str = Field(min_length=1)


class ChatMessageData(CamelModel):
    room: str = Field(min_length=1)
    message: str = Field(min_length=1)
    reply_to: Optional[str] = Field(default=None, alias="replyTo")

    @field_validator("reply_to", mode="before")
    @classmethod
    def _blank_reply_is_none(cls, value):
        # Clients send "" or null when the message is not a reply
        return value or None


class LeaveRoomData(BaseModel):
    room: str = Field(min_length=1)


class JoinRoomEvent(BaseModel):
    event: Literal["joinRoom"]
    data: JoinRoomData


class ChatMessageEvent(BaseModel):
    event: Literal["chatMessage"]
    data: ChatMessageData


class ClearChatEvent(BaseModel):
    event: Literal["clearChat"]
    data: str = Field(min_length=1)  # bare room name


class LeaveRoomEvent(BaseModel):
    event: Literal["leaveRoom"]
    data: LeaveRoomData


ClientEvent = Annotated[
    Union[JoinRoomEvent, ChatMessageEvent, ClearChatEvent, LeaveRoomEvent],
    Field(discriminator="event"),
]

_client_event_adapter: TypeAdapter[ClientEvent] = TypeAdapter(ClientEvent)


def parse_client_event(raw: object) -> Optional[ClientEvent]:
    """
    Validate a decoded client frame.

    Returns None for anything that does not match one of the known events,
    including empty room names or message bodies.
    """
    try:
        return _client_event_adapter.validate_python(raw)
    except ValidationError:
        return None
