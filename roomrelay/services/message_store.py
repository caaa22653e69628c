# roomrelay/services/message_store.py

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging
import uuid

from roomrelay.models.models import MessageRecord, ResolvedMessage

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Raised when the message store cannot be read or written."""


# ============================================================================
# PERSISTENCE GATEWAY
# ============================================================================

class MessageStore(ABC):
    """
    Storage contract for chat history.

    Sessions only ever talk to this interface. Implementations must raise
    PersistenceError for any storage failure so callers can contain it to
    the event that triggered it.

    Reply references are resolved to a parent summary only when the parent
    still exists and belongs to the same room; anything else resolves to None.
    """

    @abstractmethod
    async def append(
        self,
        author_id: str,
        room: str,
        message: str,
        reply_to: Optional[str] = None,
    ) -> MessageRecord:
        """Persist a new message and return it with its id and timestamp."""

    @abstractmethod
    async def resolve_reply(self, record: MessageRecord) -> ResolvedMessage:
        """Attach the parent summary (or None) to a stored message."""

    @abstractmethod
    async def history(self, room: str) -> List[ResolvedMessage]:
        """All messages of a room, oldest first, replies resolved."""

    @abstractmethod
    async def clear(self, room: str) -> int:
        """Delete every message of a room. Returns how many were removed."""

    async def ensure_indexes(self) -> None:
        return None

    async def close(self) -> None:
        return None


class MemoryMessageStore(MessageStore):
    """Process-local store. Used for development and tests."""

    def __init__(self) -> None:
        self._messages: List[MessageRecord] = []
        self._by_id: Dict[str, MessageRecord] = {}
        self._last_timestamp: Optional[datetime] = None

    def _next_timestamp(self) -> datetime:
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now < self._last_timestamp:
            now = self._last_timestamp
        self._last_timestamp = now
        return now

    async def append(self, author_id, room, message, reply_to=None) -> MessageRecord:
        record = MessageRecord(
            id=uuid.uuid4().hex,
            author_id=author_id,
            room=room,
            message=message,
            timestamp=self._next_timestamp(),
            reply_to=reply_to,
        )
        self._messages.append(record)
        self._by_id[record.id] = record
        return record

    async def resolve_reply(self, record: MessageRecord) -> ResolvedMessage:
        parent = self._by_id.get(record.reply_to) if record.reply_to else None
        return ResolvedMessage.from_record(record, parent)

    async def history(self, room: str) -> List[ResolvedMessage]:
        # list order is insertion order and timestamps never decrease
        records = [m for m in self._messages if m.room == room]
        return [await self.resolve_reply(m) for m in records]

    async def clear(self, room: str) -> int:
        kept = [m for m in self._messages if m.room != room]
        removed = len(self._messages) - len(kept)
        self._messages = kept
        self._by_id = {m.id: m for m in kept}
        return removed


def build_message_store(settings) -> MessageStore:
    """Create the store selected by STORAGE_BACKEND."""
    if settings.STORAGE_BACKEND == "memory":
        logger.info("✓ Using in-memory message store")
        return MemoryMessageStore()
    if settings.STORAGE_BACKEND == "mongo":
        from roomrelay.services.mongo_store import MongoMessageStore

        return MongoMessageStore(settings.MONGO_URI, collection=settings.MONGO_COLLECTION)
    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND}")
