# roomrelay/services/session.py

from __future__ import annotations

from enum import Enum
from typing import Optional
import logging

from roomrelay.models.models import (
    CHAT_CLEARED,
    CHAT_HISTORY,
    ERROR,
    MESSAGE,
    ROOM_USERS,
    ChatMessageEvent,
    ClearChatEvent,
    JoinRoomEvent,
    LeaveRoomEvent,
    RoomUsers,
    SystemNotice,
    parse_client_event,
)
from roomrelay.services.connection_manager import ConnectionManager
from roomrelay.services.message_store import MessageStore, PersistenceError
from roomrelay.services.room_registry import RoomRegistry

logger = logging.getLogger(__name__)

JOINED_NOTICE = "A new user has joined the chat"
LEFT_NOTICE = "A user has left the chat"
CLEARED_NOTICE = "Chat history has been cleared"


class SessionState(str, Enum):
    CONNECTED = "connected"
    JOINED = "joined"
    DISCONNECTED = "disconnected"


# ============================================================================
# CHAT SESSION
# ============================================================================

class ChatSession:
    """
    Per-connection protocol handler.

    States:
        CONNECTED (no room) -> JOINED(room) -> ... -> DISCONNECTED

    A connection is in at most one room. Joining another room leaves the
    current one first. Events with a missing room or body are dropped
    without a reply. Storage failures are logged and reported privately to
    the sender; room membership and the connection are left as they were.

    Usage:
        session = ChatSession(connection_id, registry, manager, store)
        await session.handle({"event": "joinRoom", "data": {"room": "lobby"}})
        ...
        await session.disconnect()
    """

    def __init__(
        self,
        connection_id: str,
        registry: RoomRegistry,
        manager: ConnectionManager,
        store: MessageStore,
        on_message=None,
    ) -> None:
        self.connection_id = connection_id
        self.registry = registry
        self.manager = manager
        self.store = store
        self.state = SessionState.CONNECTED
        self.room: Optional[str] = None
        # Called after every relayed chat message (used for counters)
        self._on_message = on_message

    async def handle(self, raw: object) -> None:
        """Dispatch one decoded client frame."""
        if self.state is SessionState.DISCONNECTED:
            return

        event = parse_client_event(raw)
        if event is None:
            logger.debug("Dropped malformed frame from %s: %r", self.connection_id, raw)
            return

        if isinstance(event, JoinRoomEvent):
            await self.join(event.data.room)
        elif isinstance(event, ChatMessageEvent):
            await self.send(event.data.room, event.data.message, event.data.reply_to)
        elif isinstance(event, ClearChatEvent):
            await self.clear(event.data)
        elif isinstance(event, LeaveRoomEvent):
            await self.leave(event.data.room)

    async def join(self, room: str) -> None:
        if not room:
            return

        if self.room is not None and self.room != room:
            await self.leave(self.room)

        already_member = self.connection_id in self.registry.members(room)
        self.registry.join(room, self.connection_id)
        self.room = room
        self.state = SessionState.JOINED
        logger.info("→ %s joined '%s' (%d members)", self.connection_id, room, self.registry.count(room))

        await self.manager.send_to(self.connection_id, MESSAGE, SystemNotice(message=f"Welcome to {room}!"))
        if not already_member:
            await self.manager.broadcast_to_room(
                room, MESSAGE, SystemNotice(message=JOINED_NOTICE), exclude=self.connection_id
            )

        try:
            history = await self.store.history(room)
        except PersistenceError as e:
            logger.error("History fetch failed for room '%s': %s", room, e)
            await self._report_failure("Chat history is unavailable")
        else:
            await self.manager.send_to(self.connection_id, CHAT_HISTORY, history)

        await self.manager.broadcast_to_room(room, ROOM_USERS, RoomUsers(count=self.registry.count(room)))

    async def send(self, room: str, message: str, reply_to: Optional[str] = None) -> None:
        """Persist a chat message (optionally a reply) and relay it to the room."""
        if not room or not message:
            return

        try:
            record = await self.store.append(self.connection_id, room, message, reply_to)
            resolved = await self.store.resolve_reply(record)
        except PersistenceError as e:
            logger.error("Message from %s to '%s' not stored: %s", self.connection_id, room, e)
            await self._report_failure("Message could not be sent")
            return

        if self._on_message is not None:
            self._on_message()
        await self.manager.broadcast_to_room(room, MESSAGE, resolved)

    async def reply(self, room: str, message: str, reply_to: str) -> None:
        await self.send(room, message, reply_to)

    async def clear(self, room: str) -> None:
        # Any connection may clear any room; there is no ownership model.
        if not room:
            return

        try:
            removed = await self.store.clear(room)
        except PersistenceError as e:
            logger.error("Clearing room '%s' failed: %s", room, e)
            await self._report_failure("Chat history could not be cleared")
            return

        logger.info("🧹 %s cleared '%s' (%d messages)", self.connection_id, room, removed)
        await self.manager.broadcast_to_room(room, CHAT_CLEARED)
        await self.manager.broadcast_to_room(room, MESSAGE, SystemNotice(message=CLEARED_NOTICE))

    async def leave(self, room: str) -> None:
        if not room:
            return

        removed = self.registry.leave(room, self.connection_id)
        if self.room == room:
            self.room = None
            self.state = SessionState.CONNECTED

        if removed:
            logger.info("← %s left '%s'", self.connection_id, room)
            await self._announce_departure(room)

    async def disconnect(self) -> None:
        """Transport closed: leave every room still listing this connection."""
        if self.state is SessionState.DISCONNECTED:
            return
        self.state = SessionState.DISCONNECTED
        self.room = None

        rooms = self.registry.remove_everywhere(self.connection_id)
        self.manager.disconnect(self.connection_id)
        for room in rooms:
            await self._announce_departure(room)

    async def _announce_departure(self, room: str) -> None:
        await self.manager.broadcast_to_room(room, MESSAGE, SystemNotice(message=LEFT_NOTICE))
        await self.manager.broadcast_to_room(room, ROOM_USERS, RoomUsers(count=self.registry.count(room)))

    async def _report_failure(self, text: str) -> None:
        await self.manager.send_to(self.connection_id, ERROR, {"message": text})
