# roomrelay/services/room_registry.py

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Iterable, List
import logging

logger = logging.getLogger(__name__)


class Room:
    """A named broadcast group and the connection ids currently inside it."""

    def __init__(self, name: str):
        self.name = name
        # dict keeps join order and rejects duplicates
        self.members: Dict[str, None] = {}
        self.created_at = datetime.now(timezone.utc)

    def add_member(self, participant_id: str) -> None:
        self.members.setdefault(participant_id, None)

    def remove_member(self, participant_id: str) -> bool:
        if participant_id not in self.members:
            return False
        del self.members[participant_id]
        return True

    def has_member(self, participant_id: str) -> bool:
        return participant_id in self.members

    def member_count(self) -> int:
        return len(self.members)


# ============================================================================
# ROOM REGISTRY
# ============================================================================

class RoomRegistry:
    """
    In-process mapping of room name -> participants currently joined.

    Rooms are created lazily on first join and are never removed, so an
    emptied room keeps its entry. Operations on unknown rooms or unknown
    participants are silent no-ops: a disconnect racing an explicit leave
    must never raise.

    The registry is only touched from the event loop thread, so it needs no
    locking. One instance is built per application and handed to the
    connection manager and the sessions.

    Usage:
        registry = RoomRegistry(default_rooms=["lobby"])
        registry.join("lobby", "conn-1")
        registry.count("lobby")  # 1
    """

    def __init__(self, default_rooms: Iterable[str] = ()) -> None:
        self.rooms: Dict[str, Room] = {}
        for name in default_rooms:
            self.rooms[name] = Room(name)

    def join(self, room: str, participant_id: str) -> None:
        """Add a participant to a room, creating the room if needed. Idempotent."""
        if room not in self.rooms:
            self.rooms[room] = Room(room)
            logger.info("✓ Created room '%s'", room)
        self.rooms[room].add_member(participant_id)

    def leave(self, room: str, participant_id: str) -> bool:
        """
        Remove a participant from one room.

        Returns:
            True if the participant was a member and has been removed,
            False if there was nothing to remove.
        """
        entry = self.rooms.get(room)
        if entry is None:
            return False
        return entry.remove_member(participant_id)

    def remove_everywhere(self, participant_id: str) -> List[str]:
        """
        Remove a participant from every room that lists it.

        Scans all rooms rather than trusting the one-room-per-connection
        rule. Returns the names of the rooms it was removed from.
        """
        removed: List[str] = []
        for name, entry in self.rooms.items():
            if entry.remove_member(participant_id):
                removed.append(name)
        return removed

    def count(self, room: str) -> int:
        entry = self.rooms.get(room)
        return entry.member_count() if entry else 0

    def members(self, room: str) -> List[str]:
        entry = self.rooms.get(room)
        return list(entry.members) if entry else []

    def rooms_of(self, participant_id: str) -> List[str]:
        return [name for name, entry in self.rooms.items() if entry.has_member(participant_id)]

    def get_room(self, room: str) -> Room | None:
        return self.rooms.get(room)

    def list_rooms(self) -> List[Room]:
        return list(self.rooms.values())
