# roomrelay/core/state.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

from roomrelay.services.connection_manager import ConnectionManager
from roomrelay.services.message_store import MessageStore
from roomrelay.services.room_registry import RoomRegistry


class RelayState:
    """Application-lifetime objects, built once per app and kept on ``app.state.relay``."""

    def __init__(self, store: Optional[MessageStore] = None, default_rooms: Iterable[str] = ()) -> None:
        self.room_registry = RoomRegistry(default_rooms=default_rooms)
        self.connection_manager = ConnectionManager(registry=self.room_registry)
        self.store = store
        self.redis_service = None

        # Metrics
        self.message_counter: int = 0
        self.app_start_time: datetime = datetime.now(timezone.utc)

    def count_message(self) -> None:
        self.message_counter += 1
