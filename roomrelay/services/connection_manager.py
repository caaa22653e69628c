# roomrelay/services/connection_manager.py

from __future__ import annotations

from typing import Any, Dict, Optional
import logging
import uuid

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from roomrelay.services.room_registry import RoomRegistry

logger = logging.getLogger(__name__)


def make_envelope(event: str, payload: Any = None) -> dict:
    """Build the wire frame ``{"event": ..., "data": ...}`` with camelCase keys."""
    return {"event": event, "data": jsonable_encoder(payload, by_alias=True)}


# ============================================================================
# WEBSOCKET CONNECTION MANAGER
# ============================================================================

class ConnectionManager:
    """
    Owns the open WebSocket connections and fans events out to rooms.

    Room membership itself lives in the RoomRegistry; this class only maps
    connection ids to sockets. A room broadcast takes a snapshot of the
    room's members when it is dispatched and delivers to exactly those
    connections, optionally skipping the sender.

    Data Structures:
        connections: Maps connection_id -> WebSocket
                     Example: {"9f1c...": websocket1}

    Delivery is fire-and-forget. A failed send is logged and skipped; the
    broken connection runs its own disconnect flow when its receive loop
    notices the closure, and a reconnecting client re-syncs via joinRoom.

    Scaling:
        - Single instance: all in-memory
        - Multi-instance: set ``relay`` to a Redis pub/sub service; room
          broadcasts are then published and each instance delivers to its
          own local members through ``deliver_to_room``.
    """

    def __init__(self, registry: RoomRegistry) -> None:
        """Initialize connection manager with empty data structures."""
        self.registry = registry

        # Map: connection_id -> WebSocket
        self.connections: Dict[str, WebSocket] = {}

        # Optional cross-process relay (see services/redis_pub_sub.py)
        self.relay = None

    async def connect(self, websocket: WebSocket) -> str:
        """
        Accept a new WebSocket connection and assign its participant id.

        Returns:
            str: Opaque connection id used as the participant identifier
        """
        await websocket.accept()

        connection_id = uuid.uuid4().hex
        self.connections[connection_id] = websocket

        logger.info("✓ Connection %s opened. Total: %d", connection_id, len(self.connections))
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        """Forget a connection. Room membership is cleaned up by the session."""
        if self.connections.pop(connection_id, None) is not None:
            logger.info("✗ Connection %s closed. Total: %d", connection_id, len(self.connections))

    async def send_to(self, connection_id: str, event: str, payload: Any = None) -> None:
        """Deliver an event to a single connection (private acknowledgements)."""
        websocket = self.connections.get(connection_id)
        if websocket is None:
            return
        await self._send(connection_id, websocket, make_envelope(event, payload))

    async def broadcast_to_room(
        self,
        room: str,
        event: str,
        payload: Any = None,
        exclude: Optional[str] = None,
    ) -> None:
        """
        Deliver an event to every connection currently joined to ``room``.

        Args:
            room: Target room name
            event: Server event name (message, roomUsers, ...)
            payload: Model, list or dict; serialized with camelCase aliases
            exclude: Connection id that should not receive it (the sender)
        """
        envelope = make_envelope(event, payload)
        if self.relay is not None:
            try:
                await self.relay.broadcast_to_room(room, envelope, exclude)
            except Exception as e:
                logger.error("Relay publish of %s to room %s failed: %s", event, room, e)
            return
        await self.deliver_to_room(room, envelope, exclude)

    async def deliver_to_room(self, room: str, envelope: dict, exclude: Optional[str] = None) -> None:
        """Fan an already-built envelope out to this process's members of ``room``."""
        # Snapshot before the first await so every recipient is fixed at dispatch time
        recipients = [
            (cid, self.connections[cid])
            for cid in self.registry.members(room)
            if cid != exclude and cid in self.connections
        ]

        if not recipients:
            logger.debug("[routing] Skipped %s: room=%s has no recipients", envelope["event"], room)
            return

        logger.info("📨 Broadcasting %s to room %s: %d clients", envelope["event"], room, len(recipients))

        for connection_id, websocket in recipients:
            await self._send(connection_id, websocket, envelope)

    async def _send(self, connection_id: str, websocket: WebSocket, envelope: dict) -> None:
        try:
            await websocket.send_json(envelope)
        except Exception as e:
            logger.warning("Send to %s failed: %s", connection_id, e)
