# roomrelay/api/websocket.py

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from roomrelay.services.session import ChatSession

logger = logging.getLogger(__name__)

router = APIRouter()

# ============================================================================
# WEBSOCKET ENDPOINT
# ============================================================================

@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for the room chat protocol.

    Every frame is a JSON object {"event": <name>, "data": <payload>}.

    Client -> Server Events:
    ------------------------
    Join Room:
        {"event": "joinRoom", "data": {"room": "lobby"}}
        Sender gets: welcome message, chatHistory, roomUsers
        Others get:  "joined" system message, roomUsers

    Send Message (optionally as a reply):
        {"event": "chatMessage", "data": {"room": "lobby", "message": "hi", "replyTo": "<id>"}}
        Everyone in the room (sender included) gets the stored message

    Clear Chat:
        {"event": "clearChat", "data": "lobby"}
        Everyone in the room gets chatCleared and a system message

    Leave Room:
        {"event": "leaveRoom", "data": {"room": "lobby"}}
        Remaining members get a "left" system message and roomUsers

    Server -> Client Events:
    ------------------------
    message      {"authorId": "...", "message": "...", "replyTo": null | {...}}
    chatHistory  [stored messages, oldest first]
    roomUsers    {"count": 2}
    chatCleared  null
    error        {"message": "..."}   (only when storage fails)

    Lifecycle:
    ==========
    1. Connection accepted and given an opaque participant id
    2. Client joins a room and exchanges messages
    3. On disconnect the participant is removed from every room it was in

    Error Handling:
        - Invalid JSON or unknown/malformed events: dropped silently
        - Storage failures: reported to the sender only, session continues
        - Connection errors: cleanup and log
    """
    relay = websocket.app.state.relay
    connection_id = await relay.connection_manager.connect(websocket)
    session = ChatSession(
        connection_id,
        relay.room_registry,
        relay.connection_manager,
        relay.store,
        on_message=relay.count_message,
    )

    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000))

            data = frame.get("text")
            if data is None:
                logger.warning("Binary frame from %s - dropped", connection_id)
                continue

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning("Invalid JSON from %s - dropped", connection_id)
                continue

            logger.debug("Websocket input from %s: %s", connection_id, message)
            await session.handle(message)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error("WebSocket error on %s: %s", connection_id, e)
    finally:
        await session.disconnect()
