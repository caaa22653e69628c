# roomrelay/api/routes/root.py

from fastapi import APIRouter

router = APIRouter()


@router.get("/")
async def root():
    """
    Root endpoint - API information.

    Returns basic info about the relay and where its endpoints live.
    """
    return {
        "message": "Room Relay - multi-room chat",
        "version": "1.0",
        "protocol": {
            "client_events": ["joinRoom", "chatMessage", "clearChat", "leaveRoom"],
            "server_events": ["message", "chatHistory", "roomUsers", "chatCleared", "error"],
        },
        "endpoints": {
            "websocket": "/ws",
            "rooms": "/rooms",
            "history": "/rooms/{room}/messages",
            "health": "/health",
        },
    }
