# roomrelay/api/routes/health.py
from datetime import datetime, timezone

from fastapi import APIRouter, Request

router = APIRouter()

@router.get("/health")
async def health(request: Request):
    """
    Health check endpoint.

    Returns current system status, connection counts, room counts and how
    many chat messages were relayed since startup.
    """
    relay = request.app.state.relay
    uptime_seconds = (datetime.now(timezone.utc) - relay.app_start_time).total_seconds()
    rooms = relay.room_registry.list_rooms()

    return {
        "status": "healthy",
        "connections": len(relay.connection_manager.connections),
        "rooms": len(rooms),
        "active_rooms_with_members": sum(1 for r in rooms if r.member_count()),
        "total_messages": relay.message_counter,
        "uptime_hours": round(uptime_seconds / 3600, 2),
    }
