# roomrelay/api/routes/rooms.py

from typing import List

from fastapi import APIRouter, HTTPException, Request

from roomrelay.models.models import ResolvedMessage, RoomInfo
from roomrelay.services.message_store import PersistenceError

router = APIRouter()

# ============================================================================
# ROOM INSPECTION ENDPOINTS
# ============================================================================

@router.get("/rooms", response_model=List[RoomInfo])
async def list_rooms(request: Request):
    """
    List all known rooms with their live member counts.

    Rooms appear once seeded at startup or joined for the first time and
    stay listed after they empty.
    """
    registry = request.app.state.relay.room_registry
    return [RoomInfo(name=room.name, member_count=room.member_count()) for room in registry.list_rooms()]


@router.get("/rooms/{room}", response_model=RoomInfo)
async def get_room(room: str, request: Request):
    """
    Get details of a specific room.

    Raises:
        HTTPException: 404 if room not found
    """
    entry = request.app.state.relay.room_registry.get_room(room)
    if not entry:
        raise HTTPException(status_code=404, detail="Room not found")
    return RoomInfo(name=entry.name, member_count=entry.member_count())


@router.get("/rooms/{room}/messages", response_model=List[ResolvedMessage])
async def get_history(room: str, request: Request):
    """
    Stored history of a room, oldest first, with replies resolved.

    Works for any room name, including ones nobody has joined yet.

    Raises:
        HTTPException: 503 if the message store is unavailable
    """
    try:
        return await request.app.state.relay.store.history(room)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))
