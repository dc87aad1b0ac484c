from typing import List

from fastapi import APIRouter, HTTPException, Request

from errors import RoomNotFound
from logging_config import get_logger
from schemas.rooms import RoomDetailsResponse, RoomListItem

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


@rooms_router.get("/", response_model=List[RoomListItem], response_model_by_alias=True)
async def list_rooms(request: Request):
    """List every live room with its member count and lifetime."""
    store = request.app.state.store
    return [
        RoomListItem(
            name=summary.name,
            user_count=summary.member_count,
            created_at=summary.created_at,
            expires_at=summary.expires_at,
        )
        for summary in store.list()
    ]


@rooms_router.get("/{room_name}", response_model=RoomDetailsResponse, response_model_by_alias=True)
async def get_room_details(room_name: str, request: Request):
    """
    Get room details.

    Returns:
    - name: Room name
    - createdAt: Room creation timestamp
    - expiresAt: Room expiration timestamp
    - userCount: Current number of members
    - users: Member usernames in join order
    """
    client_host = request.client.host if request.client else 'unknown'
    logger.info(f"Room details request for {room_name} from {client_host}")

    try:
        room = request.app.state.store.get(room_name)
    except RoomNotFound:
        logger.warning(f"Room details failed: Room {room_name} not found")
        raise HTTPException(status_code=404, detail="Room not found")

    return RoomDetailsResponse(
        name=room.name,
        created_at=room.created_at,
        expires_at=room.expires_at,
        user_count=room.member_count,
        users=room.usernames,
    )
