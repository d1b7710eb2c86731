from fastapi import APIRouter, Depends, Query, Request
from starlette.requests import HTTPConnection

from auth import get_current_user_id
from backend import RedisBackend, get_backend
from presence.protocol import PresenceService
from schemas.rooms import ChatHistoryResponse, HistoryMessage, RoomPresenceResponse
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


def get_presence(connection: HTTPConnection) -> PresenceService:
    return connection.app.state.presence


@rooms_router.get("/{room}/presence", response_model=RoomPresenceResponse)
async def get_room_presence(
    room: str,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    presence: PresenceService = Depends(get_presence),
):
    """
    Current online users for a class room.

    Read-only view of the in-memory membership registry; live updates are
    pushed over the WebSocket as ``presence-snapshot`` frames.
    """
    client_host = request.client.host if request.client else "unknown"
    snapshot = presence.snapshot(room)
    logger.info(f"Presence request for room {room} by {user_id} from {client_host}: {snapshot.count} users online")
    return RoomPresenceResponse(room=room, users=snapshot.users, count=snapshot.count)


@rooms_router.get("/{room}/messages", response_model=ChatHistoryResponse)
async def get_room_messages(
    room: str,
    limit: int = Query(50, ge=1, le=200),
    user_id: str = Depends(get_current_user_id),
    backend: RedisBackend = Depends(get_backend),
):
    messages = backend.get_chat_history(room, limit=limit)
    logger.debug(f"Returning {len(messages)} history messages for room {room} to {user_id}")
    return ChatHistoryResponse(room=room, messages=[HistoryMessage.model_validate(m) for m in messages])
