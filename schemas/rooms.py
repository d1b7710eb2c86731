from typing import Optional

from schemas.base import CamelModel
from schemas.events import PresenceUser


class RoomPresenceResponse(CamelModel):
    room: str
    users: list[PresenceUser]
    count: int


class HistoryMessage(CamelModel):
    id: str
    room: Optional[str] = None
    user_id: str
    display_name: str
    text: str
    created_at: str
    avatar_ref: Optional[str] = None


class ChatHistoryResponse(CamelModel):
    room: str
    messages: list[HistoryMessage]
