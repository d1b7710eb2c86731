from datetime import datetime
from typing import Annotated, Optional

from pydantic import StringConstraints

from schemas.base import CamelModel

# inbound
JOIN_ROOM = "join-room"
CHAT_MESSAGE = "chat-message"

# outbound
CONNECTED = "connected"
PRESENCE_SNAPSHOT = "presence-snapshot"
CHAT_BROADCAST = "chat-broadcast"

NonBlank = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class JoinRoomRequest(CamelModel):
    user_id: NonBlank
    room: NonBlank
    display_name: Optional[str] = None
    avatar_ref: Optional[str] = None


class ChatMessageIn(CamelModel):
    text: NonBlank


class PresenceUser(CamelModel):
    user_id: str
    connection_count: int
    display_name: str
    avatar_ref: Optional[str] = None


class PresenceSnapshot(CamelModel):
    users: list[PresenceUser]
    count: int


class ChatBroadcast(CamelModel):
    id: str
    room: str
    user_id: str
    display_name: str
    text: str
    created_at: datetime
    avatar_ref: Optional[str] = None
