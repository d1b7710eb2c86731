from dataclasses import dataclass
from typing import Dict, Optional

from logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConnectionSession:
    connection_id: str
    user_id: str
    room: str
    display_name: str
    avatar_ref: Optional[str] = None


class SessionStore:
    """Per-connection join metadata, consulted again when the connection goes away."""

    def __init__(self):
        self._sessions: Dict[str, ConnectionSession] = {}

    def attach(
        self,
        connection_id: str,
        user_id: str,
        room: str,
        display_name: str,
        avatar_ref: Optional[str] = None,
    ) -> ConnectionSession:
        session = ConnectionSession(
            connection_id=connection_id,
            user_id=user_id,
            room=room,
            display_name=display_name,
            avatar_ref=avatar_ref,
        )
        previous = self._sessions.get(connection_id)
        if previous is not None:
            logger.debug(f"Replacing session for connection {connection_id} (was room {previous.room})")
        self._sessions[connection_id] = session
        return session

    def lookup(self, connection_id: str) -> Optional[ConnectionSession]:
        return self._sessions.get(connection_id)

    def detach(self, connection_id: str) -> Optional[ConnectionSession]:
        return self._sessions.pop(connection_id, None)

