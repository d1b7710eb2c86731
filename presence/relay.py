import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from pydantic import ValidationError

from presence.sessions import SessionStore
from presence.transport import RoomTransport
from schemas.events import CHAT_BROADCAST, ChatBroadcast, ChatMessageIn
from logging_config import get_logger

logger = get_logger(__name__)

HistoryHook = Callable[[str, ChatBroadcast], Any]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ChatRelay:
    """Stamps inbound chat messages with server-side identity and fans them out to the room.

    Room, sender and avatar are taken from the sender's connection session, never
    from the payload. The history hook runs after delivery and cannot fail it.
    """

    def __init__(
        self,
        sessions: SessionStore,
        transport: RoomTransport,
        history: Optional[HistoryHook] = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ):
        self._sessions = sessions
        self._transport = transport
        self._history = history
        self._clock = clock
        self._id_factory = id_factory
        self._last_stamp: Optional[datetime] = None

    def _stamp(self) -> datetime:
        now = self._clock()
        if self._last_stamp is not None and now < self._last_stamp:
            now = self._last_stamp
        self._last_stamp = now
        return now

    def relay(self, connection_id: str, payload: Any) -> Optional[ChatBroadcast]:
        session = self._sessions.lookup(connection_id)
        if session is None:
            logger.info(f"Dropping chat message from connection {connection_id}: not joined to a room")
            return None

        try:
            inbound = ChatMessageIn.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Dropping malformed chat message from connection {connection_id}: {e.error_count()} errors")
            return None

        message = ChatBroadcast(
            id=self._id_factory(),
            room=session.room,
            user_id=session.user_id,
            display_name=session.display_name,
            text=inbound.text,
            created_at=self._stamp(),
            avatar_ref=session.avatar_ref,
        )
        self._transport.emit_to_room(
            session.room,
            CHAT_BROADCAST,
            message.model_dump(by_alias=True, mode="json", exclude_none=True),
        )
        logger.debug(f"Relayed message {message.id} from {session.user_id} to room {session.room}")

        if self._history is not None:
            try:
                self._history(session.room, message)
            except Exception as e:
                logger.error(f"Failed to hand message {message.id} to chat history: {e}", exc_info=True)
        return message
