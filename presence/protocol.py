"""Room session protocol: connect -> join -> (message | rejoin)* -> disconnect.

Every handler is a synchronous, in-memory step. Membership mutations are
followed in the same step by exactly one presence broadcast for the affected
room, so joined clients observe membership changes in server order.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import ValidationError

from presence.broadcaster import PresenceBroadcaster, build_snapshot
from presence.registry import DisplayAttrs, MembershipRegistry
from presence.relay import ChatRelay, HistoryHook
from presence.sessions import SessionStore
from presence.transport import RoomTransport
from schemas.events import CHAT_MESSAGE, JOIN_ROOM, JoinRoomRequest, PresenceSnapshot
from logging_config import get_logger

logger = get_logger(__name__)


class ConnectionState(str, Enum):
    CONNECTED = "connected"
    JOINED = "joined"
    DISCONNECTED = "disconnected"


class PresenceService:
    def __init__(
        self,
        transport: RoomTransport,
        registry: Optional[MembershipRegistry] = None,
        sessions: Optional[SessionStore] = None,
        history: Optional[HistoryHook] = None,
        relay: Optional[ChatRelay] = None,
    ):
        self.transport = transport
        self.registry = registry or MembershipRegistry()
        self.sessions = sessions or SessionStore()
        self.broadcaster = PresenceBroadcaster(self.registry, transport)
        self.relay = relay or ChatRelay(self.sessions, transport, history=history)
        self._states: Dict[str, ConnectionState] = {}
        self._principals: Dict[str, str] = {}

    def connect(self, connection_id: str, principal: Optional[str] = None):
        """Register a fresh transport connection, optionally bound to an authenticated user id."""
        self._states[connection_id] = ConnectionState.CONNECTED
        if principal:
            self._principals[connection_id] = principal
        logger.debug(f"Connection {connection_id} connected (principal={principal})")

    def state(self, connection_id: str) -> ConnectionState:
        return self._states.get(connection_id, ConnectionState.DISCONNECTED)

    def join(self, connection_id: str, payload: Any) -> Optional[PresenceSnapshot]:
        if self._states.get(connection_id) is None:
            # transports that skip connect() still get a usable connection
            self._states[connection_id] = ConnectionState.CONNECTED

        try:
            request = JoinRoomRequest.model_validate(payload)
        except ValidationError:
            logger.warning(f"Refusing join from connection {connection_id}: missing user id or room")
            return None

        user_id = request.user_id
        principal = self._principals.get(connection_id)
        if principal and principal != user_id:
            logger.warning(
                f"Connection {connection_id} asked to join as {user_id} but is authenticated as {principal}"
            )
            user_id = principal

        display_name = (request.display_name or "").strip() or user_id
        previous = self.sessions.lookup(connection_id)
        if previous is not None and (previous.room != request.room or previous.user_id != user_id):
            self._leave(connection_id, previous.room, previous.user_id)
            self.broadcaster.broadcast(previous.room)

        self.sessions.attach(connection_id, user_id, request.room, display_name, request.avatar_ref)
        self.registry.add(
            request.room,
            user_id,
            connection_id,
            DisplayAttrs(display_name=display_name, avatar_ref=request.avatar_ref),
        )
        self.transport.join(connection_id, request.room)
        self._states[connection_id] = ConnectionState.JOINED
        logger.info(
            f"JOIN: {display_name} ({user_id}) -> room {request.room} "
            f"({self.registry.count(request.room)} unique users)"
        )
        return self.broadcaster.broadcast(request.room)

    def send_message(self, connection_id: str, payload: Any):
        return self.relay.relay(connection_id, payload)

    def disconnect(self, connection_id: str) -> Optional[PresenceSnapshot]:
        self._states.pop(connection_id, None)
        self._principals.pop(connection_id, None)

        session = self.sessions.lookup(connection_id)
        if session is None:
            logger.debug(f"Connection {connection_id} disconnected without joining a room")
            return None

        self._leave(connection_id, session.room, session.user_id)
        self.sessions.detach(connection_id)
        logger.info(f"LEAVE: {session.display_name} ({session.user_id}) left room {session.room}")
        return self.broadcaster.broadcast(session.room)

    def dispatch(self, connection_id: str, event: Optional[str], data: Any):
        if event == JOIN_ROOM:
            return self.join(connection_id, data)
        if event == CHAT_MESSAGE:
            return self.send_message(connection_id, data)
        logger.warning(f"Ignoring unknown event {event!r} from connection {connection_id}")
        return None

    def snapshot(self, room: str) -> PresenceSnapshot:
        return build_snapshot(self.registry, room)

    def _leave(self, connection_id: str, room: str, user_id: str):
        self.registry.remove(room, user_id, connection_id)
        self.transport.leave(connection_id, room)
