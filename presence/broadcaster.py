from presence.registry import MembershipRegistry
from presence.transport import RoomTransport
from schemas.events import PRESENCE_SNAPSHOT, PresenceSnapshot, PresenceUser
from logging_config import get_logger

logger = get_logger(__name__)


def build_snapshot(registry: MembershipRegistry, room: str) -> PresenceSnapshot:
    users = [
        PresenceUser(
            user_id=entry.user_id,
            connection_count=entry.connection_count,
            display_name=entry.display_name,
            avatar_ref=entry.avatar_ref,
        )
        for entry in registry.snapshot(room)
    ]
    return PresenceSnapshot(users=users, count=registry.count(room))


class PresenceBroadcaster:
    def __init__(self, registry: MembershipRegistry, transport: RoomTransport):
        self._registry = registry
        self._transport = transport

    def broadcast(self, room: str) -> PresenceSnapshot:
        """Push the room's current online list and count to everyone joined to it."""
        snapshot = build_snapshot(self._registry, room)
        self._transport.emit_to_room(room, PRESENCE_SNAPSHOT, snapshot.model_dump(by_alias=True, mode="json"))
        logger.debug(f"Presence broadcast for room {room}: {snapshot.count} users online")
        return snapshot
