"""Membership registry: which users are online in which room, through which connections.

Layout is ``{room: {user_id: {connection_id, ...}}}``. A user key exists only
while it holds at least one connection and a room key only while it holds at
least one user, so ``count(room)`` is always the number of distinct online users.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Set

from logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DisplayAttrs:
    display_name: str = ""
    avatar_ref: Optional[str] = None


@dataclass(frozen=True)
class MemberEntry:
    user_id: str
    connection_ids: frozenset
    display_name: str
    avatar_ref: Optional[str]

    @property
    def connection_count(self) -> int:
        return len(self.connection_ids)


class MembershipRegistry:
    def __init__(self):
        self._rooms: Dict[str, Dict[str, Set[str]]] = {}
        # latest display attributes per room and user, dropped with the user entry
        self._profiles: Dict[str, Dict[str, DisplayAttrs]] = {}

    def add(self, room: str, user_id: str, connection_id: str, display: Optional[DisplayAttrs] = None):
        users = self._rooms.setdefault(room, {})
        connections = users.setdefault(user_id, set())
        connections.add(connection_id)
        if display is not None or user_id not in self._profiles.get(room, {}):
            self._profiles.setdefault(room, {})[user_id] = display or DisplayAttrs(display_name=user_id)
        logger.debug(
            f"Registry add: room={room} user={user_id} conn={connection_id} "
            f"(user connections: {len(connections)}, room users: {len(users)})"
        )

    def remove(self, room: str, user_id: str, connection_id: str) -> bool:
        users = self._rooms.get(room)
        if not users or user_id not in users:
            return False
        connections = users[user_id]
        if connection_id not in connections:
            return False

        connections.discard(connection_id)
        if not connections:
            del users[user_id]
            self._profiles.get(room, {}).pop(user_id, None)
        if not users:
            del self._rooms[room]
            self._profiles.pop(room, None)
            logger.debug(f"Registry: room {room} is now empty and was dropped")
        return True

    def snapshot(self, room: str) -> list:
        users = self._rooms.get(room, {})
        profiles = self._profiles.get(room, {})
        entries = []
        for user_id, connections in users.items():
            profile = profiles.get(user_id) or DisplayAttrs(display_name=user_id)
            entries.append(
                MemberEntry(
                    user_id=user_id,
                    connection_ids=frozenset(connections),
                    display_name=profile.display_name,
                    avatar_ref=profile.avatar_ref,
                )
            )
        return entries

    def count(self, room: str) -> int:
        return len(self._rooms.get(room, {}))
