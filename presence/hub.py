import asyncio
import json
from typing import Any, Dict, Set

from fastapi import WebSocket

from constants import SOCKET_QUEUE_SIZE
from logging_config import get_logger

logger = get_logger(__name__)


class WebSocketHub:
    """Room-scoped fan-out over local WebSocket connections.

    Emits only enqueue frames; each connection's writer task (``pump``) drains
    its own queue, so frames reach a connection in the order they were emitted.
    """

    def __init__(self, queue_size: int = SOCKET_QUEUE_SIZE):
        self._queue_size = queue_size
        self._outboxes: Dict[str, asyncio.Queue] = {}
        self._rooms: Dict[str, Set[str]] = {}

    def register(self, connection_id: str) -> asyncio.Queue:
        outbox = asyncio.Queue(maxsize=self._queue_size)
        self._outboxes[connection_id] = outbox
        logger.debug(f"Registered outbox for connection {connection_id} (local connections: {len(self._outboxes)})")
        return outbox

    def unregister(self, connection_id: str):
        self._outboxes.pop(connection_id, None)
        for room in [room for room, members in self._rooms.items() if connection_id in members]:
            self.leave(connection_id, room)

    def join(self, connection_id: str, room: str):
        self._rooms.setdefault(room, set()).add(connection_id)

    def leave(self, connection_id: str, room: str):
        members = self._rooms.get(room)
        if not members:
            return
        members.discard(connection_id)
        if not members:
            del self._rooms[room]

    def members(self, room: str) -> Set[str]:
        return set(self._rooms.get(room, set()))

    def emit(self, connection_id: str, event: str, payload: Any):
        outbox = self._outboxes.get(connection_id)
        if outbox is None:
            return
        try:
            outbox.put_nowait({"event": event, "data": payload})
        except asyncio.QueueFull:
            logger.warning(f"Outbox full for connection {connection_id}, dropping {event} frame")

    def emit_to_room(self, room: str, event: str, payload: Any):
        members = self._rooms.get(room, set())
        logger.debug(f"Emitting {event} to {len(members)} local connections in room {room}")
        for connection_id in list(members):
            self.emit(connection_id, event, payload)


async def pump(websocket: WebSocket, outbox: asyncio.Queue):
    """Writer task: send queued frames to one socket until cancelled."""
    while True:
        frame = await outbox.get()
        await websocket.send_text(json.dumps(frame))
