from typing import Any, Protocol


class RoomTransport(Protocol):
    """Room-scoped delivery primitive the realtime core emits through.

    Implementations must not block: the core calls these from synchronous
    handlers and expects delivery to be queued, not awaited.
    """

    def join(self, connection_id: str, room: str) -> None: ...

    def leave(self, connection_id: str, room: str) -> None: ...

    def emit_to_room(self, room: str, event: str, payload: Any) -> None: ...
