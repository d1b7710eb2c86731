"""Translation of legacy client frames into the canonical realtime contract.

Older clients emit ``joinRoom``/``chatMessage`` and send the room as
``student_class``/``studentClass``. Everything past this module only sees
``join-room``/``chat-message`` with ``userId``, ``room``, ``displayName``,
``avatarRef`` and ``text``.
"""

import json
from typing import Any, Optional, Tuple

from schemas.events import CHAT_MESSAGE, JOIN_ROOM
from logging_config import get_logger

logger = get_logger(__name__)

EVENT_ALIASES = {
    "joinRoom": JOIN_ROOM,
    "join_room": JOIN_ROOM,
    "chatMessage": CHAT_MESSAGE,
    "chat_message": CHAT_MESSAGE,
    "message": CHAT_MESSAGE,
}

JOIN_FIELD_ALIASES = {
    "userId": ("user_id",),
    "room": ("student_class", "studentClass", "className"),
    "displayName": ("fullName", "full_name", "display_name", "name"),
    "avatarRef": ("idPhotoUrl", "id_photo_url", "avatar_ref"),
}

# Legacy chat payloads carried a room of their own; it is ignored in favour of the session
LEGACY_ROOM_FIELDS = ("room", "student_class", "studentClass", "className")


def normalize_event(name: Any) -> Optional[str]:
    # event names are strings; anything else is treated as an unknown event
    if not isinstance(name, str):
        return None
    return EVENT_ALIASES.get(name, name)


def _first_present(data: dict, canonical: str, aliases: tuple):
    if data.get(canonical) not in (None, ""):
        return data[canonical]
    for alias in aliases:
        if data.get(alias) not in (None, ""):
            return data[alias]
    return data.get(canonical)


def normalize_join_payload(data: Any) -> dict:
    if not isinstance(data, dict):
        return {}
    normalized = {}
    for canonical, aliases in JOIN_FIELD_ALIASES.items():
        value = _first_present(data, canonical, aliases)
        if value is not None:
            normalized[canonical] = value
    return normalized


def normalize_chat_payload(data: Any) -> dict:
    if isinstance(data, str):
        return {"text": data}
    if not isinstance(data, dict):
        return {}
    text = data.get("text")
    if text is None:
        text = data.get("message")
    return {} if text is None else {"text": text}


def claimed_room(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    for field in LEGACY_ROOM_FIELDS:
        value = data.get(field)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def parse_frame(raw: str) -> Tuple[Optional[str], Any]:
    """Split a text frame into (event, data).

    Plain text and JSON objects without an ``event`` key are chat messages.
    """
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError:
        return CHAT_MESSAGE, {"text": raw}

    if isinstance(frame, str):
        return CHAT_MESSAGE, {"text": frame}
    if not isinstance(frame, dict):
        return None, frame
    if "event" not in frame:
        return CHAT_MESSAGE, frame
    return normalize_event(frame.get("event")), frame.get("data", {})


def route_frame(service, connection_id: str, raw: str):
    """Decode one inbound text frame and hand it to the presence service in canonical form.

    Frames that cannot be decoded are logged and dropped; they never end the connection.
    """
    try:
        event, data = parse_frame(raw)
    except (TypeError, ValueError, RecursionError) as e:
        logger.warning(f"Dropping undecodable frame from connection {connection_id}: {type(e).__name__}")
        return None
    if event == JOIN_ROOM:
        data = normalize_join_payload(data)
    elif event == CHAT_MESSAGE:
        room = claimed_room(data)
        session = service.sessions.lookup(connection_id)
        if room and session is not None and room != session.room:
            logger.warning(
                f"Connection {connection_id} addressed room {room} but is joined to {session.room}; "
                f"using the joined room"
            )
        data = normalize_chat_payload(data)
    return service.dispatch(connection_id, event, data)
