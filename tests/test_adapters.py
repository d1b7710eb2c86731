from __future__ import annotations

import json

from presence.adapters import (
    claimed_room,
    normalize_chat_payload,
    normalize_event,
    normalize_join_payload,
    parse_frame,
    route_frame,
)
from schemas.events import CHAT_BROADCAST, PRESENCE_SNAPSHOT


def test_legacy_event_names_are_mapped() -> None:
    assert normalize_event("joinRoom") == "join-room"
    assert normalize_event("chatMessage") == "chat-message"
    assert normalize_event("join-room") == "join-room"
    assert normalize_event("typing") == "typing"
    assert normalize_event(None) is None


def test_legacy_join_fields_are_mapped() -> None:
    payload = {
        "userId": "u1",
        "student_class": "CS-A",
        "fullName": "Asha Verma",
        "idPhotoUrl": "photos/asha.png",
    }
    assert normalize_join_payload(payload) == {
        "userId": "u1",
        "room": "CS-A",
        "displayName": "Asha Verma",
        "avatarRef": "photos/asha.png",
    }


def test_canonical_join_fields_win_over_legacy_ones() -> None:
    normalized = normalize_join_payload({"userId": "u1", "room": "CS-A", "studentClass": "CS-B"})
    assert normalized["room"] == "CS-A"


def test_join_payload_that_is_not_an_object_normalizes_to_empty() -> None:
    assert normalize_join_payload(["u1", "CS-A"]) == {}


def test_chat_payload_forms() -> None:
    assert normalize_chat_payload("hi") == {"text": "hi"}
    assert normalize_chat_payload({"message": "hi", "student_class": "CS-B"}) == {"text": "hi"}
    assert normalize_chat_payload({"text": "hi"}) == {"text": "hi"}
    assert normalize_chat_payload(42) == {}


def test_claimed_room_reads_any_legacy_field() -> None:
    assert claimed_room({"studentClass": " CS-B "}) == "CS-B"
    assert claimed_room({"text": "hi"}) is None
    assert claimed_room("hi") is None


def test_parse_frame_variants() -> None:
    assert parse_frame("hello there") == ("chat-message", {"text": "hello there"})
    assert parse_frame(json.dumps("quoted")) == ("chat-message", {"text": "quoted"})
    assert parse_frame(json.dumps([1, 2])) == (None, [1, 2])
    assert parse_frame(json.dumps({"text": "no event"})) == ("chat-message", {"text": "no event"})
    assert parse_frame(json.dumps({"event": "joinRoom", "data": {"userId": "u1"}})) == (
        "join-room",
        {"userId": "u1"},
    )


def test_route_frame_accepts_a_legacy_client(service, transport) -> None:
    service.connect("c1")
    route_frame(service, "c1", json.dumps({
        "event": "joinRoom",
        "data": {"userId": "u1", "student_class": "CS-A", "fullName": "Asha"},
    }))
    route_frame(service, "c1", json.dumps({
        "event": "chatMessage",
        "data": {"message": "hello", "student_class": "CS-A"},
    }))

    assert transport.events(PRESENCE_SNAPSHOT)[0].payload["users"][0]["displayName"] == "Asha"
    assert transport.events(CHAT_BROADCAST)[0].payload["text"] == "hello"


def test_route_frame_ignores_a_claimed_room_that_differs_from_the_session(service, transport) -> None:
    service.connect("c1")
    service.connect("c2")
    route_frame(service, "c1", json.dumps({"event": "join-room", "data": {"userId": "u1", "room": "CS-A"}}))
    route_frame(service, "c2", json.dumps({"event": "join-room", "data": {"userId": "u2", "room": "CS-B"}}))

    route_frame(service, "c1", json.dumps({"event": "chat-message", "data": {"text": "psst", "room": "CS-B"}}))

    emission = transport.events(CHAT_BROADCAST)[0]
    assert emission.room == "CS-A"
    assert emission.payload["room"] == "CS-A"
    assert transport.received("c2", CHAT_BROADCAST) == []


def test_non_string_event_names_are_unknown_events() -> None:
    assert normalize_event(["join-room"]) is None
    assert normalize_event({"x": 1}) is None
    assert parse_frame(json.dumps({"event": ["join-room"], "data": {}})) == (None, {})


def test_malformed_frames_leave_the_member_in_the_room(service, transport) -> None:
    service.connect("c1")
    route_frame(service, "c1", json.dumps({"event": "join-room", "data": {"userId": "u1", "room": "CS-A"}}))
    emitted = len(transport.emissions)

    for raw in (
        json.dumps({"event": ["join-room"]}),
        json.dumps({"event": {"x": 1}, "data": {"text": "hi"}}),
        "[" * 100000 + "]" * 100000,
    ):
        assert route_frame(service, "c1", raw) is None

    assert len(transport.emissions) == emitted
    assert service.snapshot("CS-A").count == 1
    assert service.sessions.lookup("c1").room == "CS-A"
