from __future__ import annotations

import os
import socket
import uuid
from dataclasses import dataclass
from typing import Any

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("LOG_LEVEL", "DEBUG")

import constants  # noqa: E402
from app import create_app  # noqa: E402
from backend import RecordConflict, to_score  # noqa: E402
from presence.protocol import PresenceService  # noqa: E402


class NetworkBlockedError(RuntimeError):
    pass


def _blocked(*_args: Any, **_kwargs: Any) -> Any:
    raise NetworkBlockedError("Network access is disabled during tests; use the in-memory backend.")


@pytest.fixture(autouse=True)
def _disable_network(monkeypatch: pytest.MonkeyPatch) -> None:
    """Prevent accidental Redis connections from unit tests."""
    monkeypatch.setattr(socket, "create_connection", _blocked)
    monkeypatch.setattr(socket, "getaddrinfo", _blocked)


@pytest.fixture(autouse=True)
def _fast_hashing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(constants, "BCRYPT_ROUNDS", 4)


class DummyBackend:
    """In-memory stand-in for RedisBackend with the same method surface."""

    def __init__(self) -> None:
        self.users: dict[str, dict] = {}
        self.records: dict[str, dict[str, dict]] = {}
        self.scores: dict[str, dict[str, float]] = {}
        self.owners: dict[tuple[str, str], set[str]] = {}
        self.history: dict[str, list[dict]] = {}

    # users
    def _owner_of(self, field: str, value: str) -> str | None:
        for user_id, user in self.users.items():
            if str(user.get(field, "")).lower() == value.lower():
                return user_id
        return None

    def create_user(self, user_data: dict) -> dict:
        if self._owner_of("college_roll_no", user_data["college_roll_no"]):
            raise RecordConflict("Roll number already registered")
        if self._owner_of("student_email", user_data["student_email"]):
            raise RecordConflict("Email already registered")
        user = {**user_data, "id": str(uuid.uuid4()), "is_active": True, "created_at": "2026-01-01T00:00:00+00:00"}
        self.users[user["id"]] = user
        return dict(user)

    def get_user(self, user_id: str) -> dict | None:
        user = self.users.get(user_id)
        return dict(user) if user else None

    def get_user_by_roll_no(self, roll_no: str) -> dict | None:
        user_id = self._owner_of("college_roll_no", roll_no)
        return self.get_user(user_id) if user_id else None

    def update_user(self, user_id: str, updates: dict) -> dict | None:
        if user_id not in self.users:
            return None
        for field, message in (("college_roll_no", "Roll number"), ("student_email", "Email")):
            if updates.get(field):
                owner = self._owner_of(field, updates[field])
                if owner and owner != user_id:
                    raise RecordConflict(f"{message} already registered")
        self.users[user_id].update({k: v for k, v in updates.items() if v is not None})
        return dict(self.users[user_id])

    # records
    def create_record(self, kind: str, data: dict, sort_value=None, owner_id: str | None = None) -> dict:
        record = {**data, "id": str(uuid.uuid4()), "created_at": "2026-01-01T00:00:00+00:00"}
        self.records.setdefault(kind, {})[record["id"]] = record
        self.scores.setdefault(kind, {})[record["id"]] = to_score(sort_value)
        if owner_id:
            self.owners.setdefault((kind, owner_id), set()).add(record["id"])
        return dict(record)

    def get_record(self, kind: str, record_id: str) -> dict | None:
        record = self.records.get(kind, {}).get(record_id)
        return dict(record) if record else None

    def list_records(self, kind, start=None, end=None, owner_id=None, descending=False) -> list:
        scores = self.scores.get(kind, {})
        ids = self.owners.get((kind, owner_id), set()) if owner_id else set(scores)
        low = to_score(start) if start is not None else float("-inf")
        high = to_score(end) if end is not None else float("inf")
        selected = [i for i in ids if i in scores and low <= scores[i] <= high]
        selected.sort(key=lambda i: scores[i], reverse=descending)
        return [dict(self.records[kind][i]) for i in selected]

    def update_record(self, kind, record_id, updates, sort_value=None) -> dict | None:
        record = self.records.get(kind, {}).get(record_id)
        if record is None:
            return None
        record.update(updates)
        for key in [k for k, v in record.items() if v is None]:
            del record[key]
        if sort_value is not None:
            self.scores[kind][record_id] = to_score(sort_value)
        return dict(record)

    def delete_record(self, kind, record_id) -> bool:
        self.scores.get(kind, {}).pop(record_id, None)
        return self.records.get(kind, {}).pop(record_id, None) is not None

    # chat history
    def append_chat_message(self, room: str, message: dict, limit: int = 200):
        messages = self.history.setdefault(room, [])
        messages.append(dict(message))
        del messages[:-limit]
        return True

    def get_chat_history(self, room: str, limit: int = 50) -> list:
        return [dict(m) for m in self.history.get(room, [])[-limit:]]


@dataclass
class Emission:
    room: str
    event: str
    payload: Any
    recipients: frozenset


class RecordingTransport:
    """Room transport that records every emission and who would have received it."""

    def __init__(self) -> None:
        self.rooms: dict[str, set[str]] = {}
        self.emissions: list[Emission] = []

    def join(self, connection_id: str, room: str) -> None:
        self.rooms.setdefault(room, set()).add(connection_id)

    def leave(self, connection_id: str, room: str) -> None:
        members = self.rooms.get(room, set())
        members.discard(connection_id)
        if not members:
            self.rooms.pop(room, None)

    def emit_to_room(self, room: str, event: str, payload: Any) -> None:
        self.emissions.append(Emission(room, event, payload, frozenset(self.rooms.get(room, set()))))

    def received(self, connection_id: str, event: str | None = None) -> list:
        return [
            e.payload
            for e in self.emissions
            if connection_id in e.recipients and (event is None or e.event == event)
        ]

    def events(self, event: str) -> list[Emission]:
        return [e for e in self.emissions if e.event == event]


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def service(transport: RecordingTransport) -> PresenceService:
    return PresenceService(transport)


@pytest.fixture
def backend() -> DummyBackend:
    return DummyBackend()


@pytest.fixture
def app(backend: DummyBackend):
    return create_app(backend=backend)


@pytest.fixture
def client(app):
    # Entering the client runs every websocket session on one shared event loop.
    with TestClient(app) as test_client:
        yield test_client


STUDENT = {
    "collegeRollNo": "CS-2024-001",
    "fullName": "Asha Verma",
    "studentPhone": "9000000001",
    "parentPhone": "9000000002",
    "studentEmail": "asha@example.edu",
    "parentEmail": "parent@example.com",
    "studentClass": "CS-A",
    "password": "s3cret-pass",
}


def register_and_login(client: TestClient, **overrides: Any) -> tuple[dict, dict]:
    """Register a student and return (user, auth headers). Cookies are cleared so headers drive auth."""
    body = {**STUDENT, **overrides}
    resp = client.post("/api/auth/register", json=body)
    assert resp.status_code == 201, resp.text
    resp = client.post("/api/auth/login", json={"collegeRollNo": body["collegeRollNo"], "password": body["password"]})
    assert resp.status_code == 200, resp.text
    client.cookies.clear()
    data = resp.json()
    return data["user"], {"Authorization": f"Bearer {data['token']}"}


@pytest.fixture
def student(client: TestClient) -> tuple[dict, dict]:
    return register_and_login(client)
