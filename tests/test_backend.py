from __future__ import annotations

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from backend import RecordConflict, RedisBackend, decode_hash, encode_hash, to_score


def test_hash_values_round_trip_through_json() -> None:
    record = {"status": "present", "verified": True, "latitude": 28.6, "face_descriptor": [0.1, 0.2], "note": None}
    encoded = encode_hash(record)

    assert "note" not in encoded
    assert encoded["verified"] == "true"
    assert decode_hash(encoded) == {k: v for k, v in record.items() if v is not None}


def test_decode_keeps_plain_strings() -> None:
    assert decode_hash({"legacy": "not json"}) == {"legacy": "not json"}


def test_scores_treat_naive_and_zulu_times_as_utc() -> None:
    aware = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
    assert to_score("2026-03-02T09:00:00Z") == aware.timestamp()
    assert to_score(datetime(2026, 3, 2, 9, 0)) == aware.timestamp()
    assert to_score(aware) == aware.timestamp()


def test_create_user_refuses_taken_roll_number() -> None:
    client = MagicMock()
    client.exists.side_effect = lambda key: key == "user:roll:CS-1"
    backend = RedisBackend(client=client)

    with pytest.raises(RecordConflict):
        backend.create_user({"college_roll_no": "CS-1", "student_email": "a@example.edu"})
    client.pipeline.assert_not_called()


def test_chat_history_is_capped_and_returned_oldest_first() -> None:
    client = MagicMock()
    pipe = client.pipeline.return_value
    backend = RedisBackend(client=client)

    backend.append_chat_message("CS-A", {"id": "m1", "text": "hi"}, limit=3)
    pipe.lpush.assert_called_once_with("chat:history:CS-A", json.dumps({"id": "m1", "text": "hi"}))
    pipe.ltrim.assert_called_once_with("chat:history:CS-A", 0, 2)

    client.lrange.return_value = [json.dumps({"id": "m2"}), "garbage", json.dumps({"id": "m1"})]
    assert backend.get_chat_history("CS-A", limit=3) == [{"id": "m1"}, {"id": "m2"}]
    client.lrange.assert_called_once_with("chat:history:CS-A", 0, 2)
