import json
import uuid
from datetime import datetime, timezone
from typing import Optional

import redis
from starlette.requests import HTTPConnection

from constants import REDIS_HOST, REDIS_PORT, REDIS_PASSWORD, REDIS_DB, CHAT_HISTORY_LIMIT
from redis_keys import (
    REDIS_USER_KEY,
    REDIS_USER_ROLL_INDEX,
    REDIS_USER_EMAIL_INDEX,
    REDIS_RECORD_KEY,
    REDIS_RECORD_INDEX,
    REDIS_OWNER_INDEX,
    REDIS_CHAT_HISTORY,
)
from logging_config import get_logger

logger = get_logger(__name__)


class RecordConflict(Exception):
    """A unique field (roll number, email) is already taken by another user."""


def encode_hash(data: dict) -> dict:
    # Redis hashes only hold strings; None values are skipped
    return {k: json.dumps(v) for k, v in data.items() if v is not None}


def decode_hash(data: dict) -> dict:
    result = {}
    for k, v in data.items():
        try:
            result[k] = json.loads(v)
        except (json.JSONDecodeError, TypeError):
            result[k] = v
    return result


def to_score(value) -> float:
    if value is None:
        return datetime.now(timezone.utc).timestamp()
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class RedisBackend:
    def __init__(self, client: Optional[redis.Redis] = None):
        if client is None:
            logger.info(f"Initializing RedisBackend with connection to {REDIS_HOST}:{REDIS_PORT}")
            client = redis.Redis(
                host=REDIS_HOST,
                port=REDIS_PORT,
                password=REDIS_PASSWORD,
                db=REDIS_DB,
                decode_responses=True,
            )
        self.redis_client = client

    # ---------- Users ----------

    def create_user(self, user_data: dict) -> dict:
        roll_no = user_data["college_roll_no"]
        email = user_data["student_email"].lower()
        logger.info(f"Creating user with roll number {roll_no}")
        if self.redis_client.exists(REDIS_USER_ROLL_INDEX.format(roll_no=roll_no)):
            raise RecordConflict("Roll number already registered")
        if self.redis_client.exists(REDIS_USER_EMAIL_INDEX.format(email=email)):
            raise RecordConflict("Email already registered")

        user_id = str(uuid.uuid4())
        user = {**user_data, "id": user_id, "is_active": True, "created_at": _now_iso()}
        pipe = self.redis_client.pipeline()
        pipe.hset(REDIS_USER_KEY.format(user_id=user_id), mapping=encode_hash(user))
        pipe.set(REDIS_USER_ROLL_INDEX.format(roll_no=roll_no), user_id)
        pipe.set(REDIS_USER_EMAIL_INDEX.format(email=email), user_id)
        pipe.execute()
        logger.debug(f"User {user_id} created for roll number {roll_no}")
        return user

    def get_user(self, user_id: str) -> Optional[dict]:
        logger.debug(f"Fetching user {user_id}")
        data = self.redis_client.hgetall(REDIS_USER_KEY.format(user_id=user_id))
        if not data:
            logger.debug(f"User {user_id} not found in Redis")
            return None
        return decode_hash(data)

    def get_user_by_roll_no(self, roll_no: str) -> Optional[dict]:
        user_id = self.redis_client.get(REDIS_USER_ROLL_INDEX.format(roll_no=roll_no))
        return self.get_user(user_id) if user_id else None

    def update_user(self, user_id: str, updates: dict) -> Optional[dict]:
        current = self.get_user(user_id)
        if current is None:
            return None
        logger.info(f"Updating user {user_id}: fields={sorted(updates)}")

        pipe = self.redis_client.pipeline()
        new_roll = updates.get("college_roll_no")
        if new_roll and new_roll != current.get("college_roll_no"):
            owner = self.redis_client.get(REDIS_USER_ROLL_INDEX.format(roll_no=new_roll))
            if owner and owner != user_id:
                raise RecordConflict("Roll number already registered")
            pipe.delete(REDIS_USER_ROLL_INDEX.format(roll_no=current.get("college_roll_no")))
            pipe.set(REDIS_USER_ROLL_INDEX.format(roll_no=new_roll), user_id)

        new_email = updates.get("student_email")
        old_email = (current.get("student_email") or "").lower()
        if new_email and new_email.lower() != old_email:
            owner = self.redis_client.get(REDIS_USER_EMAIL_INDEX.format(email=new_email.lower()))
            if owner and owner != user_id:
                raise RecordConflict("Email already registered")
            pipe.delete(REDIS_USER_EMAIL_INDEX.format(email=old_email))
            pipe.set(REDIS_USER_EMAIL_INDEX.format(email=new_email.lower()), user_id)

        mapping = encode_hash(updates)
        if mapping:
            pipe.hset(REDIS_USER_KEY.format(user_id=user_id), mapping=mapping)
        pipe.execute()
        return {**current, **{k: v for k, v in updates.items() if v is not None}}

    # ---------- Records (attendance, calendar, exams, syllabus) ----------

    def create_record(self, kind: str, data: dict, sort_value=None, owner_id: Optional[str] = None) -> dict:
        record_id = str(uuid.uuid4())
        record = {**data, "id": record_id, "created_at": _now_iso()}
        score = to_score(sort_value)
        logger.info(f"Creating {kind} record {record_id}")

        pipe = self.redis_client.pipeline()
        pipe.hset(REDIS_RECORD_KEY.format(kind=kind, record_id=record_id), mapping=encode_hash(record))
        pipe.zadd(REDIS_RECORD_INDEX.format(kind=kind), {record_id: score})
        if owner_id:
            pipe.zadd(REDIS_OWNER_INDEX.format(kind=kind, owner_id=owner_id), {record_id: score})
        pipe.execute()
        return record

    def get_record(self, kind: str, record_id: str) -> Optional[dict]:
        data = self.redis_client.hgetall(REDIS_RECORD_KEY.format(kind=kind, record_id=record_id))
        if not data:
            logger.debug(f"{kind} record {record_id} not found in Redis")
            return None
        return decode_hash(data)

    def list_records(
        self,
        kind: str,
        start=None,
        end=None,
        owner_id: Optional[str] = None,
        descending: bool = False,
    ) -> list:
        if owner_id:
            index_key = REDIS_OWNER_INDEX.format(kind=kind, owner_id=owner_id)
        else:
            index_key = REDIS_RECORD_INDEX.format(kind=kind)
        low = to_score(start) if start is not None else "-inf"
        high = to_score(end) if end is not None else "+inf"
        if descending:
            record_ids = self.redis_client.zrevrangebyscore(index_key, high, low)
        else:
            record_ids = self.redis_client.zrangebyscore(index_key, low, high)
        logger.debug(f"Listing {kind} records from {index_key}: {len(record_ids)} ids")

        records = []
        for record_id in record_ids:
            record = self.get_record(kind, record_id)
            if record is not None:
                records.append(record)
        return records

    def update_record(self, kind: str, record_id: str, updates: dict, sort_value=None) -> Optional[dict]:
        key = REDIS_RECORD_KEY.format(kind=kind, record_id=record_id)
        current = self.get_record(kind, record_id)
        if current is None:
            return None
        logger.info(f"Updating {kind} record {record_id}: fields={sorted(updates)}")

        pipe = self.redis_client.pipeline()
        mapping = encode_hash(updates)
        if mapping:
            pipe.hset(key, mapping=mapping)
        cleared = [k for k, v in updates.items() if v is None]
        if cleared:
            pipe.hdel(key, *cleared)
        if sort_value is not None:
            pipe.zadd(REDIS_RECORD_INDEX.format(kind=kind), {record_id: to_score(sort_value)})
        pipe.execute()

        merged = {**current, **updates}
        return {k: v for k, v in merged.items() if v is not None}

    def delete_record(self, kind: str, record_id: str) -> bool:
        logger.info(f"Deleting {kind} record {record_id}")
        deleted = self.redis_client.delete(REDIS_RECORD_KEY.format(kind=kind, record_id=record_id))
        self.redis_client.zrem(REDIS_RECORD_INDEX.format(kind=kind), record_id)
        return bool(deleted)

    # ---------- Chat history ----------

    def append_chat_message(self, room: str, message: dict, limit: int = CHAT_HISTORY_LIMIT):
        """Store a relayed chat message, keeping only the newest ``limit`` per room."""
        key = REDIS_CHAT_HISTORY.format(room=room)
        pipe = self.redis_client.pipeline()
        pipe.lpush(key, json.dumps(message))
        pipe.ltrim(key, 0, limit - 1)
        pipe.execute()
        logger.debug(f"Appended chat message {message.get('id')} to history of room {room}")
        return True

    def get_chat_history(self, room: str, limit: int = 50) -> list:
        raw = self.redis_client.lrange(REDIS_CHAT_HISTORY.format(room=room), 0, limit - 1)
        messages = []
        for item in reversed(raw):
            try:
                messages.append(json.loads(item))
            except json.JSONDecodeError:
                logger.warning(f"Skipping unreadable chat history entry in room {room}")
        return messages


def ensure_backend(app) -> RedisBackend:
    """The app's backend, connected on first use."""
    if getattr(app.state, "backend", None) is None:
        app.state.backend = RedisBackend()
    return app.state.backend


def get_backend(connection: HTTPConnection) -> RedisBackend:
    return ensure_backend(connection.app)
