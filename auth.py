from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import HTTPException, Request
from starlette.requests import HTTPConnection

import constants
from logging_config import get_logger

logger = get_logger(__name__)


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=constants.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def create_access_token(user_id: str, roll_no: str) -> str:
    expires = datetime.now(timezone.utc) + timedelta(hours=constants.JWT_EXPIRY_HOURS)
    payload = {"userId": user_id, "rollNo": roll_no, "exp": expires}
    return jwt.encode(payload, constants.JWT_SECRET, algorithm=constants.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Return the token claims; raises ``jwt.InvalidTokenError`` when expired or tampered."""
    return jwt.decode(token, constants.JWT_SECRET, algorithms=[constants.JWT_ALGORITHM])


def extract_token(connection: HTTPConnection) -> Optional[str]:
    token = connection.cookies.get(constants.TOKEN_COOKIE)
    if token:
        return token
    authorization = connection.headers.get("authorization", "")
    if authorization.startswith("Bearer "):
        return authorization.split(" ", 1)[1].strip() or None
    # browsers cannot set headers on a WebSocket handshake
    if connection.scope.get("type") == "websocket":
        return connection.query_params.get("token")
    return None


async def get_current_user_id(request: Request) -> str:
    token = extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Access token required")
    try:
        claims = decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        logger.warning(f"Rejected invalid token from {request.client.host if request.client else 'unknown'}")
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id = claims.get("userId")
    if not user_id:
        raise HTTPException(status_code=401, detail="Access token required")
    return user_id
