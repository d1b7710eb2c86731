from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
import asyncio
import uuid
import os
from datetime import datetime, timezone
from typing import Optional

import jwt

import constants
from auth import decode_access_token, extract_token
from backend import RedisBackend, ensure_backend
from presence.adapters import route_frame
from presence.history import BackgroundHistoryWriter
from presence.hub import WebSocketHub, pump
from presence.protocol import PresenceService
from routers.attendance import attendance_router
from routers.auth import auth_router
from routers.calendar import calendar_router
from routers.exams import exams_router
from routers.face import face_router
from routers.rooms import rooms_router
from routers.syllabus import syllabus_router
from schemas.events import CONNECTED
from logging_config import get_logger, setup_logging

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)
logger = get_logger(__name__)


def create_app(backend: Optional[RedisBackend] = None) -> FastAPI:
    """Build the application with its own presence service, hub and storage backend.

    ``backend`` defaults to a Redis connection opened on first use.
    """
    app = FastAPI(title="Campus Portal")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=constants.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.backend = backend
    app.state.hub = WebSocketHub()
    app.state.presence = PresenceService(
        app.state.hub,
        history=BackgroundHistoryWriter(lambda: ensure_backend(app)),
    )

    app.include_router(auth_router)
    app.include_router(face_router)
    app.include_router(attendance_router)
    app.include_router(calendar_router)
    app.include_router(exams_router)
    app.include_router(syllabus_router)
    app.include_router(rooms_router)

    app.add_api_route("/health", health, methods=["GET"])
    app.add_api_websocket_route("/ws", websocket_endpoint)

    logger.info("FastAPI application initialized")
    return app


async def health():
    return {"ok": True}


async def websocket_endpoint(websocket: WebSocket):
    """Realtime class chat and presence.

    Frames are JSON ``{"event": ..., "data": ...}``. Inbound events are
    ``join-room`` and ``chat-message``; plain text is treated as a chat message.
    An optional ``token`` (query parameter or cookie) binds the connection to
    the authenticated user.
    """
    presence: PresenceService = websocket.app.state.presence
    hub: WebSocketHub = websocket.app.state.hub
    client_host = websocket.client.host if websocket.client else "unknown"

    principal = None
    token = extract_token(websocket)
    if token:
        try:
            principal = decode_access_token(token).get("userId")
        except jwt.InvalidTokenError:
            logger.warning(f"WebSocket connection rejected: invalid token from {client_host}")
            await websocket.close(code=1008, reason="Invalid token")
            return
    elif constants.SOCKET_AUTH_REQUIRED:
        logger.warning(f"WebSocket connection rejected: no token from {client_host}")
        await websocket.close(code=1008, reason="Authentication required")
        return

    await websocket.accept()
    connection_id = str(uuid.uuid4())
    outbox = hub.register(connection_id)
    presence.connect(connection_id, principal=principal)
    logger.info(f"WebSocket connection {connection_id} accepted from {client_host}")

    hub.emit(connection_id, CONNECTED, {
        "connectionId": connection_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })
    sender = asyncio.create_task(pump(websocket, outbox))

    try:
        message_count = 0
        while True:
            data = await websocket.receive_text()
            message_count += 1
            logger.debug(f"Received frame #{message_count} from connection {connection_id}")
            route_frame(presence, connection_id, data)
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected normally for connection {connection_id}")
    except Exception as e:
        logger.error(f"WebSocket error for connection {connection_id}: {e}", exc_info=True)
        try:
            await websocket.close(code=1011)
        except RuntimeError as close_error:
            logger.debug(f"Could not close connection {connection_id}: {close_error}")
    finally:
        presence.disconnect(connection_id)
        hub.unregister(connection_id)
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.debug(f"Writer for connection {connection_id} stopped with error: {e}")


app = create_app()
