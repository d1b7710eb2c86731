from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from auth import get_current_user_id
from backend import RedisBackend, get_backend
from face import InvalidDescriptor, match_descriptor, to_vector
from routers.auth import load_user
from schemas.users import FaceDescriptorRequest, FaceVerifyResponse
from logging_config import get_logger

logger = get_logger(__name__)

face_router = APIRouter(prefix="/api/user/face", tags=["face"])


@face_router.get("", response_model=Optional[list[float]])
async def get_face_descriptor(user_id: str = Depends(get_current_user_id), backend: RedisBackend = Depends(get_backend)):
    user = load_user(backend, user_id)
    return user.get("face_descriptor")


@face_router.post("")
async def enroll_face_descriptor(
    body: FaceDescriptorRequest,
    user_id: str = Depends(get_current_user_id),
    backend: RedisBackend = Depends(get_backend),
):
    load_user(backend, user_id)
    try:
        descriptor = to_vector(body.face_descriptor).tolist()
    except InvalidDescriptor as e:
        raise HTTPException(status_code=400, detail=str(e))

    backend.update_user(user_id, {"face_descriptor": descriptor})
    logger.info(f"Enrolled face descriptor for user {user_id}")
    return {"success": True, "faceDescriptor": descriptor}


@face_router.post("/verify", response_model=FaceVerifyResponse)
async def verify_face_descriptor(
    body: FaceDescriptorRequest,
    user_id: str = Depends(get_current_user_id),
    backend: RedisBackend = Depends(get_backend),
):
    user = load_user(backend, user_id)
    enrolled = user.get("face_descriptor")
    if not enrolled:
        raise HTTPException(status_code=404, detail="No face descriptor enrolled")
    try:
        match = match_descriptor(body.face_descriptor, enrolled)
    except InvalidDescriptor as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"Face verification for user {user_id}: similarity={match.similarity} matched={match.matched}")
    return FaceVerifyResponse(matched=match.matched, similarity=match.similarity, threshold=match.threshold)
