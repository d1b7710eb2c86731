from fastapi import APIRouter, Depends, HTTPException, Request, Response

import constants
from auth import create_access_token, get_current_user_id, hash_password, verify_password
from backend import RecordConflict, RedisBackend, get_backend
from schemas.users import LoginRequest, LoginResponse, ProfileUpdateRequest, RegisterRequest, UserOut, UserResponse
from logging_config import get_logger

logger = get_logger(__name__)

auth_router = APIRouter(prefix="/api", tags=["auth"])


def load_user(backend: RedisBackend, user_id: str) -> dict:
    user = backend.get_user(user_id)
    if not user:
        logger.warning(f"Authenticated user {user_id} no longer exists")
        raise HTTPException(status_code=404, detail="User not found")
    return user


@auth_router.post("/auth/register", status_code=201, response_model=UserResponse)
async def register(body: RegisterRequest, request: Request, backend: RedisBackend = Depends(get_backend)):
    logger.info(f"Registration request for roll number {body.college_roll_no} from {request.client.host if request.client else 'unknown'}")
    user_data = body.model_dump(exclude={"password"})
    user_data["password"] = hash_password(body.password)
    try:
        user = backend.create_user(user_data)
    except RecordConflict as e:
        logger.warning(f"Registration failed for {body.college_roll_no}: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    return UserResponse(user=UserOut.from_record(user))


@auth_router.post("/auth/login", response_model=LoginResponse)
async def login(body: LoginRequest, response: Response, backend: RedisBackend = Depends(get_backend)):
    user = backend.get_user_by_roll_no(body.college_roll_no)
    if not user or not verify_password(body.password, user.get("password")):
        logger.warning(f"Login failed for roll number {body.college_roll_no}")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = create_access_token(user["id"], body.college_roll_no)
    response.set_cookie(
        constants.TOKEN_COOKIE,
        token,
        httponly=True,
        secure=constants.COOKIE_SECURE,
        samesite="strict",
        max_age=constants.JWT_EXPIRY_HOURS * 3600,
    )
    logger.info(f"User {user['id']} logged in")
    return LoginResponse(user=UserOut.from_record(user), token=token)


@auth_router.post("/auth/logout")
async def logout(response: Response):
    response.delete_cookie(constants.TOKEN_COOKIE)
    return {"message": "Logged out successfully"}


@auth_router.get("/auth/me", response_model=UserResponse)
async def me(user_id: str = Depends(get_current_user_id), backend: RedisBackend = Depends(get_backend)):
    return UserResponse(user=UserOut.from_record(load_user(backend, user_id)))


@auth_router.put("/user/profile", response_model=UserResponse)
async def update_profile(
    body: ProfileUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    backend: RedisBackend = Depends(get_backend),
):
    user = load_user(backend, user_id)
    updates = body.model_dump(exclude_none=True, exclude={"current_password", "new_password"})

    if body.new_password:
        if not body.current_password or not verify_password(body.current_password, user.get("password")):
            logger.warning(f"Password change rejected for user {user_id}")
            raise HTTPException(status_code=400, detail="Current password is incorrect")
        updates["password"] = hash_password(body.new_password)

    if not updates:
        return UserResponse(user=UserOut.from_record(user))

    try:
        updated = backend.update_user(user_id, updates)
    except RecordConflict as e:
        raise HTTPException(status_code=400, detail=str(e))
    if updated is None:
        raise HTTPException(status_code=404, detail="User not found")
    return UserResponse(user=UserOut.from_record(updated))
