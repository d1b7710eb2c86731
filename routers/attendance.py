from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

import constants
from auth import get_current_user_id
from backend import RedisBackend, get_backend
from face import InvalidDescriptor, match_descriptor
from geofence import check_geofence
from routers.auth import load_user
from schemas.attendance import (
    AttendanceCreate,
    AttendanceListResponse,
    AttendanceRecord,
    AttendanceRecordResponse,
    AttendanceStats,
    AttendanceStatsResponse,
    GeofenceResponse,
)
from logging_config import get_logger

logger = get_logger(__name__)

ATTENDANCE = "attendance"

attendance_router = APIRouter(prefix="/api", tags=["attendance"])


def summarize(records: list) -> AttendanceStats:
    total_present = sum(1 for r in records if r.get("status") == "present")
    total_absent = sum(1 for r in records if r.get("status") == "absent")
    total_leave = sum(1 for r in records if r.get("status") == "leave")
    total = len(records)
    return AttendanceStats(
        total_present=total_present,
        total_absent=total_absent,
        total_leave=total_leave,
        percentage=round(total_present / total * 100) if total else 0,
    )


@attendance_router.get("/attendance", response_model=AttendanceListResponse)
async def list_attendance(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    backend: RedisBackend = Depends(get_backend),
):
    records = backend.list_records(ATTENDANCE, start=start_date, end=end_date, owner_id=user_id, descending=True)
    return AttendanceListResponse(records=[AttendanceRecord.model_validate(r) for r in records])


@attendance_router.post("/attendance", status_code=201, response_model=AttendanceRecordResponse)
async def mark_attendance(
    body: AttendanceCreate,
    user_id: str = Depends(get_current_user_id),
    backend: RedisBackend = Depends(get_backend),
):
    logger.info(f"Attendance request from user {user_id}: status={body.status} method={body.method}")

    if (body.latitude is None) != (body.longitude is None):
        raise HTTPException(status_code=400, detail="Latitude and longitude must be sent together")
    if body.latitude is not None:
        try:
            geo = check_geofence(body.latitude, body.longitude)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if not geo.within and body.status == "present" and constants.GEOFENCE_ENFORCED:
            logger.warning(f"Attendance rejected for user {user_id}: {geo.distance_to_boundary_meters}m outside campus")
            raise HTTPException(
                status_code=403,
                detail=f"Outside campus geofence ({round(geo.distance_to_boundary_meters)}m from campus)",
            )

    verified = False
    if body.face_descriptor is not None:
        enrolled = load_user(backend, user_id).get("face_descriptor")
        if not enrolled:
            raise HTTPException(status_code=400, detail="No face descriptor enrolled")
        try:
            match = match_descriptor(body.face_descriptor, enrolled)
        except InvalidDescriptor as e:
            raise HTTPException(status_code=400, detail=str(e))
        if not match.matched:
            logger.warning(f"Attendance rejected for user {user_id}: face similarity {match.similarity}")
            raise HTTPException(status_code=403, detail="Face verification failed")
        verified = True

    date = body.date or datetime.now(timezone.utc)
    data = body.model_dump(mode="json", exclude={"face_descriptor", "date"})
    data.update({"user_id": user_id, "date": date.isoformat(), "verified": verified})
    record = backend.create_record(ATTENDANCE, data, sort_value=date, owner_id=user_id)
    return AttendanceRecordResponse(record=AttendanceRecord.model_validate(record))


@attendance_router.get("/attendance/stats", response_model=AttendanceStatsResponse)
async def attendance_stats(user_id: str = Depends(get_current_user_id), backend: RedisBackend = Depends(get_backend)):
    records = backend.list_records(ATTENDANCE, owner_id=user_id)
    return AttendanceStatsResponse(stats=summarize(records))


@attendance_router.get("/geofence", response_model=GeofenceResponse)
async def geofence_status(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
):
    geo = check_geofence(latitude, longitude)
    return GeofenceResponse(
        within=geo.within,
        distance_meters=geo.distance_meters,
        distance_to_boundary_meters=geo.distance_to_boundary_meters,
        radius_meters=geo.radius_meters,
    )
