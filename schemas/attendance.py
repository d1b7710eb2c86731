from datetime import datetime
from typing import Literal, Optional

from schemas.base import CamelModel

AttendanceStatus = Literal["present", "absent", "leave"]


class AttendanceCreate(CamelModel):
    status: AttendanceStatus
    subject: Optional[str] = None
    reason: Optional[str] = None
    method: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    date: Optional[datetime] = None
    face_descriptor: Optional[list[float]] = None


class AttendanceRecord(CamelModel):
    id: str
    user_id: str
    date: str
    status: AttendanceStatus
    subject: Optional[str] = None
    reason: Optional[str] = None
    method: Optional[str] = None
    verified: bool = False
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: Optional[str] = None


class AttendanceListResponse(CamelModel):
    records: list[AttendanceRecord]


class AttendanceRecordResponse(CamelModel):
    record: AttendanceRecord


class AttendanceStats(CamelModel):
    total_present: int
    total_absent: int
    total_leave: int
    percentage: int


class AttendanceStatsResponse(CamelModel):
    stats: AttendanceStats


class GeofenceResponse(CamelModel):
    within: bool
    distance_meters: float
    distance_to_boundary_meters: float
    radius_meters: float
