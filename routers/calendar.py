from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from auth import get_current_user_id
from backend import RedisBackend, get_backend
from schemas.academics import (
    CalendarEvent,
    CalendarEventCreate,
    CalendarEventResponse,
    CalendarEventsResponse,
    CalendarEventUpdate,
)
from logging_config import get_logger

logger = get_logger(__name__)

CALENDAR = "calendar"
CLEARABLE = {"description", "end_date"}

calendar_router = APIRouter(prefix="/api/calendar", tags=["calendar"])


@calendar_router.get("", response_model=CalendarEventsResponse)
async def list_events(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    backend: RedisBackend = Depends(get_backend),
):
    records = backend.list_records(CALENDAR, start=start_date, end=end_date)
    return CalendarEventsResponse(events=[CalendarEvent.model_validate(r) for r in records])


@calendar_router.post("", status_code=201, response_model=CalendarEventResponse)
async def create_event(
    body: CalendarEventCreate,
    user_id: str = Depends(get_current_user_id),
    backend: RedisBackend = Depends(get_backend),
):
    data = body.model_dump(mode="json")
    data["created_by"] = user_id
    record = backend.create_record(CALENDAR, data, sort_value=body.date)
    logger.info(f"Calendar event {record['id']} created by {user_id}")
    return CalendarEventResponse(event=CalendarEvent.model_validate(record))


@calendar_router.put("/{event_id}", response_model=CalendarEventResponse)
async def update_event(
    event_id: str,
    body: CalendarEventUpdate,
    user_id: str = Depends(get_current_user_id),
    backend: RedisBackend = Depends(get_backend),
):
    updates = {k: v for k, v in body.model_dump(mode="json", exclude_unset=True).items() if v is not None or k in CLEARABLE}
    record = backend.update_record(CALENDAR, event_id, updates, sort_value=body.date)
    if record is None:
        raise HTTPException(status_code=404, detail="Calendar event not found")
    return CalendarEventResponse(event=CalendarEvent.model_validate(record))


@calendar_router.delete("/{event_id}")
async def delete_event(
    event_id: str,
    user_id: str = Depends(get_current_user_id),
    backend: RedisBackend = Depends(get_backend),
):
    if not backend.delete_record(CALENDAR, event_id):
        raise HTTPException(status_code=404, detail="Calendar event not found")
    return {"message": "Calendar event deleted"}
