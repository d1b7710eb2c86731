from fastapi import APIRouter, Depends, HTTPException

from auth import get_current_user_id
from backend import RedisBackend, get_backend
from schemas.academics import SyllabusCreate, SyllabusItem, SyllabusItemResponse, SyllabusResponse, SyllabusUpdate
from logging_config import get_logger

logger = get_logger(__name__)

SYLLABUS = "syllabus"
CLEARABLE = {"description", "due_date"}

syllabus_router = APIRouter(prefix="/api/syllabus", tags=["syllabus"])


def syllabus_order(record: dict):
    # undated topics go last, then alphabetical by subject
    due = record.get("due_date")
    return (due is None, due or "", record.get("subject", ""))


@syllabus_router.get("", response_model=SyllabusResponse)
async def list_syllabus(user_id: str = Depends(get_current_user_id), backend: RedisBackend = Depends(get_backend)):
    records = sorted(backend.list_records(SYLLABUS), key=syllabus_order)
    return SyllabusResponse(syllabus=[SyllabusItem.model_validate(r) for r in records])


@syllabus_router.post("", status_code=201, response_model=SyllabusItemResponse)
async def create_syllabus_item(
    body: SyllabusCreate,
    user_id: str = Depends(get_current_user_id),
    backend: RedisBackend = Depends(get_backend),
):
    record = backend.create_record(SYLLABUS, body.model_dump(mode="json"))
    logger.info(f"Syllabus item {record['id']} ({body.subject}: {body.topic}) created by {user_id}")
    return SyllabusItemResponse(item=SyllabusItem.model_validate(record))


@syllabus_router.put("/{item_id}", response_model=SyllabusItemResponse)
async def update_syllabus_item(
    item_id: str,
    body: SyllabusUpdate,
    user_id: str = Depends(get_current_user_id),
    backend: RedisBackend = Depends(get_backend),
):
    updates = {k: v for k, v in body.model_dump(mode="json", exclude_unset=True).items() if v is not None or k in CLEARABLE}
    record = backend.update_record(SYLLABUS, item_id, updates)
    if record is None:
        raise HTTPException(status_code=404, detail="Syllabus item not found")
    return SyllabusItemResponse(item=SyllabusItem.model_validate(record))


@syllabus_router.delete("/{item_id}")
async def delete_syllabus_item(
    item_id: str,
    user_id: str = Depends(get_current_user_id),
    backend: RedisBackend = Depends(get_backend),
):
    if not backend.delete_record(SYLLABUS, item_id):
        raise HTTPException(status_code=404, detail="Syllabus item not found")
    return {"message": "Syllabus item deleted"}
