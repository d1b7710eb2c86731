from fastapi import APIRouter, Depends, HTTPException

from auth import get_current_user_id
from backend import RedisBackend, get_backend
from schemas.academics import Exam, ExamCreate, ExamResponse, ExamsResponse, ExamUpdate
from logging_config import get_logger

logger = get_logger(__name__)

EXAMS = "exam"
CLEARABLE = {"instructions"}

exams_router = APIRouter(prefix="/api/exams", tags=["exams"])


@exams_router.get("", response_model=ExamsResponse)
async def list_exams(user_id: str = Depends(get_current_user_id), backend: RedisBackend = Depends(get_backend)):
    return ExamsResponse(exams=[Exam.model_validate(r) for r in backend.list_records(EXAMS)])


@exams_router.post("", status_code=201, response_model=ExamResponse)
async def create_exam(
    body: ExamCreate,
    user_id: str = Depends(get_current_user_id),
    backend: RedisBackend = Depends(get_backend),
):
    record = backend.create_record(EXAMS, body.model_dump(mode="json"), sort_value=body.date)
    logger.info(f"Exam {record['id']} ({body.subject}) scheduled by {user_id}")
    return ExamResponse(exam=Exam.model_validate(record))


@exams_router.put("/{exam_id}", response_model=ExamResponse)
async def update_exam(
    exam_id: str,
    body: ExamUpdate,
    user_id: str = Depends(get_current_user_id),
    backend: RedisBackend = Depends(get_backend),
):
    updates = {k: v for k, v in body.model_dump(mode="json", exclude_unset=True).items() if v is not None or k in CLEARABLE}
    record = backend.update_record(EXAMS, exam_id, updates, sort_value=body.date)
    if record is None:
        raise HTTPException(status_code=404, detail="Exam not found")
    return ExamResponse(exam=Exam.model_validate(record))


@exams_router.delete("/{exam_id}")
async def delete_exam(
    exam_id: str,
    user_id: str = Depends(get_current_user_id),
    backend: RedisBackend = Depends(get_backend),
):
    if not backend.delete_record(EXAMS, exam_id):
        raise HTTPException(status_code=404, detail="Exam not found")
    return {"message": "Exam deleted"}
