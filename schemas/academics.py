from datetime import datetime
from typing import Annotated, Optional

from pydantic import StringConstraints

from schemas.base import CamelModel

Required = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


# ---------- Calendar ----------

class CalendarEventCreate(CamelModel):
    title: Required
    description: Optional[str] = None
    date: datetime
    end_date: Optional[datetime] = None
    type: Required


class CalendarEventUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    type: Optional[str] = None


class CalendarEvent(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    date: str
    end_date: Optional[str] = None
    type: str
    created_by: Optional[str] = None
    created_at: Optional[str] = None


class CalendarEventResponse(CamelModel):
    event: CalendarEvent


class CalendarEventsResponse(CamelModel):
    events: list[CalendarEvent]


# ---------- Exams ----------

class ExamCreate(CamelModel):
    subject: Required
    date: datetime
    start_time: Required
    end_time: Required
    location: Required
    instructions: Optional[str] = None


class ExamUpdate(CamelModel):
    subject: Optional[str] = None
    date: Optional[datetime] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    location: Optional[str] = None
    instructions: Optional[str] = None


class Exam(CamelModel):
    id: str
    subject: str
    date: str
    start_time: str
    end_time: str
    location: str
    instructions: Optional[str] = None
    created_at: Optional[str] = None


class ExamResponse(CamelModel):
    exam: Exam


class ExamsResponse(CamelModel):
    exams: list[Exam]


# ---------- Syllabus ----------

class SyllabusCreate(CamelModel):
    subject: Required
    topic: Required
    description: Optional[str] = None
    completed: bool = False
    due_date: Optional[datetime] = None


class SyllabusUpdate(CamelModel):
    subject: Optional[str] = None
    topic: Optional[str] = None
    description: Optional[str] = None
    completed: Optional[bool] = None
    due_date: Optional[datetime] = None


class SyllabusItem(CamelModel):
    id: str
    subject: str
    topic: str
    description: Optional[str] = None
    completed: bool = False
    due_date: Optional[str] = None
    created_at: Optional[str] = None


class SyllabusItemResponse(CamelModel):
    item: SyllabusItem


class SyllabusResponse(CamelModel):
    syllabus: list[SyllabusItem]
