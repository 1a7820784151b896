# Pydantic schemas for attendance API

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, Field

from database.models import AttendanceStatus, PerformanceStatus


class AttendanceItem(BaseModel):
    """Одна отметка посещаемости."""

    student_id: int = Field(description="ID ученика")
    group_id: int = Field(description="ID группы")
    status: AttendanceStatus = Field(description="PRESENT / ABSENT / LATE")
    performance: Optional[PerformanceStatus] = Field(
        default=None,
        description="Успеваемость на уроке; по умолчанию ABSENT для отсутствующих, иначе NORMAL",
    )
    date: Optional[dt.date] = Field(default=None, description="Дата урока, по умолчанию сегодня")


class AttendanceBatch(BaseModel):
    """Пакет отметок (обычно вся группа за урок)."""

    items: List[AttendanceItem] = Field(min_length=1)


class AttendanceOut(BaseModel):
    """Сохранённая отметка."""

    id: int
    student_id: int
    group_id: int
    date: dt.date
    status: AttendanceStatus
    performance: PerformanceStatus
    performance_reported: bool

    class Config:
        from_attributes = True


class AttendanceErrorOut(BaseModel):
    """Отклонённая отметка."""

    detail: str
    code: str
    student_id: int
    group_id: int
    date: Optional[dt.date] = None


class BatchOut(BaseModel):
    """Итог пакетной отметки."""

    created: List[AttendanceOut] = Field(default_factory=list)
    errors: List[AttendanceErrorOut] = Field(default_factory=list)
