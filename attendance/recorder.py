# Attendance recorder: validate, persist, then charge and notify

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.logging import get_logger
from database import (
    Attendance,
    AttendanceStatus,
    PerformanceStatus,
    Student,
    attendance_exists,
    count_groups,
    create_attendance,
    get_student,
)
from utils.metrics import attendance_recorded_total, attendance_rejected_total, errors_total
from utils.timezone import local_today, to_local_date

from .billing import charge_for_lesson
from .patterns import process_attendance_patterns

logger = get_logger(__name__)


class AttendanceValidationError(Exception):
    """Отметка отклонена. Содержит ученика, группу и дату."""

    def __init__(
        self,
        message: str,
        code: str,
        student_id: int,
        group_id: int,
        day: Optional[date] = None,
    ):
        self.message = message
        self.code = code
        self.student_id = student_id
        self.group_id = group_id
        self.date = day
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "detail": self.message,
            "code": self.code,
            "student_id": self.student_id,
            "group_id": self.group_id,
            "date": self.date.isoformat() if self.date else None,
        }


@dataclass
class AttendanceSubmission:
    """Одна отметка из пакета."""
    student_id: int
    group_id: int
    status: AttendanceStatus
    performance: Optional[PerformanceStatus] = None
    date: Optional[Union[date, datetime, str]] = None


@dataclass
class BatchResult:
    """Результат пакетной отметки: созданные записи и отклонённые элементы."""
    created: list[Attendance] = field(default_factory=list)
    errors: list[AttendanceValidationError] = field(default_factory=list)


def default_performance(status: AttendanceStatus) -> PerformanceStatus:
    if status == AttendanceStatus.ABSENT:
        return PerformanceStatus.ABSENT
    return PerformanceStatus.NORMAL


def parse_statuses(item: AttendanceSubmission) -> tuple[AttendanceStatus, Optional[PerformanceStatus]]:
    try:
        status = AttendanceStatus(item.status)
        performance = PerformanceStatus(item.performance) if item.performance is not None else None
    except ValueError:
        raise AttendanceValidationError(
            f"Unknown status {item.status!r} / performance {item.performance!r} "
            f"for student {item.student_id} in group {item.group_id}",
            "invalid_status", item.student_id, item.group_id,
        )
    return status, performance


class AttendanceRecorder:
    """
    Запись посещаемости.

    Каждая отметка сохраняется в своей транзакции. Списание за урок и
    уведомления идут отдельными транзакциями после неё: их ошибки
    логируются и не откатывают саму отметку.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def record_batch(
        self,
        items: Iterable[AttendanceSubmission],
        now: Optional[datetime] = None,
    ) -> BatchResult:
        """Обработать пакет по одной отметке. Ошибка одной не мешает остальным."""
        result = BatchResult()
        for item in items:
            try:
                result.created.append(await self.record(item, now=now))
            except AttendanceValidationError as e:
                result.errors.append(e)
        return result

    async def record(
        self,
        item: AttendanceSubmission,
        now: Optional[datetime] = None,
    ) -> Attendance:
        """Сохранить одну отметку или бросить AttendanceValidationError."""
        try:
            status, performance = parse_statuses(item)
            attendance, student = await self._persist(item, status, performance, now)
        except AttendanceValidationError as e:
            attendance_rejected_total.labels(reason=e.code).inc()
            logger.info(
                "attendance_rejected",
                code=e.code,
                student_id=e.student_id,
                group_id=e.group_id,
                date=str(e.date) if e.date else None,
            )
            raise

        attendance_recorded_total.labels(status=status.value).inc()
        logger.info(
            "attendance_recorded",
            attendance_id=attendance.id,
            student_id=attendance.student_id,
            group_id=attendance.group_id,
            date=attendance.date.isoformat(),
            status=attendance.status.value,
            performance=attendance.performance.value,
        )

        await self._charge(student, attendance)
        await self._notify(student, attendance)
        return attendance

    async def _persist(
        self,
        item: AttendanceSubmission,
        status: AttendanceStatus,
        performance: Optional[PerformanceStatus],
        now: Optional[datetime],
    ) -> tuple[Attendance, Student]:
        student_id, group_id = item.student_id, item.group_id

        async with self.session_factory() as db:
            student = await get_student(db, student_id, with_parents=True)
            if student is None:
                raise AttendanceValidationError(
                    f"Student with ID {student_id} not found",
                    "student_not_found", student_id, group_id,
                )
            if not await count_groups(db, group_id):
                raise AttendanceValidationError(
                    f"Group with ID {group_id} not found",
                    "group_not_found", student_id, group_id,
                )

            today = local_today(now)
            try:
                day = to_local_date(item.date) if item.date is not None else today
            except ValueError:
                raise AttendanceValidationError(
                    f"Invalid date {item.date!r} for student {student_id} in group {group_id}",
                    "invalid_date", student_id, group_id,
                )

            if day < today:
                raise AttendanceValidationError(
                    f"Attendance for student {student_id} in group {group_id} "
                    f"cannot be recorded for a past date {day.isoformat()}",
                    "backdated", student_id, group_id, day,
                )

            if await attendance_exists(db, student_id, group_id, day):
                raise AttendanceValidationError(
                    f"Attendance for student {student_id} in group {group_id} "
                    f"on {day.isoformat()} already exists",
                    "duplicate", student_id, group_id, day,
                )

            if (
                status == AttendanceStatus.ABSENT
                and performance is not None
                and performance != PerformanceStatus.ABSENT
            ):
                raise AttendanceValidationError(
                    f"Student {student_id} is ABSENT on {day.isoformat()} "
                    f"but performance {performance.value} was given",
                    "inconsistent_performance", student_id, group_id, day,
                )

            try:
                attendance = await create_attendance(
                    db,
                    student_id=student_id,
                    group_id=group_id,
                    day=day,
                    status=status,
                    performance=performance or default_performance(status),
                )
                await db.commit()
            except IntegrityError:
                # Параллельная отметка успела раньше (uq_attendance_student_group_date)
                await db.rollback()
                raise AttendanceValidationError(
                    f"Attendance for student {student_id} in group {group_id} "
                    f"on {day.isoformat()} already exists",
                    "duplicate", student_id, group_id, day,
                )
            await db.refresh(attendance)

        return attendance, student

    async def _charge(self, student: Student, attendance: Attendance) -> None:
        try:
            async with self.session_factory() as db:
                await charge_for_lesson(db, student, attendance)
                await db.commit()
        except Exception as e:
            errors_total.labels(type="billing_error", module="attendance").inc()
            logger.error(
                "attendance_charge_failed",
                attendance_id=attendance.id,
                student_id=student.id,
                error=str(e),
                exc_info=True,
            )

    async def _notify(self, student: Student, attendance: Attendance) -> None:
        try:
            async with self.session_factory() as db:
                notifications = await process_attendance_patterns(db, student, attendance)
                await db.commit()
            if notifications:
                logger.info(
                    "attendance_notifications_queued",
                    attendance_id=attendance.id,
                    count=len(notifications),
                )
        except Exception as e:
            errors_total.labels(type="notification_error", module="attendance").inc()
            logger.error(
                "attendance_notify_failed",
                attendance_id=attendance.id,
                student_id=student.id,
                error=str(e),
                exc_info=True,
            )
