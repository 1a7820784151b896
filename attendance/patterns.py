# Pattern detector: absence reminders and GOOD/BAD performance streaks

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from database import (
    Attendance,
    AttendanceStatus,
    Notification,
    NotificationType,
    PerformanceStatus,
    Student,
    get_unreported_performances,
    mark_performance_reported,
)
from utils.timezone import format_date

from notifications.queue import enqueue_for_parents
from notifications.templates import (
    ATTENDANCE_REMINDER_KEY,
    join_dates,
    load_template,
    performance_template_key,
    render,
)

logger = logging.getLogger(__name__)

# Сколько одинаковых оценок подряд отправляется одним уведомлением
STREAK_SIZE = 2

STREAK_PERFORMANCES = (PerformanceStatus.GOOD, PerformanceStatus.BAD)


async def notify_absence(
    db: AsyncSession,
    student: Student,
    attendance: Attendance,
) -> list[Notification]:
    """Напоминание о пропуске. Отправляется при каждом пропуске."""
    template = await load_template(db, ATTENDANCE_REMINDER_KEY)
    day = format_date(attendance.date)
    message = render(template, studentName=student.full_name, date=day)

    return await enqueue_for_parents(
        db,
        student,
        NotificationType.ATTENDANCE_REMINDER,
        message,
        sms_fields={"p1_name": student.full_name, "p2_date": day},
    )


async def detect_performance_streak(
    db: AsyncSession,
    student: Student,
    attendance: Attendance,
) -> list[Notification]:
    """
    Серия из двух неотправленных одинаковых оценок (GOOD или BAD).

    Берутся две самые старые неотправленные отметки (дата, затем id).
    Если родителей нет, отметки остаются неотправленными.
    """
    performance = attendance.performance
    if performance not in STREAK_PERFORMANCES:
        return []

    records = await get_unreported_performances(db, student.id, performance)
    if len(records) < STREAK_SIZE:
        return []

    streak = records[:STREAK_SIZE]
    if not student.parents:
        logger.info(
            f"Student {student.id} has no parents, {performance.value} streak left unreported"
        )
        return []

    template = await load_template(db, performance_template_key(performance))
    message = render(
        template,
        studentName=student.full_name,
        dates=join_dates(a.date for a in streak),
    )

    notifications = await enqueue_for_parents(
        db,
        student,
        NotificationType.PERFORMANCE_REMINDER,
        message,
        sms_fields={
            "p1_name": student.full_name,
            "p2_first_date": format_date(streak[0].date),
            "p3_second_date": format_date(streak[1].date),
        },
        sms_variant=performance.value,
    )
    await mark_performance_reported(db, [a.id for a in streak])

    logger.info(
        f"{performance.value} streak for student {student.id} reported: "
        f"attendances {[a.id for a in streak]}"
    )
    return notifications


async def process_attendance_patterns(
    db: AsyncSession,
    student: Student,
    attendance: Attendance,
) -> list[Notification]:
    """
    Все уведомления по новой отметке посещения.

    student должен быть загружен с parents. Commit делает вызывающий код.
    """
    notifications: list[Notification] = []

    if attendance.status == AttendanceStatus.ABSENT:
        notifications.extend(await notify_absence(db, student, attendance))

    notifications.extend(await detect_performance_streak(db, student, attendance))
    return notifications
