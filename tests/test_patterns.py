# Tests for absence reminders and performance streaks

from datetime import timedelta
from decimal import Decimal

from sqlalchemy import select

from attendance import AttendanceRecorder, AttendanceSubmission
from database import (
    Attendance,
    AttendanceStatus,
    Group,
    Notification,
    NotificationType,
    Parent,
    PerformanceStatus,
)
from database import config_store
from notifications.templates import ATTENDANCE_REMINDER_KEY
from utils.timezone import format_date, local_today


def _present(student, group, performance, days_ahead):
    return AttendanceSubmission(
        student_id=student.id,
        group_id=group.id,
        status=AttendanceStatus.PRESENT,
        performance=performance,
        date=local_today() + timedelta(days=days_ahead),
    )


async def _notifications(session_factory, type=None) -> list[Notification]:
    async with session_factory() as db:
        query = select(Notification).order_by(Notification.id)
        if type:
            query = query.where(Notification.type == type)
        result = await db.execute(query)
        return list(result.scalars().all())


async def _attendances(session_factory) -> list[Attendance]:
    async with session_factory() as db:
        result = await db.execute(select(Attendance).order_by(Attendance.date))
        return list(result.scalars().all())


async def test_four_good_lessons_give_two_reminders(session_factory, group, make_student):
    student = await make_student(group=group)
    recorder = AttendanceRecorder(session_factory)

    counts = []
    for day in range(4):
        await recorder.record(_present(student, group, PerformanceStatus.GOOD, day))
        counts.append(len(await _notifications(session_factory, NotificationType.PERFORMANCE_REMINDER)))

    assert counts == [0, 1, 1, 2]
    notifications = await _notifications(session_factory, NotificationType.PERFORMANCE_REMINDER)

    attendances = await _attendances(session_factory)
    assert all(a.performance_reported for a in attendances)

    first_pair = f"{format_date(attendances[0].date)} va {format_date(attendances[1].date)}"
    second_pair = f"{format_date(attendances[2].date)} va {format_date(attendances[3].date)}"
    assert first_pair in notifications[0].message
    assert second_pair in notifications[1].message
    assert notifications[0].sms_variant == "GOOD"
    assert notifications[0].sms_fields == {
        "p1_name": "Ali Valiyev",
        "p2_first_date": format_date(attendances[0].date),
        "p3_second_date": format_date(attendances[1].date),
    }


async def test_single_good_lesson_stays_pending(session_factory, group, make_student):
    student = await make_student(group=group)
    recorder = AttendanceRecorder(session_factory)

    await recorder.record(_present(student, group, PerformanceStatus.GOOD, 0))
    await recorder.record(_present(student, group, PerformanceStatus.BAD, 1))
    await recorder.record(_present(student, group, PerformanceStatus.NORMAL, 2))

    assert await _notifications(session_factory, NotificationType.PERFORMANCE_REMINDER) == []
    assert not any(a.performance_reported for a in await _attendances(session_factory))


async def test_bad_streak_uses_bad_template(session_factory, group, make_student):
    student = await make_student(group=group)
    recorder = AttendanceRecorder(session_factory)

    await recorder.record(_present(student, group, PerformanceStatus.BAD, 0))
    await recorder.record(_present(student, group, PerformanceStatus.GOOD, 1))
    await recorder.record(_present(student, group, PerformanceStatus.BAD, 2))

    notifications = await _notifications(session_factory, NotificationType.PERFORMANCE_REMINDER)
    assert len(notifications) == 1
    assert "sust" in notifications[0].message
    assert notifications[0].sms_variant == "BAD"

    reported = {a.performance: a.performance_reported for a in await _attendances(session_factory)}
    assert reported[PerformanceStatus.BAD] is True
    assert reported[PerformanceStatus.GOOD] is False


async def test_streak_without_parents_is_left_unreported(session_factory, group, make_student):
    student = await make_student(group=group, parents=())
    recorder = AttendanceRecorder(session_factory)

    await recorder.record(_present(student, group, PerformanceStatus.GOOD, 0))
    await recorder.record(_present(student, group, PerformanceStatus.GOOD, 1))

    assert await _notifications(session_factory) == []
    assert not any(a.performance_reported for a in await _attendances(session_factory))


async def test_every_absence_sends_reminder(session_factory, group, make_student):
    student = await make_student(group=group)
    recorder = AttendanceRecorder(session_factory)

    for day in range(3):
        await recorder.record(
            AttendanceSubmission(
                student_id=student.id,
                group_id=group.id,
                status=AttendanceStatus.ABSENT,
                date=local_today() + timedelta(days=day),
            )
        )

    notifications = await _notifications(session_factory, NotificationType.ATTENDANCE_REMINDER)
    assert len(notifications) == 3
    assert notifications[0].sms_fields == {
        "p1_name": "Ali Valiyev",
        "p2_date": format_date(local_today()),
    }


async def test_absence_uses_configured_template(session_factory, group, make_student):
    async with session_factory() as db:
        await config_store.put(db, ATTENDANCE_REMINDER_KEY, "{studentName} missed {date}; {unknown}")

    student = await make_student(group=group)
    recorder = AttendanceRecorder(session_factory)
    await recorder.record(
        AttendanceSubmission(student_id=student.id, group_id=group.id, status=AttendanceStatus.ABSENT)
    )

    [notification] = await _notifications(session_factory)
    assert notification.message == f"Ali Valiyev missed {format_date(local_today())}; {{unknown}}"


async def test_streak_on_equal_dates_takes_earlier_record(session_factory, group, make_student):
    async with session_factory() as db:
        other_group = Group(title="Matematika", price=Decimal("50000"))
        db.add(other_group)
        await db.commit()

    student = await make_student(group=group, parents=())
    recorder = AttendanceRecorder(session_factory)

    first = await recorder.record(_present(student, group, PerformanceStatus.GOOD, 1))
    second = await recorder.record(_present(student, other_group, PerformanceStatus.GOOD, 1))
    earliest = await recorder.record(_present(student, group, PerformanceStatus.GOOD, 0))
    assert await _notifications(session_factory) == []

    async with session_factory() as db:
        db.add(Parent(student_id=student.id, full_name="Ota-ona", telegram_id="1001"))
        await db.commit()

    latest = await recorder.record(_present(student, group, PerformanceStatus.GOOD, 2))

    assert len(await _notifications(session_factory, NotificationType.PERFORMANCE_REMINDER)) == 1
    reported = {a.id: a.performance_reported for a in await _attendances(session_factory)}
    assert reported == {
        earliest.id: True,
        first.id: True,
        second.id: False,
        latest.id: False,
    }
