# Tests for attendance recording: validation, batch isolation, side effects

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from attendance import AttendanceRecorder, AttendanceSubmission, AttendanceValidationError
from database import (
    Attendance,
    AttendanceStatus,
    Notification,
    NotificationType,
    PerformanceStatus,
    Student,
)
from utils.timezone import local_today


async def _count(session_factory, model) -> int:
    async with session_factory() as db:
        result = await db.execute(select(func.count()).select_from(model))
        return result.scalar_one()


async def _student(session_factory, student_id) -> Student:
    async with session_factory() as db:
        return await db.get(Student, student_id)


async def test_record_defaults_to_today_and_normal_performance(session_factory, group, make_student):
    student = await make_student(group=group)
    recorder = AttendanceRecorder(session_factory)

    attendance = await recorder.record(
        AttendanceSubmission(student_id=student.id, group_id=group.id, status=AttendanceStatus.PRESENT)
    )

    assert attendance.date == local_today()
    assert attendance.performance == PerformanceStatus.NORMAL
    assert attendance.performance_reported is False


async def test_absent_defaults_performance_to_absent(session_factory, group, make_student):
    student = await make_student(group=group)
    recorder = AttendanceRecorder(session_factory)

    attendance = await recorder.record(
        AttendanceSubmission(student_id=student.id, group_id=group.id, status=AttendanceStatus.ABSENT)
    )

    assert attendance.performance == PerformanceStatus.ABSENT


async def test_absent_with_other_performance_is_rejected(session_factory, group, make_student):
    student = await make_student(group=group)
    recorder = AttendanceRecorder(session_factory)

    with pytest.raises(AttendanceValidationError) as exc:
        await recorder.record(
            AttendanceSubmission(
                student_id=student.id,
                group_id=group.id,
                status=AttendanceStatus.ABSENT,
                performance=PerformanceStatus.GOOD,
            )
        )

    assert exc.value.code == "inconsistent_performance"
    assert await _count(session_factory, Attendance) == 0


async def test_backdated_attendance_is_rejected(session_factory, group, make_student):
    student = await make_student(group=group)
    recorder = AttendanceRecorder(session_factory)
    yesterday = local_today() - timedelta(days=1)

    with pytest.raises(AttendanceValidationError) as exc:
        await recorder.record(
            AttendanceSubmission(
                student_id=student.id,
                group_id=group.id,
                status=AttendanceStatus.PRESENT,
                date=yesterday,
            )
        )

    error = exc.value
    assert error.code == "backdated"
    assert error.to_dict() == {
        "detail": error.message,
        "code": "backdated",
        "student_id": student.id,
        "group_id": group.id,
        "date": yesterday.isoformat(),
    }
    assert await _count(session_factory, Attendance) == 0


async def test_future_date_is_accepted(session_factory, group, make_student):
    student = await make_student(group=group)
    recorder = AttendanceRecorder(session_factory)
    next_week = local_today() + timedelta(days=7)

    attendance = await recorder.record(
        AttendanceSubmission(
            student_id=student.id,
            group_id=group.id,
            status=AttendanceStatus.PRESENT,
            date=next_week.isoformat(),
        )
    )

    assert attendance.date == next_week


async def test_invalid_date_string_is_rejected(session_factory, group, make_student):
    student = await make_student(group=group)
    recorder = AttendanceRecorder(session_factory)

    with pytest.raises(AttendanceValidationError) as exc:
        await recorder.record(
            AttendanceSubmission(
                student_id=student.id,
                group_id=group.id,
                status=AttendanceStatus.PRESENT,
                date="not-a-date",
            )
        )

    assert exc.value.code == "invalid_date"


async def test_duplicate_attendance_is_rejected_without_second_charge(session_factory, group, make_student):
    student = await make_student(group=group)
    recorder = AttendanceRecorder(session_factory)
    item = AttendanceSubmission(student_id=student.id, group_id=group.id, status=AttendanceStatus.PRESENT)

    await recorder.record(item)
    with pytest.raises(AttendanceValidationError) as exc:
        await recorder.record(item)

    assert exc.value.code == "duplicate"
    assert await _count(session_factory, Attendance) == 1
    assert (await _student(session_factory, student.id)).balance == Decimal("-50000")


async def test_unknown_student_and_group(session_factory, group, make_student):
    student = await make_student(group=group)
    recorder = AttendanceRecorder(session_factory)

    with pytest.raises(AttendanceValidationError) as exc:
        await recorder.record(
            AttendanceSubmission(student_id=9999, group_id=group.id, status=AttendanceStatus.PRESENT)
        )
    assert exc.value.code == "student_not_found"

    with pytest.raises(AttendanceValidationError) as exc:
        await recorder.record(
            AttendanceSubmission(student_id=student.id, group_id=9999, status=AttendanceStatus.PRESENT)
        )
    assert exc.value.code == "group_not_found"


async def test_batch_rejection_does_not_affect_siblings(session_factory, group, make_student):
    first = await make_student(group=group, first_name="Ali")
    second = await make_student(group=group, first_name="Vali")
    recorder = AttendanceRecorder(session_factory)
    yesterday = local_today() - timedelta(days=1)

    result = await recorder.record_batch([
        AttendanceSubmission(student_id=first.id, group_id=group.id, status=AttendanceStatus.PRESENT),
        AttendanceSubmission(
            student_id=second.id,
            group_id=group.id,
            status=AttendanceStatus.PRESENT,
            date=yesterday,
        ),
        AttendanceSubmission(student_id=second.id, group_id=group.id, status=AttendanceStatus.LATE),
    ])

    assert [a.student_id for a in result.created] == [first.id, second.id]
    assert len(result.errors) == 1
    assert result.errors[0].student_id == second.id
    assert result.errors[0].code == "backdated"
    assert await _count(session_factory, Attendance) == 2


async def test_absence_charges_and_queues_reminder(session_factory, group, make_student):
    student = await make_student(
        group=group,
        parents=(("1001", "998901234567"), ("1002", None)),
    )
    recorder = AttendanceRecorder(session_factory)

    await recorder.record(
        AttendanceSubmission(student_id=student.id, group_id=group.id, status=AttendanceStatus.ABSENT)
    )

    assert (await _student(session_factory, student.id)).balance == Decimal("-50000")

    async with session_factory() as db:
        result = await db.execute(select(Notification).order_by(Notification.id))
        notifications = list(result.scalars().all())

    assert [n.telegram_id for n in notifications] == ["1001", "1002"]
    assert all(n.type == NotificationType.ATTENDANCE_REMINDER for n in notifications)
    assert "Ali Valiyev" in notifications[0].message
    assert notifications[0].phone_number == "998901234567"
    assert notifications[1].phone_number is None


async def test_side_effect_failure_keeps_attendance(session_factory, group, make_student, monkeypatch):
    student = await make_student(group=group)
    recorder = AttendanceRecorder(session_factory)

    async def broken_patterns(db, student, attendance):
        raise RuntimeError("template storage unavailable")

    monkeypatch.setattr("attendance.recorder.process_attendance_patterns", broken_patterns)

    attendance = await recorder.record(
        AttendanceSubmission(student_id=student.id, group_id=group.id, status=AttendanceStatus.ABSENT)
    )

    assert attendance.id is not None
    assert await _count(session_factory, Attendance) == 1
    assert await _count(session_factory, Notification) == 0
    # Списание прошло в своей транзакции
    assert (await _student(session_factory, student.id)).balance == Decimal("-50000")


async def test_concurrent_duplicate_is_rejected_by_constraint(session_factory, group, make_student, monkeypatch):
    student = await make_student(group=group)
    recorder = AttendanceRecorder(session_factory)
    item = AttendanceSubmission(student_id=student.id, group_id=group.id, status=AttendanceStatus.PRESENT)
    await recorder.record(item)

    # Вторая отметка проходит проверку до того, как первая закоммичена
    async def not_found(*args, **kwargs):
        return False

    monkeypatch.setattr("attendance.recorder.attendance_exists", not_found)

    with pytest.raises(AttendanceValidationError) as exc:
        await recorder.record(item)

    assert exc.value.code == "duplicate"
    assert await _count(session_factory, Attendance) == 1
    assert (await _student(session_factory, student.id)).balance == Decimal("-50000")


async def test_unknown_status_rejects_only_that_item(session_factory, group, make_student):
    student = await make_student(group=group)
    recorder = AttendanceRecorder(session_factory)

    result = await recorder.record_batch([
        AttendanceSubmission(student_id=student.id, group_id=group.id, status="SLEEPING"),
        AttendanceSubmission(
            student_id=student.id,
            group_id=group.id,
            status=AttendanceStatus.PRESENT,
            performance="EXCELLENT",
        ),
        AttendanceSubmission(student_id=student.id, group_id=group.id, status=AttendanceStatus.PRESENT),
    ])

    assert [e.code for e in result.errors] == ["invalid_status", "invalid_status"]
    assert result.errors[0].student_id == student.id
    assert [a.student_id for a in result.created] == [student.id]
    assert await _count(session_factory, Attendance) == 1
