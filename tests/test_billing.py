# Tests for lesson charging and threshold deactivation

from datetime import timedelta
from decimal import Decimal

from attendance import AttendanceRecorder, AttendanceSubmission, resolve_lesson_price, resolve_threshold
from database import AttendanceStatus, Group, Student
from database import config_store
from utils.timezone import local_today


async def _student(session_factory, student_id) -> Student:
    async with session_factory() as db:
        return await db.get(Student, student_id)


async def _absent(recorder, student, group, days_ahead: int):
    return await recorder.record(
        AttendanceSubmission(
            student_id=student.id,
            group_id=group.id,
            status=AttendanceStatus.ABSENT,
            date=local_today() + timedelta(days=days_ahead),
        )
    )


async def test_balance_drops_until_threshold_then_deactivates(session_factory, group, make_student):
    async with session_factory() as db:
        await config_store.put(db, config_store.MIN_BALANCE_THRESHOLD, "-600000")

    student = await make_student(group=group, balance=Decimal(0))
    recorder = AttendanceRecorder(session_factory)

    await _absent(recorder, student, group, 0)
    after_one = await _student(session_factory, student.id)
    assert after_one.balance == Decimal("-50000")
    assert after_one.is_active is True

    for day in range(1, 11):
        await _absent(recorder, student, group, day)
    after_eleven = await _student(session_factory, student.id)
    assert after_eleven.balance == Decimal("-550000")
    assert after_eleven.is_active is True

    # balance == threshold уже считается достижением порога
    await _absent(recorder, student, group, 11)
    after_twelve = await _student(session_factory, student.id)
    assert after_twelve.balance == Decimal("-600000")
    assert after_twelve.is_active is False

    await _absent(recorder, student, group, 12)
    after_thirteen = await _student(session_factory, student.id)
    assert after_thirteen.balance == Decimal("-650000")
    assert after_thirteen.is_active is False


async def test_present_is_charged_too(session_factory, group, make_student):
    student = await make_student(group=group, balance=Decimal("100000"))
    recorder = AttendanceRecorder(session_factory)

    await recorder.record(
        AttendanceSubmission(student_id=student.id, group_id=group.id, status=AttendanceStatus.PRESENT)
    )

    assert (await _student(session_factory, student.id)).balance == Decimal("50000")


async def test_frozen_and_deleted_students_are_not_charged(session_factory, group, make_student):
    frozen = await make_student(group=group, frozen=True, balance=Decimal("10000"))
    deleted = await make_student(group=group, is_deleted=True, balance=Decimal("10000"))
    recorder = AttendanceRecorder(session_factory)

    result = await recorder.record_batch([
        AttendanceSubmission(student_id=frozen.id, group_id=group.id, status=AttendanceStatus.PRESENT),
        AttendanceSubmission(student_id=deleted.id, group_id=group.id, status=AttendanceStatus.PRESENT),
    ])

    assert len(result.created) == 2
    assert (await _student(session_factory, frozen.id)).balance == Decimal("10000")
    assert (await _student(session_factory, deleted.id)).balance == Decimal("10000")


async def test_deactivated_student_is_not_reactivated(session_factory, group, make_student):
    student = await make_student(group=group, balance=Decimal("-700000"))
    recorder = AttendanceRecorder(session_factory)

    await _absent(recorder, student, group, 0)
    assert (await _student(session_factory, student.id)).is_active is False

    async with session_factory() as db:
        await db.execute(Student.__table__.update().values(balance=Decimal("500000"), is_active=False))
        await db.commit()

    await _absent(recorder, student, group, 1)
    refreshed = await _student(session_factory, student.id)
    assert refreshed.balance == Decimal("450000")
    assert refreshed.is_active is False


async def test_lesson_price_resolution(session_factory):
    async with session_factory() as db:
        priced = Group(title="Matematika", price=Decimal("70000"))
        unpriced = Group(title="Fizika", price=None)
        db.add_all([priced, unpriced])
        await db.commit()

        assert await resolve_lesson_price(db, priced) == Decimal("70000")
        assert await resolve_lesson_price(db, unpriced) == Decimal(0)

        await config_store.put(db, config_store.DEFAULT_LESSON_PRICE, "40000")
        assert await resolve_lesson_price(db, unpriced) == Decimal("40000")
        assert await resolve_lesson_price(db, priced) == Decimal("70000")


async def test_group_without_price_is_not_charged(session_factory, make_student):
    async with session_factory() as db:
        free_group = Group(title="Ochiq dars", price=None)
        db.add(free_group)
        await db.commit()

    student = await make_student(group=free_group, balance=Decimal(0))
    recorder = AttendanceRecorder(session_factory)
    await recorder.record(
        AttendanceSubmission(student_id=student.id, group_id=free_group.id, status=AttendanceStatus.PRESENT)
    )

    assert (await _student(session_factory, student.id)).balance == Decimal(0)


async def test_threshold_fallback_and_bad_value(session_factory):
    async with session_factory() as db:
        assert await resolve_threshold(db) == Decimal("-600000")

        await config_store.put(db, config_store.MIN_BALANCE_THRESHOLD, "minus million")
        assert await resolve_threshold(db) == Decimal("-600000")

        await config_store.put(db, config_store.MIN_BALANCE_THRESHOLD, "-1 000 000")
        assert await resolve_threshold(db) == Decimal("-1000000")
