# Balance ledger: lesson price deduction on every attendance record

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from database import Attendance, Group, Student, deactivate_student, decrement_student_balance, get_group
from database.config_store import (
    DEFAULT_LESSON_PRICE,
    DEFAULT_MIN_BALANCE_THRESHOLD,
    MIN_BALANCE_THRESHOLD,
    get_decimal,
)
from utils.metrics import balance_deductions_total, students_deactivated_total

logger = logging.getLogger(__name__)


@dataclass
class ChargeResult:
    """Итог списания за урок."""
    charged: bool
    amount: Decimal = Decimal(0)
    new_balance: Optional[Decimal] = None
    deactivated: bool = False
    reason: Optional[str] = None   # Почему списание пропущено


async def resolve_lesson_price(db: AsyncSession, group: Optional[Group]) -> Decimal:
    """Цена урока: цена группы → DEFAULT_LESSON_PRICE → 0."""
    if group is not None and group.price is not None and group.price > 0:
        return Decimal(group.price)

    default_price = await get_decimal(db, DEFAULT_LESSON_PRICE)
    if default_price is not None and default_price > 0:
        return default_price

    return Decimal(0)


async def resolve_threshold(db: AsyncSession) -> Decimal:
    """Минимальный баланс, при котором ученик становится неактивным."""
    threshold = await get_decimal(db, MIN_BALANCE_THRESHOLD)
    if threshold is None:
        return DEFAULT_MIN_BALANCE_THRESHOLD
    return threshold


async def charge_for_lesson(
    db: AsyncSession,
    student: Student,
    attendance: Attendance,
) -> ChargeResult:
    """
    Списать цену урока с баланса ученика.

    Списание идёт и за присутствие, и за пропуск. Замороженные и удалённые
    ученики не списываются. После списания, если баланс ≤ порога и ученик
    активен, он деактивируется (обратно включает только администратор).
    Commit делает вызывающий код.
    """
    if student.frozen or student.is_deleted:
        reason = "frozen" if student.frozen else "deleted"
        logger.info(f"Student {student.id} is {reason}, lesson {attendance.id} not charged")
        balance_deductions_total.labels(result="skipped").inc()
        return ChargeResult(charged=False, reason=reason)

    group = await get_group(db, attendance.group_id)
    price = await resolve_lesson_price(db, group)
    if price <= 0:
        logger.info(f"No lesson price for group {attendance.group_id}, nothing to charge")
        balance_deductions_total.labels(result="skipped").inc()
        return ChargeResult(charged=False, reason="no_price")

    new_balance = await decrement_student_balance(db, student.id, price)
    if new_balance is None:
        # Заморожен / удалён между чтением и списанием
        logger.info(f"Student {student.id} changed concurrently, lesson {attendance.id} not charged")
        balance_deductions_total.labels(result="skipped").inc()
        return ChargeResult(charged=False, reason="not_chargeable")

    new_balance = Decimal(new_balance)
    balance_deductions_total.labels(result="deducted").inc()
    logger.info(
        f"Charged {price} from student {student.id} for attendance {attendance.id}, "
        f"new balance: {new_balance}"
    )

    result = ChargeResult(charged=True, amount=price, new_balance=new_balance)

    threshold = await resolve_threshold(db)
    if new_balance <= threshold and await deactivate_student(db, student.id):
        result.deactivated = True
        students_deactivated_total.inc()
        logger.warning(
            f"Student {student.id} deactivated: balance {new_balance} <= threshold {threshold}"
        )

    return result
