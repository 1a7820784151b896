# Notification queue: producers put rendered messages into `notifications`

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from database import (
    BROADCAST_TELEGRAM_ID,
    Notification,
    NotificationStatus,
    NotificationType,
    Student,
    add_notification,
    get_group_debtors,
    get_notification,
    get_student,
)
from database.config_store import DEFAULT_MIN_BALANCE_THRESHOLD, MIN_BALANCE_THRESHOLD, get_decimal
from utils.metrics import notifications_enqueued_total

from .templates import PAYMENT_REMINDER_KEY, format_amount, load_template, render

logger = logging.getLogger(__name__)


class QueueError(Exception):
    """Ошибка постановки в очередь (нет ученика, неверный статус и т.п.)."""
    pass


async def enqueue_notification(
    db: AsyncSession,
    type: NotificationType,
    telegram_id: str,
    message: str,
    phone_number: Optional[str] = None,
    sms_fields: Optional[dict] = None,
    sms_variant: Optional[str] = None,
    student_id: Optional[int] = None,
) -> Notification:
    """
    Поставить одно уведомление в очередь в статусе WAITING.

    message уже готовый текст. Commit делает вызывающий код.
    """
    notification = await add_notification(
        db,
        type=type,
        message=message,
        telegram_id=str(telegram_id),
        phone_number=phone_number or None,
        sms_fields=sms_fields,
        sms_variant=sms_variant,
        student_id=student_id,
    )
    notifications_enqueued_total.labels(type=type.value).inc()
    return notification


async def enqueue_for_parents(
    db: AsyncSession,
    student: Student,
    type: NotificationType,
    message: str,
    sms_fields: Optional[dict] = None,
    sms_variant: Optional[str] = None,
) -> list[Notification]:
    """
    Одно уведомление каждому родителю ученика.

    student должен быть загружен с parents. Нет родителей: пустой список.
    """
    if not student.parents:
        logger.info(f"Student {student.id} has no parents, {type.value} skipped")
        return []

    notifications = []
    for parent in student.parents:
        notifications.append(
            await enqueue_notification(
                db,
                type=type,
                telegram_id=parent.telegram_id,
                message=message,
                phone_number=parent.phone_number,
                sms_fields=sms_fields,
                sms_variant=sms_variant,
                student_id=student.id,
            )
        )
    return notifications


# ═══════════════════════════════════════════════════════════════════
# Действия администратора (с commit)
# ═══════════════════════════════════════════════════════════════════

async def send_broadcast(db: AsyncSession, message: str) -> Notification:
    """
    Рассылка всем родителям.

    Список получателей читается при отправке, а не сейчас.
    """
    if not message.strip():
        raise QueueError("Broadcast message is empty")

    notification = await enqueue_notification(
        db,
        type=NotificationType.BROADCAST,
        telegram_id=BROADCAST_TELEGRAM_ID,
        message=message,
    )
    await db.commit()
    logger.info(f"Broadcast queued as notification {notification.id}")
    return notification


async def _payment_reminder_for(
    db: AsyncSession,
    student: Student,
    message: Optional[str],
) -> list[Notification]:
    threshold = await get_decimal(db, MIN_BALANCE_THRESHOLD)
    if threshold is None:
        threshold = DEFAULT_MIN_BALANCE_THRESHOLD

    balance = student.balance
    if not message:
        template = await load_template(db, PAYMENT_REMINDER_KEY)
        message = render(
            template,
            studentName=student.full_name,
            balance=format_amount(balance),
        )

    debt = -balance if balance < 0 else Decimal(0)
    sms_fields = {
        "p1_name": student.full_name,
        "p2_debt": format_amount(debt),
        "p3_threshold": format_amount(abs(threshold)),
    }
    return await enqueue_for_parents(
        db,
        student,
        NotificationType.PAYMENT_REMINDER,
        message,
        sms_fields=sms_fields,
    )


async def send_payment_reminder(
    db: AsyncSession,
    student_id: int,
    message: Optional[str] = None,
) -> list[Notification]:
    """Напоминание об оплате родителям одного ученика."""
    student = await get_student(db, student_id, with_parents=True)
    if student is None or student.is_deleted:
        raise QueueError(f"Student with ID {student_id} not found")

    notifications = await _payment_reminder_for(db, student, message)
    await db.commit()
    logger.info(f"Payment reminder for student {student_id}: {len(notifications)} queued")
    return notifications


async def send_debtor_reminders(
    db: AsyncSession,
    group_id: int,
    message: Optional[str] = None,
) -> list[Notification]:
    """Напоминание об оплате всем должникам группы."""
    debtors = await get_group_debtors(db, group_id)

    notifications = []
    for student in debtors:
        notifications.extend(await _payment_reminder_for(db, student, message))

    await db.commit()
    logger.info(
        f"Debtor reminders for group {group_id}: "
        f"{len(debtors)} debtors, {len(notifications)} notifications queued"
    )
    return notifications


async def resubmit_notification(db: AsyncSession, notification_id: int) -> Notification:
    """
    Повторно поставить в очередь уведомление из ERROR.

    Создаётся новая строка WAITING; исходная остаётся в ERROR.
    """
    original = await get_notification(db, notification_id)
    if original is None:
        raise QueueError(f"Notification with ID {notification_id} not found")
    if original.status != NotificationStatus.ERROR:
        raise QueueError(
            f"Only ERROR notifications can be resubmitted, "
            f"notification {notification_id} is {original.status.value}"
        )

    copy = await enqueue_notification(
        db,
        type=original.type,
        telegram_id=original.telegram_id,
        message=original.message,
        phone_number=original.phone_number,
        sms_fields=original.sms_fields,
        sms_variant=original.sms_variant,
        student_id=original.student_id,
    )
    await db.commit()
    logger.info(f"Notification {notification_id} resubmitted as {copy.id}")
    return copy
