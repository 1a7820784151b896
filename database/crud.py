# Database CRUD operations
#
# Функции записи (кроме set_config_value) делают только flush:
# границы транзакции задаёт вызывающий сервис.

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .models import (
    Attendance,
    AttendanceStatus,
    Config,
    Group,
    Notification,
    NotificationStatus,
    NotificationType,
    Parent,
    PerformanceStatus,
    Student,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
# Config
# ═══════════════════════════════════════════════════════════════════

async def get_config_value(
    db: AsyncSession,
    key: str,
    user_id: int = 0,
) -> Optional[str]:
    """Значение настройки по ключу (user_id = 0: глобальная)."""
    result = await db.execute(
        select(Config.value).where(Config.key == key, Config.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def set_config_value(
    db: AsyncSession,
    key: str,
    value: str,
    user_id: int = 0,
) -> Config:
    """Создать или обновить настройку."""
    result = await db.execute(
        select(Config).where(Config.key == key, Config.user_id == user_id)
    )
    config = result.scalar_one_or_none()

    if config is None:
        config = Config(key=key, user_id=user_id, value=value)
        db.add(config)
    else:
        config.value = value

    await db.commit()
    await db.refresh(config)

    logger.info(f"Config {key}[{user_id}] set")
    return config


# ═══════════════════════════════════════════════════════════════════
# Students / Groups
# ═══════════════════════════════════════════════════════════════════

async def get_student(
    db: AsyncSession,
    student_id: int,
    with_parents: bool = False,
) -> Optional[Student]:
    """Получить ученика по ID."""
    query = select(Student).where(Student.id == student_id)
    if with_parents:
        query = query.options(selectinload(Student.parents))

    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_group(db: AsyncSession, group_id: int) -> Optional[Group]:
    """Получить группу по ID."""
    result = await db.execute(select(Group).where(Group.id == group_id))
    return result.scalar_one_or_none()


async def count_groups(db: AsyncSession, group_id: int) -> int:
    """Проверка существования группы."""
    result = await db.execute(
        select(func.count()).select_from(Group).where(Group.id == group_id)
    )
    return result.scalar_one()


async def decrement_student_balance(
    db: AsyncSession,
    student_id: int,
    amount: Decimal,
) -> Optional[Decimal]:
    """
    Атомарно списать сумму с баланса (UPDATE ... SET balance = balance - :amount).

    Замороженных и удалённых учеников не трогает.
    Возвращает новый баланс или None, если строка не обновлена.
    """
    result = await db.execute(
        update(Student)
        .where(
            Student.id == student_id,
            Student.frozen == False,  # noqa: E712
            Student.is_deleted == False,  # noqa: E712
        )
        .values(balance=Student.balance - amount)
        .returning(Student.balance)
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one_or_none()


async def deactivate_student(db: AsyncSession, student_id: int) -> bool:
    """Сделать ученика неактивным. True, если флаг действительно сменился."""
    result = await db.execute(
        update(Student)
        .where(Student.id == student_id, Student.is_active == True)  # noqa: E712
        .values(is_active=False)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0


async def get_group_debtors(db: AsyncSession, group_id: int) -> list[Student]:
    """Активные ученики группы с отрицательным балансом."""
    result = await db.execute(
        select(Student)
        .options(selectinload(Student.parents))
        .where(
            Student.group_id == group_id,
            Student.is_active == True,  # noqa: E712
            Student.is_deleted == False,  # noqa: E712
            Student.balance < 0,
        )
        .order_by(Student.id)
    )
    return list(result.scalars().all())


# ═══════════════════════════════════════════════════════════════════
# Attendance
# ═══════════════════════════════════════════════════════════════════

async def attendance_exists(
    db: AsyncSession,
    student_id: int,
    group_id: int,
    day: date,
) -> bool:
    """Есть ли уже отметка ученика в группе за этот день."""
    result = await db.execute(
        select(func.count())
        .select_from(Attendance)
        .where(
            Attendance.student_id == student_id,
            Attendance.group_id == group_id,
            Attendance.date == day,
        )
    )
    return result.scalar_one() > 0


async def create_attendance(
    db: AsyncSession,
    student_id: int,
    group_id: int,
    day: date,
    status: AttendanceStatus,
    performance: PerformanceStatus,
) -> Attendance:
    """Добавить отметку посещения (flush, без commit)."""
    attendance = Attendance(
        student_id=student_id,
        group_id=group_id,
        date=day,
        status=status,
        performance=performance,
        performance_reported=False,
    )
    db.add(attendance)
    await db.flush()
    return attendance


async def get_unreported_performances(
    db: AsyncSession,
    student_id: int,
    performance: PerformanceStatus,
) -> list[Attendance]:
    """Неотправленные отметки с той же оценкой, от старых к новым."""
    result = await db.execute(
        select(Attendance)
        .where(
            Attendance.student_id == student_id,
            Attendance.performance == performance,
            Attendance.performance_reported == False,  # noqa: E712
        )
        .order_by(Attendance.date.asc(), Attendance.id.asc())
    )
    return list(result.scalars().all())


async def mark_performance_reported(db: AsyncSession, attendance_ids: list[int]) -> int:
    """Пометить отметки как отправленные родителям."""
    if not attendance_ids:
        return 0
    result = await db.execute(
        update(Attendance)
        .where(Attendance.id.in_(attendance_ids))
        .values(performance_reported=True)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


# ═══════════════════════════════════════════════════════════════════
# Parents
# ═══════════════════════════════════════════════════════════════════

async def get_all_parent_chat_ids(db: AsyncSession) -> list[str]:
    """Все уникальные chat id родителей (для рассылки)."""
    result = await db.execute(
        select(Parent.telegram_id)
        .where(Parent.telegram_id.is_not(None), Parent.telegram_id != "")
        .distinct()
        .order_by(Parent.telegram_id)
    )
    return list(result.scalars().all())


# ═══════════════════════════════════════════════════════════════════
# Notifications
# ═══════════════════════════════════════════════════════════════════

async def add_notification(
    db: AsyncSession,
    type: NotificationType,
    message: str,
    telegram_id: str,
    phone_number: Optional[str] = None,
    sms_fields: Optional[dict] = None,
    sms_variant: Optional[str] = None,
    student_id: Optional[int] = None,
) -> Notification:
    """Поставить уведомление в очередь (flush, без commit)."""
    notification = Notification(
        type=type,
        message=message,
        telegram_id=telegram_id,
        phone_number=phone_number,
        sms_fields=sms_fields,
        sms_variant=sms_variant,
        student_id=student_id,
        status=NotificationStatus.WAITING,
    )
    db.add(notification)
    await db.flush()
    return notification


async def get_notification(db: AsyncSession, notification_id: int) -> Optional[Notification]:
    """Получить уведомление по ID."""
    result = await db.execute(
        select(Notification)
        .where(Notification.id == notification_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_waiting_notifications(db: AsyncSession) -> list[Notification]:
    """Уведомления в статусе WAITING в порядке постановки в очередь."""
    result = await db.execute(
        select(Notification)
        .where(Notification.status == NotificationStatus.WAITING)
        .order_by(Notification.created_at.asc(), Notification.id.asc())
    )
    return list(result.scalars().all())


async def transition_notification(
    db: AsyncSession,
    notification_id: int,
    from_status: NotificationStatus,
    to_status: NotificationStatus,
    error: Optional[str] = None,
) -> bool:
    """
    Перевести уведомление из одного статуса в другой.

    UPDATE выполняется только если текущий статус равен from_status,
    поэтому из SENT / ERROR уведомление уже никуда не переходит.
    """
    values: dict = {"status": to_status}
    if error is not None:
        values["error"] = error

    result = await db.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.status == from_status)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0


async def list_notifications(
    db: AsyncSession,
    status: Optional[NotificationStatus] = None,
    type: Optional[NotificationType] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[int, list[Notification]]:
    """Журнал уведомлений (новые сверху) и общее количество."""
    filters = []
    if status:
        filters.append(Notification.status == status)
    if type:
        filters.append(Notification.type == type)

    total = await db.execute(select(func.count()).select_from(Notification).where(*filters))
    result = await db.execute(
        select(Notification)
        .where(*filters)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return total.scalar_one(), list(result.scalars().all())
