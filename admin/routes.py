# Admin API routes

import logging
from datetime import datetime
from typing import AsyncGenerator, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from attendance import AttendanceRecorder, AttendanceSubmission, AttendanceValidationError
from cache import is_cache_available
from database import NotificationStatus, NotificationType, list_notifications
from database import config_store
from notifications import (
    QueueError,
    enqueue_notification,
    resubmit_notification,
    send_broadcast,
    send_debtor_reminders,
    send_payment_reminder,
)
from schemas import (
    AttendanceBatch,
    AttendanceItem,
    AttendanceOut,
    BatchOut,
    BroadcastCreate,
    ConfigSet,
    NotificationCreate,
    NotificationOut,
    NotificationPage,
    PaymentReminderCreate,
)
from utils.metrics import get_metrics, get_metrics_content_type

from .auth import verify_credentials

logger = logging.getLogger(__name__)

router = APIRouter()


# ═══════════════════════════════════════════════════════════════════
# Dependencies
# ═══════════════════════════════════════════════════════════════════

def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.session_factory


async def get_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


def get_recorder(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AttendanceRecorder:
    return AttendanceRecorder(session_factory)


def _submission(item: AttendanceItem) -> AttendanceSubmission:
    return AttendanceSubmission(
        student_id=item.student_id,
        group_id=item.group_id,
        status=item.status,
        performance=item.performance,
        date=item.date,
    )


# ═══════════════════════════════════════════════════════════════════
# Health Check и метрики (без авторизации)
# ═══════════════════════════════════════════════════════════════════

_start_time = datetime.now()


@router.get("/health", response_class=JSONResponse)
async def health_check(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    """Состояние сервиса и подключения к БД."""
    db_status = "ok"
    db_error = None
    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "error"
        db_error = str(e)

    uptime = datetime.now() - _start_time
    status = "healthy" if db_status == "ok" else "unhealthy"

    response = {
        "status": status,
        "timestamp": datetime.now().isoformat(),
        "uptime": str(uptime).split(".")[0],
        "components": {
            "database": {
                "status": db_status,
                "error": db_error,
            },
            # Без Redis сервис работает, просто без кэша настроек
            "cache": {
                "status": "ok" if is_cache_available() else "disabled",
            },
        },
    }
    return JSONResponse(content=response, status_code=200 if status == "healthy" else 503)


@router.get("/metrics")
async def prometheus_metrics():
    """Prometheus metrics эндпоинт."""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())


# ═══════════════════════════════════════════════════════════════════
# Посещаемость
# ═══════════════════════════════════════════════════════════════════

@router.post("/attendance", response_model=AttendanceOut, status_code=201)
async def record_attendance(
    item: AttendanceItem,
    recorder: AttendanceRecorder = Depends(get_recorder),
    username: str = Depends(verify_credentials),
):
    """Одна отметка. Отклонённая отметка: 400 с описанием причины."""
    try:
        attendance = await recorder.record(_submission(item))
    except AttendanceValidationError as e:
        return JSONResponse(status_code=400, content=e.to_dict())
    return attendance


@router.post("/attendance/batch", response_model=BatchOut)
async def record_attendance_batch(
    batch: AttendanceBatch,
    recorder: AttendanceRecorder = Depends(get_recorder),
    username: str = Depends(verify_credentials),
):
    """Пакет отметок: каждая обрабатывается отдельно."""
    result = await recorder.record_batch([_submission(item) for item in batch.items])
    logger.info(
        f"Attendance batch by {username}: "
        f"{len(result.created)} created, {len(result.errors)} rejected"
    )
    return BatchOut(
        created=[AttendanceOut.model_validate(a) for a in result.created],
        errors=[e.to_dict() for e in result.errors],
    )


# ═══════════════════════════════════════════════════════════════════
# Уведомления
# ═══════════════════════════════════════════════════════════════════

@router.post("/notifications", response_model=NotificationOut, status_code=201)
async def create_notification(
    data: NotificationCreate,
    db: AsyncSession = Depends(get_session),
    username: str = Depends(verify_credentials),
):
    """Поставить готовое уведомление в очередь."""
    notification = await enqueue_notification(
        db,
        type=data.type,
        telegram_id=data.telegram_id,
        message=data.message,
        phone_number=data.phone_number,
        sms_fields=data.sms_fields,
        sms_variant=data.sms_variant.value if data.sms_variant else None,
        student_id=data.student_id,
    )
    await db.commit()
    await db.refresh(notification)
    return notification


@router.post("/notifications/broadcast", response_model=NotificationOut, status_code=201)
async def create_broadcast(
    data: BroadcastCreate,
    db: AsyncSession = Depends(get_session),
    username: str = Depends(verify_credentials),
):
    """Рассылка всем родителям."""
    try:
        notification = await send_broadcast(db, data.message)
    except QueueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    await db.refresh(notification)
    logger.info(f"Broadcast {notification.id} queued by {username}")
    return notification


@router.post("/students/{student_id}/payment-reminder", response_model=list[NotificationOut], status_code=201)
async def create_payment_reminder(
    student_id: int,
    data: Optional[PaymentReminderCreate] = None,
    db: AsyncSession = Depends(get_session),
    username: str = Depends(verify_credentials),
):
    """Напоминание об оплате родителям ученика."""
    try:
        notifications = await send_payment_reminder(db, student_id, data.message if data else None)
    except QueueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    for notification in notifications:
        await db.refresh(notification)
    return notifications


@router.post("/groups/{group_id}/debtor-reminders", response_model=list[NotificationOut], status_code=201)
async def create_debtor_reminders(
    group_id: int,
    data: Optional[PaymentReminderCreate] = None,
    db: AsyncSession = Depends(get_session),
    username: str = Depends(verify_credentials),
):
    """Напоминание об оплате всем должникам группы."""
    notifications = await send_debtor_reminders(db, group_id, data.message if data else None)
    for notification in notifications:
        await db.refresh(notification)
    return notifications


@router.post("/notifications/{notification_id}/resubmit", response_model=NotificationOut, status_code=201)
async def resubmit(
    notification_id: int,
    db: AsyncSession = Depends(get_session),
    username: str = Depends(verify_credentials),
):
    """Повторная отправка уведомления из ERROR (новая строка в очереди)."""
    try:
        notification = await resubmit_notification(db, notification_id)
    except QueueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    await db.refresh(notification)
    logger.info(f"Notification {notification_id} resubmitted by {username}")
    return notification


@router.get("/notifications", response_model=NotificationPage)
async def get_notifications(
    status: Optional[NotificationStatus] = None,
    type: Optional[NotificationType] = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_session),
    username: str = Depends(verify_credentials),
):
    """Журнал уведомлений, новые сверху."""
    total, items = await list_notifications(db, status=status, type=type, limit=limit, offset=offset)
    return NotificationPage(total=total, items=[NotificationOut.model_validate(n) for n in items])


# ═══════════════════════════════════════════════════════════════════
# Настройки
# ═══════════════════════════════════════════════════════════════════

@router.put("/config")
async def put_config(
    data: ConfigSet,
    db: AsyncSession = Depends(get_session),
    username: str = Depends(verify_credentials),
):
    """Записать значение настройки (цена урока, порог, шаблоны)."""
    await config_store.put(db, data.key, data.value, user_id=data.user_id)
    logger.info(f"Config {data.key} (user {data.user_id}) updated by {username}")
    return {"key": data.key, "user_id": data.user_id, "value": data.value}
