# Notification dispatcher: drains WAITING notifications through the channels

import asyncio
import time
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bot.sender import TelegramSender
from config.logging import bind_request_context, clear_request_context, get_logger
from database import (
    Notification,
    NotificationStatus,
    get_all_parent_chat_ids,
    get_waiting_notifications,
    transition_notification,
)
from sms.client import SmsClient
from utils.metrics import dispatch_cycle_duration, errors_total, notifications_delivered_total

logger = get_logger(__name__)


@dataclass
class CycleStats:
    """Итог одного цикла рассылки."""
    processed: int = 0
    sent: int = 0
    failed: int = 0
    skipped: bool = False    # Предыдущий цикл ещё не закончился


class NotificationDispatcher:
    """
    Отправка очереди уведомлений.

    Статусы: WAITING → SENDING → SENT | ERROR. Автоповторов нет: ERROR
    переотправляет оператор. Циклы не пересекаются (asyncio.Lock).
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        telegram: TelegramSender,
        sms: Optional[SmsClient] = None,
    ):
        self.session_factory = session_factory
        self.telegram = telegram
        self.sms = sms
        self._lock = asyncio.Lock()

    async def run_cycle(self) -> CycleStats:
        """
        Один проход по очереди.

        Берёт снимок WAITING на начало цикла (от старых к новым); всё, что
        добавится во время цикла, уйдёт в следующем.
        """
        if self._lock.locked():
            logger.debug("dispatch_cycle_skipped")
            return CycleStats(skipped=True)

        async with self._lock:
            start = time.time()
            stats = CycleStats()

            async with self.session_factory() as db:
                notifications = await get_waiting_notifications(db)

            for notification in notifications:
                delivered = await self.dispatch(notification)
                if delivered is None:
                    continue
                stats.processed += 1
                if delivered:
                    stats.sent += 1
                else:
                    stats.failed += 1

            dispatch_cycle_duration.observe(time.time() - start)
            if stats.processed:
                logger.info(
                    "dispatch_cycle_finished",
                    processed=stats.processed,
                    sent=stats.sent,
                    failed=stats.failed,
                    duration=round(time.time() - start, 2),
                )
            return stats

    async def dispatch(self, notification: Notification) -> Optional[bool]:
        """
        Отправить одно уведомление.

        True: SENT. False: ERROR. None: уведомление уже забрал кто-то другой.
        """
        bind_request_context(notification_id=notification.id)
        try:
            if not await self._transition(notification.id, NotificationStatus.WAITING, NotificationStatus.SENDING):
                logger.warning("notification_not_waiting")
                return None

            if notification.is_broadcast:
                try:
                    await self._send_broadcast(notification)
                except Exception as e:
                    notifications_delivered_total.labels(channel="broadcast", status="error").inc()
                    logger.error("broadcast_failed", error=str(e))
                    await self._transition(
                        notification.id,
                        NotificationStatus.SENDING,
                        NotificationStatus.ERROR,
                        error=str(e) or type(e).__name__,
                    )
                    return False
                return True

            try:
                await self.telegram.send(notification.telegram_id, notification.message)
            except Exception as e:
                notifications_delivered_total.labels(channel="telegram", status="error").inc()
                logger.error("notification_failed", telegram_id=notification.telegram_id, error=str(e))
                await self._transition(
                    notification.id,
                    NotificationStatus.SENDING,
                    NotificationStatus.ERROR,
                    error=str(e) or type(e).__name__,
                )
                return False

            notifications_delivered_total.labels(channel="telegram", status="success").inc()
            await self._send_sms_copy(notification)
            await self._transition(notification.id, NotificationStatus.SENDING, NotificationStatus.SENT)
            logger.info("notification_sent", telegram_id=notification.telegram_id, type=notification.type.value)
            return True
        finally:
            clear_request_context()

    async def _send_broadcast(self, notification: Notification) -> None:
        """Рассылка всем родителям: список читается сейчас, итог всегда SENT."""
        async with self.session_factory() as db:
            chat_ids = await get_all_parent_chat_ids(db)

        result = await self.telegram.broadcast(chat_ids, notification.message)
        notifications_delivered_total.labels(channel="broadcast", status="success").inc(result.sent)
        notifications_delivered_total.labels(channel="broadcast", status="error").inc(result.failed)

        error = None
        if result.failed:
            error = f"Broadcast: {result.failed} of {result.total} recipients failed"

        await self._transition(
            notification.id,
            NotificationStatus.SENDING,
            NotificationStatus.SENT,
            error=error,
        )
        logger.info("broadcast_sent", total=result.total, sent=result.sent, failed=result.failed)

    async def _send_sms_copy(self, notification: Notification) -> None:
        """SMS-дубль. Ошибка SMS не влияет на статус уведомления."""
        if self.sms is None or not notification.phone_number:
            return
        try:
            sent = await self.sms.send_notification(
                notification.type,
                notification.phone_number,
                fields=notification.sms_fields,
                variant=notification.sms_variant,
            )
            if sent:
                notifications_delivered_total.labels(channel="sms", status="success").inc()
        except Exception as e:
            notifications_delivered_total.labels(channel="sms", status="error").inc()
            logger.warning("sms_copy_failed", phone=notification.phone_number, error=str(e))

    async def _transition(
        self,
        notification_id: int,
        from_status: NotificationStatus,
        to_status: NotificationStatus,
        error: Optional[str] = None,
    ) -> bool:
        async with self.session_factory() as db:
            try:
                changed = await transition_notification(db, notification_id, from_status, to_status, error)
                await db.commit()
                return changed
            except Exception:
                errors_total.labels(type="db_error", module="notifications").inc()
                logger.error(
                    "notification_transition_failed",
                    from_status=from_status.value,
                    to_status=to_status.value,
                    exc_info=True,
                )
                raise
