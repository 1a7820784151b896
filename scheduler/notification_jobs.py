# Notification dispatch scheduler

import logging
from typing import Optional
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config.settings import NOTIFICATION_DISPATCH_INTERVAL, TIMEZONE
from notifications.dispatcher import NotificationDispatcher
from utils.metrics import errors_total

logger = logging.getLogger(__name__)

DISPATCH_JOB_ID = "notification_dispatch"

# Глобальная переменная для планировщика
_scheduler: Optional[AsyncIOScheduler] = None


async def dispatch_notifications_job(dispatcher: NotificationDispatcher):
    """Задача: один цикл отправки очереди уведомлений."""
    try:
        await dispatcher.run_cycle()
    except Exception as e:
        errors_total.labels(type="job_error", module="scheduler").inc()
        logger.error(f"Error in notification dispatch job: {e}", exc_info=True)


def start_scheduler(dispatcher: NotificationDispatcher, interval: int = NOTIFICATION_DISPATCH_INTERVAL):
    """
    Запустить планировщик.
    Очередь уведомлений разбирается каждые `interval` секунд.
    """
    global _scheduler

    if _scheduler is not None:
        logger.warning("Scheduler already running")
        return

    _scheduler = AsyncIOScheduler(timezone=ZoneInfo(TIMEZONE))

    # max_instances=1: следующий запуск не стартует, пока идёт предыдущий
    _scheduler.add_job(
        dispatch_notifications_job,
        IntervalTrigger(seconds=interval),
        args=[dispatcher],
        id=DISPATCH_JOB_ID,
        name="Dispatch notifications",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    _scheduler.start()

    logger.info(f"Scheduler started. Notifications dispatch every {interval}s")


def stop_scheduler():
    """Остановить планировщик."""
    global _scheduler

    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("Scheduler stopped")
