# Tests for the dispatch job wiring and bot helpers

from bot.handlers import chat_id_message
from bot.sender import TelegramSender
from notifications import NotificationDispatcher
from scheduler import dispatch_notifications_job, start_scheduler, stop_scheduler
from scheduler import notification_jobs


class BrokenDispatcher:
    async def run_cycle(self):
        raise RuntimeError("database is down")


async def test_dispatch_job_logs_and_survives_errors():
    await dispatch_notifications_job(BrokenDispatcher())


async def test_start_and_stop_scheduler(session_factory, fake_bot):
    dispatcher = NotificationDispatcher(session_factory, TelegramSender(fake_bot))

    start_scheduler(dispatcher, interval=60)
    try:
        job = notification_jobs._scheduler.get_job(notification_jobs.DISPATCH_JOB_ID)
        assert job is not None
        assert job.max_instances == 1
        assert job.coalesce is True
    finally:
        stop_scheduler()

    assert notification_jobs._scheduler is None


async def test_broadcast_counts_failures(fake_bot):
    fake_bot.fail_for.add("2")
    result = await TelegramSender(fake_bot).broadcast(["1", "2", "3"], "Salom")

    assert (result.total, result.sent, result.failed) == (3, 2, 1)


def test_chat_id_message_contains_chat_id():
    assert "<code>123456789</code>" in chat_id_message(123456789)
