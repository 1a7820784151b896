# Main entry point: Telegram bot + notification dispatcher

import asyncio
import signal
import sys
from typing import Optional

from aiogram import Bot, Dispatcher
from aiogram.fsm.storage.memory import MemoryStorage

from config.settings import TELEGRAM_BOT_TOKEN
from config.logging import setup_logging, get_logger
from bot import TelegramSender, create_bot, main_router
from bot.middleware import LoggingMiddleware
from database import AsyncSessionLocal, init_db, close_db
from cache import init_cache, close_cache
from notifications import NotificationDispatcher
from scheduler import start_scheduler, stop_scheduler
from sms import SmsClient
from utils.metrics import init_app_info

# Инициализируем структурированное логирование
setup_logging()

logger = get_logger(__name__)

# Глобальные переменные для graceful shutdown
_bot: Optional[Bot] = None
_dp: Optional[Dispatcher] = None
_shutdown_event: Optional[asyncio.Event] = None


async def shutdown(sig: Optional[signal.Signals] = None):
    """Graceful shutdown: корректное завершение всех компонентов."""
    if _shutdown_event and _shutdown_event.is_set():
        return

    if sig:
        logger.info(f"Received signal {sig.name}, shutting down...")
    else:
        logger.info("Shutting down...")

    # 1. Планировщик: новых циклов рассылки больше не будет
    logger.info("Stopping scheduler...")
    stop_scheduler()

    # 2. Останавливаем polling (если dispatcher активен)
    if _dp:
        logger.info("Stopping dispatcher...")
        try:
            await _dp.stop_polling()
        except RuntimeError:
            # Polling уже остановлен
            pass

    # 3. Закрываем сессию бота
    if _bot:
        logger.info("Closing bot session...")
        await _bot.session.close()

    # 4. Закрываем Redis
    logger.info("Closing Redis cache...")
    await close_cache()

    # 5. Закрываем соединения с БД
    logger.info("Closing database connections...")
    await close_db()

    logger.info("Shutdown complete.")

    if _shutdown_event:
        _shutdown_event.set()


def handle_signal(sig: signal.Signals, loop: asyncio.AbstractEventLoop):
    """Обработчик сигналов SIGINT/SIGTERM."""
    logger.info(f"Signal {sig.name} received")
    loop.create_task(shutdown(sig))


async def main():
    global _bot, _dp, _shutdown_event

    if not TELEGRAM_BOT_TOKEN:
        raise RuntimeError("TELEGRAM_BOT_TOKEN не задан в .env")

    _shutdown_event = asyncio.Event()
    init_app_info()

    loop = asyncio.get_running_loop()
    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(
                sig,
                lambda s=sig: handle_signal(s, loop)
            )

    # Инициализация БД
    logger.info("Connecting to database...")
    await init_db()

    # Redis кэш настроек (опционально - работает и без него)
    logger.info("Connecting to Redis cache...")
    cache_available = await init_cache()
    if not cache_available:
        logger.warning("Redis unavailable, running without cache")

    _bot = create_bot()

    # Один Bot на процесс: и для polling, и для рассылки очереди
    dispatcher = NotificationDispatcher(
        AsyncSessionLocal,
        telegram=TelegramSender(_bot),
        sms=SmsClient(),
    )

    logger.info("Starting scheduler...")
    start_scheduler(dispatcher)

    _dp = Dispatcher(storage=MemoryStorage())
    _dp.message.middleware(LoggingMiddleware())
    _dp.include_router(main_router)

    try:
        logger.info("Starting bot polling...")
        await _dp.start_polling(_bot, allowed_updates=["message"])
    except asyncio.CancelledError:
        logger.info("Polling cancelled")
    finally:
        await shutdown()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
