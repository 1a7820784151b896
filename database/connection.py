# Database connection

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from config.settings import DATABASE_URL

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    """Параметры пула (SQLite их не поддерживает)."""
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_recycle": 3600,     # Переподключение каждый час
        "pool_pre_ping": True,    # Проверка соединения перед использованием
        "pool_timeout": 30,
    }


def create_engine(url: str = DATABASE_URL) -> AsyncEngine:
    """Создать асинхронный движок."""
    return create_async_engine(url, echo=False, **_engine_options(url))


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Фабрика сессий.

    Передаётся явно в recorder, dispatcher и API, чтобы каждая операция
    открывала короткую сессию на свою транзакцию.
    """
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )


engine = create_engine()
AsyncSessionLocal = create_session_factory(engine)


async def init_db() -> None:
    """Проверить подключение к БД при старте."""
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection established")
    except Exception as e:
        logger.error(f"Failed to connect to database: {e}")
        raise


async def close_db() -> None:
    """Закрыть пул соединений."""
    await engine.dispose()
    logger.info("Database connection closed")
