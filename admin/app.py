# Admin API FastAPI application

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cache import close_cache, init_cache
from config.logging import setup_logging
from database import AsyncSessionLocal, close_db, init_db
from utils.metrics import init_app_info

from .routes import router

logger = logging.getLogger(__name__)


def create_app(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    manage_resources: bool = True,
) -> FastAPI:
    """
    Собрать приложение.

    manage_resources=False: без подключения к БД и Redis при старте
    (для тестов со своей фабрикой сессий).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifecycle: startup and shutdown."""
        if manage_resources:
            logger.info("Starting admin API...")
            await init_db()
            await init_cache()
        yield
        if manage_resources:
            await close_cache()
            await close_db()
            logger.info("Admin API stopped")

    app = FastAPI(
        title="Tutor Center Admin",
        description="Посещаемость, списания и уведомления родителям",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.session_factory = session_factory or AsyncSessionLocal
    app.include_router(router)
    return app


def build_default_app() -> FastAPI:
    setup_logging()
    init_app_info()
    return create_app()


app = build_default_app()
