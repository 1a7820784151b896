# Structured logging (structlog)

import logging
import sys
from typing import Any, Optional

import structlog

from config.settings import LOG_JSON, LOG_LEVEL


def setup_logging(json_logs: Optional[bool] = None, log_level: Optional[str] = None):
    """
    Настроить structlog и стандартный logging.

    Args:
        json_logs: JSON-вывод (production). По умолчанию из LOG_JSON
        log_level: DEBUG / INFO / WARNING / ERROR. По умолчанию из LOG_LEVEL
    """
    if json_logs is None:
        json_logs = LOG_JSON
    level = getattr(logging, (log_level or LOG_LEVEL).upper(), logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_logs:
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Стандартный logging: модули ядра и сторонние библиотеки
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        level=level,
        stream=sys.stdout,
    )

    # Шумные библиотеки
    for noisy in ("httpx", "httpcore", "apscheduler", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    logging.getLogger("aiogram").setLevel(logging.INFO)


def get_logger(name: str = None) -> structlog.BoundLogger:
    """
    Структурированный логгер.

        logger = get_logger(__name__)
        logger.info("notification_sent", notification_id=12, channel="telegram")
    """
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


def bind_request_context(**kwargs: Any):
    """Добавить поля ко всем логам текущего запроса / цикла рассылки."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_request_context():
    """Очистить контекст."""
    structlog.contextvars.clear_contextvars()
