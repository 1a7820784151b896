# Bot middleware: update logging

from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import Message, TelegramObject

from config.logging import get_logger, bind_request_context, clear_request_context
from utils.metrics import errors_total

logger = get_logger(__name__)


class LoggingMiddleware(BaseMiddleware):
    """Логирует входящие сообщения с контекстом чата."""

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        if isinstance(event, Message):
            bind_request_context(
                chat_id=event.chat.id,
                user_id=event.from_user.id if event.from_user else None,
                username=event.from_user.username if event.from_user else None,
            )
            logger.info("incoming_message", text=(event.text or "[media]")[:100])

        try:
            return await handler(event, data)
        except Exception as e:
            errors_total.labels(type="handler_error", module="bot").inc()
            logger.error("handler_error", error=str(e), exc_info=True)
            raise
        finally:
            clear_request_context()
