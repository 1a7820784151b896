# Bot module

from aiogram import Router

from .handlers import router as handlers_router
from .sender import BroadcastResult, ChannelError, TelegramSender, create_bot

main_router = Router()
main_router.include_router(handlers_router)

__all__ = [
    "main_router",
    "BroadcastResult",
    "ChannelError",
    "TelegramSender",
    "create_bot",
]
