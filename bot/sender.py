# Telegram channel: plain sends and broadcast fan-out

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Iterable, Optional

from aiogram import Bot
from aiogram.client.default import DefaultBotProperties
from aiogram.exceptions import TelegramAPIError

from config.settings import CHANNEL_SEND_TIMEOUT, TELEGRAM_BOT_TOKEN, TELEGRAM_PARSE_MODE
from utils.metrics import api_request_duration

logger = logging.getLogger(__name__)

# Пауза между сообщениями рассылки (лимит Telegram ~30 сообщений/сек)
BROADCAST_DELAY = 0.05


class ChannelError(Exception):
    """Сообщение не доставлено."""
    pass


@dataclass
class BroadcastResult:
    total: int = 0
    sent: int = 0
    failed: int = 0


def create_bot(token: str = TELEGRAM_BOT_TOKEN, parse_mode: Optional[str] = TELEGRAM_PARSE_MODE) -> Bot:
    """Один экземпляр Bot на процесс; передаётся в TelegramSender и Dispatcher aiogram."""
    return Bot(token=token, default=DefaultBotProperties(parse_mode=parse_mode or None))


class TelegramSender:
    """
    Отправка готового текста в чат.

    Не хранит состояния кроме Bot, режима разметки и таймаута.
    """

    def __init__(
        self,
        bot: Bot,
        parse_mode: Optional[str] = TELEGRAM_PARSE_MODE,
        timeout: float = CHANNEL_SEND_TIMEOUT,
    ):
        self.bot = bot
        self.parse_mode = parse_mode or None
        self.timeout = timeout

    async def send(self, chat_id: str, text: str) -> None:
        """Отправить сообщение. Ошибка или таймаут: ChannelError."""
        if not chat_id:
            raise ChannelError("Empty chat id")

        start = time.time()
        try:
            await asyncio.wait_for(
                self.bot.send_message(chat_id=chat_id, text=text, parse_mode=self.parse_mode),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise ChannelError(f"Telegram send timed out after {self.timeout}s") from e
        except TelegramAPIError as e:
            raise ChannelError(f"Telegram API error: {e.message}") from e
        finally:
            api_request_duration.labels(service="telegram").observe(time.time() - start)

    async def broadcast(self, chat_ids: Iterable[str], text: str) -> BroadcastResult:
        """
        Отправить одно сообщение всем chat_ids.

        Ошибки отдельных получателей только считаются.
        """
        result = BroadcastResult()
        for chat_id in chat_ids:
            result.total += 1
            try:
                await self.send(chat_id, text)
                result.sent += 1
            except Exception as e:
                result.failed += 1
                logger.debug(f"Broadcast to {chat_id} failed: {e}")
            await asyncio.sleep(BROADCAST_DELAY)

        logger.info(f"Broadcast finished: {result.sent} sent, {result.failed} failed of {result.total}")
        return result
