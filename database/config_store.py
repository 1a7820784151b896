# Config store: typed, cached access to the `configs` table

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from cache import cache_config_value, get_cached_config_value, invalidate_config_value

from .crud import get_config_value, set_config_value

logger = logging.getLogger(__name__)

# Ключи глобальных настроек
DEFAULT_LESSON_PRICE = "DEFAULT_LESSON_PRICE"
MIN_BALANCE_THRESHOLD = "MIN_BALANCE_THRESHOLD"

# Порог, если MIN_BALANCE_THRESHOLD не задан
DEFAULT_MIN_BALANCE_THRESHOLD = Decimal("-600000")


async def get_str(db: AsyncSession, key: str, user_id: int = 0) -> Optional[str]:
    """Строковое значение: сначала Redis, потом БД."""
    cached = await get_cached_config_value(key, user_id)
    if cached is not None:
        return cached.get("value")

    value = await get_config_value(db, key, user_id)
    await cache_config_value(key, user_id, value)
    return value


async def get_decimal(db: AsyncSession, key: str, user_id: int = 0) -> Optional[Decimal]:
    """Числовое значение. Нечисловое значение считается отсутствующим."""
    raw = await get_str(db, key, user_id)
    if raw is None or not raw.strip():
        return None
    try:
        return Decimal(raw.strip().replace(" ", ""))
    except InvalidOperation:
        logger.warning(f"Config {key}[{user_id}] is not a number: {raw!r}")
        return None


async def put(db: AsyncSession, key: str, value: str, user_id: int = 0) -> None:
    """Записать настройку и сбросить кэш."""
    await set_config_value(db, key, value, user_id)
    await invalidate_config_value(key, user_id)
