# Redis cache for rarely changed settings

import json
from typing import Any, Optional

import redis.asyncio as redis

from config.settings import REDIS_URL
from config.logging import get_logger

logger = get_logger(__name__)

# Глобальный клиент Redis (None: кэш выключен)
_redis_client: Optional[redis.Redis] = None

# Время жизни (сек)
CACHE_TTL = {
    "config": 60,       # Настройки: цены, пороги, шаблоны
    "default": 300,
}

KEY_PREFIX = "tutor_center:"


async def init_cache() -> bool:
    """
    Подключиться к Redis.

    Returns:
        True если Redis доступен. Без Redis всё работает, просто без кэша.
    """
    global _redis_client

    try:
        _redis_client = redis.from_url(
            REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        await _redis_client.ping()
        logger.info("redis_connected", url=REDIS_URL.split("@")[-1])  # Без пароля
        return True

    except Exception as e:
        logger.warning("redis_connection_failed", error=str(e))
        _redis_client = None
        return False


async def close_cache():
    """Закрыть подключение к Redis."""
    global _redis_client

    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("redis_closed")


def is_cache_available() -> bool:
    return _redis_client is not None


async def get_cache(key: str) -> Optional[Any]:
    """Значение из кэша или None (промах / Redis недоступен)."""
    if not _redis_client:
        return None

    try:
        value = await _redis_client.get(f"{KEY_PREFIX}{key}")
        if value is None:
            logger.debug("cache_miss", key=key)
            return None
        logger.debug("cache_hit", key=key)
        return json.loads(value)

    except Exception as e:
        logger.warning("cache_get_error", key=key, error=str(e))
        return None


async def set_cache(key: str, value: Any, ttl: int = None) -> bool:
    """Сохранить значение (JSON) с TTL."""
    if not _redis_client:
        return False

    try:
        ttl = ttl or CACHE_TTL["default"]
        await _redis_client.setex(
            f"{KEY_PREFIX}{key}",
            ttl,
            json.dumps(value, ensure_ascii=False, default=str),
        )
        return True

    except Exception as e:
        logger.warning("cache_set_error", key=key, error=str(e))
        return False


async def delete_cache(key: str) -> bool:
    """Удалить ключ из кэша."""
    if not _redis_client:
        return False

    try:
        await _redis_client.delete(f"{KEY_PREFIX}{key}")
        return True

    except Exception as e:
        logger.warning("cache_delete_error", key=key, error=str(e))
        return False


# === Настройки (Config) ===

def _config_key(key: str, user_id: int) -> str:
    return f"config:{user_id}:{key}"


async def cache_config_value(key: str, user_id: int, value: Optional[str]) -> bool:
    """
    Закэшировать значение настройки.

    Отсутствующая настройка кэшируется как {"value": null}, чтобы не ходить
    в БД за каждым несуществующим ключом.
    """
    return await set_cache(_config_key(key, user_id), {"value": value}, CACHE_TTL["config"])


async def get_cached_config_value(key: str, user_id: int) -> Optional[dict]:
    """{"value": ...} из кэша или None при промахе."""
    return await get_cache(_config_key(key, user_id))


async def invalidate_config_value(key: str, user_id: int) -> None:
    await delete_cache(_config_key(key, user_id))
