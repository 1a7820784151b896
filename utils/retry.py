# Retry logic for outbound HTTP calls

import logging
from functools import wraps
from typing import Any, Callable, TypeVar

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')


class RetryableHTTPError(Exception):
    """Ответ 429 / 5xx, который имеет смысл повторить."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"HTTP {status_code}: {body[:200]}")


# Исключения, при которых повторяем запрос
RETRYABLE_EXCEPTIONS = (
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.ConnectError,
    httpx.RemoteProtocolError,
    RetryableHTTPError,
    ConnectionError,
)


def raise_for_retryable_status(response: httpx.Response) -> None:
    """Бросить RetryableHTTPError для 429 и 5xx."""
    if response.status_code == 429 or response.status_code >= 500:
        raise RetryableHTTPError(response.status_code, response.text)


def api_retry(
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
    multiplier: float = 2,
):
    """
    Декоратор повторов для async-вызовов внешних API.

        @api_retry(max_attempts=3)
        async def call_api():
            ...

    Общее время всех попыток ограничивает вызывающий код (asyncio.wait_for).
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        @retry(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=multiplier, min=min_wait, max=max_wait),
            retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await func(*args, **kwargs)

        return wrapper
    return decorator
