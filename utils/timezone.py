# Local (center) timezone helpers

from datetime import date, datetime
from typing import Optional, Union
from zoneinfo import ZoneInfo

from config.settings import TIMEZONE

LOCAL_TZ = ZoneInfo(TIMEZONE)


def local_now() -> datetime:
    """Текущее время в часовом поясе центра."""
    return datetime.now(LOCAL_TZ)


def local_today(now: Optional[datetime] = None) -> date:
    """Текущий календарный день центра."""
    return to_local_date(now) if now is not None else local_now().date()


def to_local_date(value: Union[date, datetime, str]) -> date:
    """
    Привести дату к календарному дню центра.

    - date: как есть
    - datetime с tzinfo: переводится в часовой пояс центра
    - naive datetime: считается уже локальным
    - str: ISO-формат ("2026-10-19" или "2026-10-19T09:30:00+05:00")
    """
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            return date.fromisoformat(text)
        value = datetime.fromisoformat(text.replace("Z", "+00:00"))

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(LOCAL_TZ).date()

    return value


def format_date(value: date) -> str:
    """Дата для текста уведомления: 19.10.2026."""
    return value.strftime("%d.%m.%Y")
