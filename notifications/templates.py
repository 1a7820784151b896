# Notification message templates

from datetime import date
from decimal import Decimal
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from database.config_store import get_str
from database.models import PerformanceStatus
from utils.timezone import format_date

# Ключи шаблонов в таблице configs
ATTENDANCE_REMINDER_KEY = "ATTENDANCE_REMINDER"
PERFORMANCE_REMINDER_GOOD_KEY = "PERFORMANCE_REMINDER_GOOD"
PERFORMANCE_REMINDER_BAD_KEY = "PERFORMANCE_REMINDER_BAD"
PAYMENT_REMINDER_KEY = "PAYMENT_REMINDER"

# Союз для перечисления дат ("12.10.2026 va 14.10.2026")
DATES_CONJUNCTION = "va"

DEFAULT_TEMPLATES = {
    ATTENDANCE_REMINDER_KEY: (
        "Hurmatli ota-ona! Farzandingiz {studentName} {date} kuni darsga kelmadi."
    ),
    PERFORMANCE_REMINDER_GOOD_KEY: (
        "Hurmatli ota-ona! Farzandingiz {studentName} {dates} kunlari darsda "
        "a'lo natija ko'rsatdi. Tabriklaymiz!"
    ),
    PERFORMANCE_REMINDER_BAD_KEY: (
        "Hurmatli ota-ona! Farzandingiz {studentName} {dates} kunlari darsda "
        "sust natija ko'rsatdi."
    ),
    PAYMENT_REMINDER_KEY: (
        "Hurmatli ota-ona! Farzandingiz {studentName} hisobida qarzdorlik mavjud. "
        "Joriy balans: {balance} so'm. Iltimos, to'lovni amalga oshiring."
    ),
}


def render(template: str, **values: str) -> str:
    """
    Подставить значения в {плейсхолдеры} простой заменой подстроки.

    Неизвестные плейсхолдеры остаются в тексте как есть.
    """
    text = template
    for key, value in values.items():
        text = text.replace("{" + key + "}", str(value))
    return text


def join_dates(dates: Iterable[date]) -> str:
    """Даты через запятую, последняя через союз."""
    formatted = [format_date(d) for d in dates]
    if len(formatted) < 2:
        return "".join(formatted)
    return f"{', '.join(formatted[:-1])} {DATES_CONJUNCTION} {formatted[-1]}"


def format_amount(amount: Decimal) -> str:
    """Сумма для текста: 1 250 000."""
    return f"{amount:,.0f}".replace(",", " ")


def performance_template_key(performance: PerformanceStatus) -> str:
    if performance == PerformanceStatus.GOOD:
        return PERFORMANCE_REMINDER_GOOD_KEY
    return PERFORMANCE_REMINDER_BAD_KEY


async def load_template(db: AsyncSession, key: str) -> str:
    """Шаблон из настроек, иначе встроенный."""
    value = await get_str(db, key)
    if value and value.strip():
        return value
    return DEFAULT_TEMPLATES[key]
