# Phone number helpers (Uzbekistan, 998XXXXXXXXX)

import re

COUNTRY_CODE = "998"
CANONICAL_LENGTH = 12

_CANONICAL_RE = re.compile(r"^998\d{9}$")


def normalize_phone_number(phone: str) -> str:
    """
    Привести номер к виду 998XXXXXXXXX.

    Убирает всё кроме цифр, добавляет 998 если его нет, обрезает лишнее
    до 12 цифр. Слишком короткий номер возвращается как есть (невалидный).
    """
    if not phone:
        return ""

    digits = "".join(filter(str.isdigit, phone))
    if not digits.startswith(COUNTRY_CODE):
        digits = COUNTRY_CODE + digits

    return digits[:CANONICAL_LENGTH]


def is_valid_phone_number(phone: str) -> bool:
    """Ровно 12 цифр, начинается с 998."""
    return bool(phone) and bool(_CANONICAL_RE.match(phone))


def format_for_display(phone: str) -> str:
    """998901234567 → +998 90 123 45 67."""
    if not phone or len(phone) != CANONICAL_LENGTH:
        return phone
    return f"+{phone[:3]} {phone[3:5]} {phone[5:8]} {phone[8:10]} {phone[10:12]}"
