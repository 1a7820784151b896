# Tests for message template helpers

from datetime import date
from decimal import Decimal

from database.models import PerformanceStatus
from notifications.templates import (
    PERFORMANCE_REMINDER_BAD_KEY,
    PERFORMANCE_REMINDER_GOOD_KEY,
    format_amount,
    join_dates,
    performance_template_key,
    render,
)


def test_render_replaces_known_placeholders_only():
    text = render("{studentName}: {date} {dates} {other}", studentName="Ali", date="19.10.2026")
    assert text == "Ali: 19.10.2026 {dates} {other}"


def test_render_replaces_every_occurrence():
    assert render("{x} and {x}", x="1") == "1 and 1"


def test_join_dates():
    assert join_dates([]) == ""
    assert join_dates([date(2026, 10, 19)]) == "19.10.2026"
    assert join_dates([date(2026, 10, 19), date(2026, 10, 21)]) == "19.10.2026 va 21.10.2026"
    assert (
        join_dates([date(2026, 10, 19), date(2026, 10, 21), date(2026, 10, 23)])
        == "19.10.2026, 21.10.2026 va 23.10.2026"
    )


def test_format_amount():
    assert format_amount(Decimal("1250000")) == "1 250 000"
    assert format_amount(Decimal("-50000.00")) == "-50 000"


def test_performance_template_key():
    assert performance_template_key(PerformanceStatus.GOOD) == PERFORMANCE_REMINDER_GOOD_KEY
    assert performance_template_key(PerformanceStatus.BAD) == PERFORMANCE_REMINDER_BAD_KEY
