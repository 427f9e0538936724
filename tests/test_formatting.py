from __future__ import annotations

from datetime import date, datetime

import pytest

from timeboxing.services.formatting import (
    capitalize,
    format_currency,
    format_date,
    format_full_name,
    format_hours,
    format_number,
    format_percentage,
    is_valid_email,
    is_valid_month,
    sanitize_string,
    truncate,
)


def test_currency_and_numbers_use_spanish_separators() -> None:
    assert format_currency(1234.5) == "1.234,50 €"
    assert format_currency(None) == "0,00 €"
    assert format_number(1234567) == "1.234.567"
    assert format_number(1234.5) == "1.234,5"
    assert format_number(float("nan")) == "0"


@pytest.mark.parametrize(
    ("hours", "style", "expected"),
    [
        (7.5, "decimal", "7,5h"),
        (None, "decimal", "0h"),
        (7.5, "detailed", "7h 30m"),
        (0.25, "detailed", "15m"),
        (2, "detailed", "2h"),
        (1.999, "detailed", "2h"),
    ],
)
def test_format_hours(hours: float | None, style: str, expected: str) -> None:
    assert format_hours(hours, style) == expected


def test_percentage_and_dates() -> None:
    assert format_percentage(85.123) == "85.1%"
    assert format_percentage(None) == "0%"
    assert format_date(date(2026, 3, 5)) == "05/03/2026"
    assert format_date(datetime(2026, 3, 5, 9, 30), "time") == "05/03/2026 09:30"
    assert format_date("not-a-date") == ""
    assert format_date(None) == ""


def test_text_helpers() -> None:
    assert truncate("abcdef", 5) == "ab..."
    assert truncate("abc", 5) == "abc"
    assert capitalize("hELLO") == "Hello"
    assert format_full_name("ana", "GARCÍA") == "Ana García"
    assert format_full_name(None, "lopez") == "Lopez"
    assert sanitize_string(" <b>hi</b> onclick=x ") == "bhi/b x"
    assert sanitize_string("javascript:alert(1)") == "alert(1)"


def test_validators() -> None:
    assert is_valid_email("ana@example.com") is True
    assert is_valid_email("ana@example") is False
    assert is_valid_email(None) is False
    assert is_valid_month("2026-02") is True
    assert is_valid_month("2026-13") is False
    assert is_valid_month("1999-12") is False
