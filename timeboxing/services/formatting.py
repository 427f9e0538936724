"""Spanish-locale formatting and lightweight input checks for reports."""

from __future__ import annotations

import math
import re
from datetime import date, datetime

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MONTH_PATTERN = re.compile(r"^\d{4}-\d{2}$")


def _is_missing(value: float | None) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def _group_thousands(value: str) -> str:
    # es-ES groups with dots and uses a comma as decimal separator.
    return value.replace(",", "_").replace(".", ",").replace("_", ".")


def format_currency(value: float | None) -> str:
    if _is_missing(value):
        return "0,00 €"
    return f"{_group_thousands(f'{value:,.2f}')} €"


def format_percentage(value: float | None, decimals: int = 1) -> str:
    if _is_missing(value):
        return "0%"
    return f"{value:.{decimals}f}%"


def format_hours(hours: float | None, style: str = "decimal") -> str:
    if _is_missing(hours):
        return "0h"

    if style == "detailed":
        whole_hours = math.floor(hours)
        minutes = round((hours - whole_hours) * 60)
        if minutes == 60:
            whole_hours += 1
            minutes = 0
        if minutes == 0:
            return f"{whole_hours}h"
        if whole_hours == 0:
            return f"{minutes}m"
        return f"{whole_hours}h {minutes}m"

    return f"{hours:.1f}".replace(".", ",") + "h"


def format_number(value: float | None) -> str:
    if _is_missing(value):
        return "0"
    if float(value).is_integer():
        return _group_thousands(f"{int(value):,}")
    return _group_thousands(f"{value:,.2f}".rstrip("0").rstrip("."))


def format_date(value: date | datetime | str | None, style: str = "short") -> str:
    if not value:
        return ""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return ""

    if style == "time" and isinstance(value, datetime):
        return value.strftime("%d/%m/%Y %H:%M")
    return value.strftime("%d/%m/%Y")


def truncate(text: str | None, max_length: int = 50, suffix: str = "...") -> str:
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[: max_length - len(suffix)] + suffix


def capitalize(text: str | None) -> str:
    if not text:
        return ""
    return text[0].upper() + text[1:].lower()


def format_full_name(first_name: str | None = None, last_name: str | None = None) -> str:
    return " ".join(capitalize(part) for part in (first_name, last_name) if part)


def sanitize_string(value: str | None) -> str:
    if not value:
        return ""
    cleaned = value.strip()
    cleaned = re.sub(r"[<>]", "", cleaned)
    cleaned = re.sub(r"javascript:", "", cleaned, flags=re.IGNORECASE)
    return re.sub(r"on\w+=", "", cleaned, flags=re.IGNORECASE)


def is_valid_email(value: str | None) -> bool:
    return bool(value) and EMAIL_PATTERN.match(value) is not None


def is_valid_month(value: str | None) -> bool:
    if not value or not MONTH_PATTERN.match(value):
        return False
    year, month = (int(part) for part in value.split("-"))
    return 2000 <= year <= 2100 and 1 <= month <= 12
