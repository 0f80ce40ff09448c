"""Locale tables for long-form date rendering."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, Tuple


@dataclass(frozen=True)
class LongDateLocale:
    """Weekday and month names for ``"<weekday>, <day> <month>"`` output.

    Months are stored in the form used after a day number, which for
    Russian is the genitive case ("1 января", not "1 январь").
    """

    code: str
    weekdays: Tuple[str, ...]
    months: Tuple[str, ...]
    invalid_date: str = "Invalid date"

    def long_form(self, value: date) -> str:
        weekday = self.weekdays[value.weekday()]
        month = self.months[value.month - 1]
        return f"{weekday}, {value.day} {month}"


RUSSIAN = LongDateLocale(
    code="ru",
    weekdays=(
        "понедельник",
        "вторник",
        "среда",
        "четверг",
        "пятница",
        "суббота",
        "воскресенье",
    ),
    months=(
        "января",
        "февраля",
        "марта",
        "апреля",
        "мая",
        "июня",
        "июля",
        "августа",
        "сентября",
        "октября",
        "ноября",
        "декабря",
    ),
)

ENGLISH = LongDateLocale(
    code="en",
    weekdays=("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"),
    months=(
        "January",
        "February",
        "March",
        "April",
        "May",
        "June",
        "July",
        "August",
        "September",
        "October",
        "November",
        "December",
    ),
)

_LOCALES: Dict[str, LongDateLocale] = {locale.code: locale for locale in (RUSSIAN, ENGLISH)}


def get_locale(code: str) -> LongDateLocale:
    try:
        return _LOCALES[code.lower()]
    except KeyError:
        raise KeyError(f"Unsupported locale '{code}'. Available: {', '.join(sorted(_LOCALES))}") from None


__all__ = ["LongDateLocale", "RUSSIAN", "ENGLISH", "get_locale"]
