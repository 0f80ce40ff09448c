"""Date parsing and formatting helpers shared by the digest and alert paths."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any, Tuple

from cronus.gcal.models import as_event
from cronus.util.locales import RUSSIAN, LongDateLocale

# Accepted input patterns, in priority order: DD/MM/YYYY, YYYY-MM-DD, MM-DD-YYYY, DD.MM.YYYY
DATE_INPUT_FORMATS: Tuple[str, ...] = ("%d/%m/%Y", "%Y-%m-%d", "%m-%d-%Y", "%d.%m.%Y")
ALL_DAY_LABEL = "All day"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_END_OF_DAY = time(23, 59, 59, 999_000)


def local_timezone() -> tzinfo:
    return datetime.now().astimezone().tzinfo  # type: ignore[return-value]


def local_now(tz: tzinfo | None = None) -> datetime:
    return datetime.now(tz or local_timezone())


def parse_date(date_str: str | None) -> date | None:
    if not date_str:
        return None
    for fmt in DATE_INPUT_FORMATS:
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue
    return None


def parse_and_format(date_str: str | None, locale: LongDateLocale = RUSSIAN) -> str:
    """Render ``date_str`` as e.g. ``"понедельник, 1 января"``.

    Unparseable input degrades to the locale's invalid-date text.
    """

    parsed = parse_date(date_str)
    if parsed is None:
        return locale.invalid_date
    return locale.long_form(parsed)


def parse_instant(value: str | None, tz: tzinfo = timezone.utc) -> datetime | None:
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def start_instant(event: Any, tz: tzinfo = timezone.utc) -> datetime | None:
    """Timed start if present, else midnight of the all-day date in ``tz``."""

    record = as_event(event)
    if record is None:
        return None
    if record.start.date_time:
        return parse_instant(record.start.date_time, tz)
    if record.start.date:
        try:
            day = date.fromisoformat(record.start.date)
        except ValueError:
            return None
        return datetime.combine(day, time.min, tzinfo=tz)
    return None


def sort_key(event: Any, tz: tzinfo = timezone.utc) -> datetime:
    return start_instant(event, tz) or EPOCH


def day_key(event: Any, today: date, tz: tzinfo | None = None) -> date:
    record = as_event(event)
    if record is not None and record.start.date_time:
        instant = parse_instant(record.start.date_time, tz or timezone.utc)
        if instant is not None:
            return instant.astimezone(tz or local_timezone()).date()
    if record is not None and record.start.date:
        try:
            return date.fromisoformat(record.start.date)
        except ValueError:
            pass
    return today


def format_time_label(event: Any, tz: tzinfo | None = None) -> str:
    record = as_event(event)
    if record is None or not record.start.date_time:
        return ALL_DAY_LABEL
    instant = parse_instant(record.start.date_time, tz or timezone.utc)
    if instant is None:
        return ALL_DAY_LABEL
    return instant.astimezone(tz or local_timezone()).strftime("%H:%M")


def event_duration(event: Any) -> timedelta | None:
    record = as_event(event)
    if record is None or not (record.start.date_time and record.end.date_time):
        return None
    start = parse_instant(record.start.date_time)
    end = parse_instant(record.end.date_time)
    if start is None or end is None:
        return None
    return end - start


def today_window(now: datetime) -> Tuple[datetime, datetime]:
    start = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
    end = datetime.combine(now.date(), _END_OF_DAY, tzinfo=now.tzinfo)
    return start, end


def upcoming_window(now: datetime, lookahead_days: int) -> Tuple[datetime, datetime]:
    start, _ = today_window(now)
    last_day = now.date() + timedelta(days=lookahead_days)
    return start, datetime.combine(last_day, _END_OF_DAY, tzinfo=now.tzinfo)


def day_string(value: date) -> str:
    return value.isoformat()


__all__ = [
    "ALL_DAY_LABEL",
    "DATE_INPUT_FORMATS",
    "EPOCH",
    "day_key",
    "day_string",
    "event_duration",
    "format_time_label",
    "local_now",
    "local_timezone",
    "parse_and_format",
    "parse_date",
    "parse_instant",
    "sort_key",
    "start_instant",
    "today_window",
    "upcoming_window",
]
