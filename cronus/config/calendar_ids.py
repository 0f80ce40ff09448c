"""Normalisation of the calendar id setting (single id, comma list, or JSON array)."""
from __future__ import annotations

import json
from typing import Any, List

from cronus.util.logging_utils import get_logger

DEFAULT_CALENDAR_ID = "primary"


def _from_sequence(values: Any) -> List[str]:
    return [str(value).strip() for value in values if str(value).strip()]


def parse_calendar_ids(value: Any) -> List[str]:
    """Parse calendar ids; malformed input degrades to a partial or empty list."""

    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return _from_sequence(value)

    trimmed = str(value).strip()
    if not trimmed:
        return []

    if trimmed.startswith("[") and trimmed.endswith("]"):
        try:
            parsed = json.loads(trimmed)
        except json.JSONDecodeError:
            get_logger(__name__).warning(
                "Failed to parse calendar ids as JSON. Falling back to comma separation."
            )
        else:
            if isinstance(parsed, list):
                return _from_sequence(parsed)

    return [part.strip() for part in trimmed.split(",") if part.strip()]


def resolve_calendar_ids(value: Any, default: str = DEFAULT_CALENDAR_ID) -> List[str]:
    ids = list(dict.fromkeys(parse_calendar_ids(value)))
    return ids or [default]


__all__ = ["DEFAULT_CALENDAR_ID", "parse_calendar_ids", "resolve_calendar_ids"]
