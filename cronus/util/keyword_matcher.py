"""Case-insensitive keyword detection over event text fields."""
from __future__ import annotations

from typing import Any, Iterable, List, Mapping

from cronus.gcal.models import ENRICHABLE_FIELDS


def _field_values(event_details: Any) -> List[str]:
    if isinstance(event_details, Mapping):
        raw = [event_details.get(name) for name in ENRICHABLE_FIELDS]
    else:
        raw = [getattr(event_details, name, None) for name in ENRICHABLE_FIELDS]
    return [value.lower() for value in raw if value]


def contains_any(event_details: Any, keywords: Iterable[str]) -> bool:
    """Return True if summary, description or location contains any keyword."""

    if event_details is None:
        return False
    fields = _field_values(event_details)
    if not fields:
        return False
    needles = [keyword.lower() for keyword in keywords if keyword]
    return any(needle in field for field in fields for needle in needles)


__all__ = ["contains_any"]
