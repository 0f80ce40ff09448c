"""Calendar event records as returned by the Google Calendar API."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional, Tuple

ENRICHABLE_FIELDS: Tuple[str, ...] = ("summary", "description", "location")


@dataclass(frozen=True)
class EventTime:
    """Either a precise ``dateTime`` or an all-day ``date`` (or neither)."""

    date_time: Optional[str] = None
    date: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Any) -> "EventTime":
        if not isinstance(payload, Mapping):
            return cls()
        return cls(date_time=payload.get("dateTime") or None, date=payload.get("date") or None)

    @property
    def is_all_day(self) -> bool:
        return self.date_time is None and self.date is not None


@dataclass(frozen=True)
class CalendarEvent:
    event_id: str
    summary: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    start: EventTime = field(default_factory=EventTime)
    end: EventTime = field(default_factory=EventTime)
    html_link: Optional[str] = None
    organizer_name: Optional[str] = None
    source_calendar_id: Optional[str] = None

    @classmethod
    def from_api_item(
        cls, item: Mapping[str, Any], source_calendar_id: Optional[str] = None
    ) -> "CalendarEvent":
        organizer = item.get("organizer")
        organizer_name = organizer.get("displayName") if isinstance(organizer, Mapping) else None
        return cls(
            event_id=str(item.get("id", "")),
            summary=item.get("summary"),
            description=item.get("description"),
            location=item.get("location"),
            start=EventTime.from_api(item.get("start")),
            end=EventTime.from_api(item.get("end")),
            html_link=item.get("htmlLink"),
            organizer_name=organizer_name,
            source_calendar_id=source_calendar_id,
        )

    def with_source(self, calendar_id: str) -> "CalendarEvent":
        return replace(self, source_calendar_id=calendar_id)

    def missing_fields(self) -> Tuple[str, ...]:
        return tuple(name for name in ENRICHABLE_FIELDS if getattr(self, name) is None)

    def backfilled_from(self, other: Optional["CalendarEvent"]) -> "CalendarEvent":
        """Fill absent text fields from ``other``; values already present win."""

        if other is None:
            return self
        updates = {
            name: getattr(other, name)
            for name in self.missing_fields()
            if getattr(other, name) is not None
        }
        if self.html_link is None and other.html_link is not None:
            updates["html_link"] = other.html_link
        if self.organizer_name is None and other.organizer_name is not None:
            updates["organizer_name"] = other.organizer_name
        return replace(self, **updates) if updates else self


def as_event(value: Any) -> Optional[CalendarEvent]:
    """Accept either a ``CalendarEvent`` or a raw API mapping."""

    if value is None or isinstance(value, CalendarEvent):
        return value
    if isinstance(value, Mapping):
        return CalendarEvent.from_api_item(value, value.get("sourceCalendarId"))
    raise TypeError(f"Unsupported event type: {type(value).__name__}")


__all__ = ["ENRICHABLE_FIELDS", "EventTime", "CalendarEvent", "as_event"]
