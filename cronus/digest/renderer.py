"""Render merged calendar events into a day-grouped Telegram digest."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import date, tzinfo
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from cronus.digest.aggregator import DetailSource
from cronus.gcal.models import CalendarEvent
from cronus.util.date_utils import day_key, day_string, format_time_label, local_now, parse_and_format
from cronus.util.keyword_matcher import contains_any
from cronus.util.locales import RUSSIAN, LongDateLocale
from cronus.util.logging_utils import get_logger

UNTITLED = "Untitled"
DAY_SEPARATOR = "\n---\n"


@dataclass(frozen=True)
class Digest:
    text: str
    has_flagged_event: bool = False
    day_count: int = 0
    event_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.event_count == 0


class DigestRenderer:
    def __init__(
        self,
        detail_source: Optional[DetailSource],
        *,
        keywords: Iterable[str],
        tz: tzinfo,
        locale: LongDateLocale = RUSSIAN,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self._details = detail_source
        self._keywords = tuple(keywords)
        self._tz = tz
        self._locale = locale
        self._today = today or (lambda: local_now(tz).date())
        self._logger = get_logger(__name__)

    async def render(self, events: Sequence[CalendarEvent]) -> Digest:
        if not events:
            return Digest(text="")
        enriched = await self.enrich(events)
        return self.build(enriched, self._today())

    async def enrich(self, events: Sequence[CalendarEvent]) -> List[CalendarEvent]:
        """Backfill missing title/description/location; existing values are kept."""

        return list(await asyncio.gather(*(self._enrich_one(event) for event in events)))

    def build(self, events: Sequence[CalendarEvent], today: date) -> Digest:
        if not events:
            return Digest(text="")

        groups: Dict[date, List[CalendarEvent]] = {}
        for event in events:
            groups.setdefault(day_key(event, today, self._tz), []).append(event)

        sources = {event.source_calendar_id for event in events if event.source_calendar_id}
        show_organizer = len(sources) > 1

        blocks = []
        for day in sorted(groups):
            header = parse_and_format(day_string(day), self._locale)
            events_text = "".join(self._render_event(event, show_organizer) for event in groups[day])
            blocks.append(f"📅 *{header}*\n\n{events_text}")

        flagged = any(contains_any(event, self._keywords) for event in events)
        return Digest(
            text=DAY_SEPARATOR.join(blocks),
            has_flagged_event=flagged,
            day_count=len(groups),
            event_count=len(events),
        )

    def _render_event(self, event: CalendarEvent, show_organizer: bool) -> str:
        title = event.summary or UNTITLED
        label = f"[{title}]({event.html_link})" if event.html_link else title
        parts = [f"🕒 *{format_time_label(event, self._tz)}* - {label}"]
        if event.description:
            parts.append(f"📄 {event.description}")
        if event.location:
            parts.append(f"📍 {event.location}")
        if show_organizer and event.organizer_name:
            parts.append(f"👤 {event.organizer_name}")
        return "\n".join(parts) + "\n"

    async def _enrich_one(self, event: CalendarEvent) -> CalendarEvent:
        if not event.missing_fields() or self._details is None:
            return event
        if not (event.source_calendar_id and event.event_id):
            return event
        try:
            details = await self._details.get_event_details(event.source_calendar_id, event.event_id)
        except Exception:
            self._logger.exception("Detail lookup failed for event %s", event.event_id)
            return event
        return event.backfilled_from(details)


__all__ = ["DAY_SEPARATOR", "UNTITLED", "Digest", "DigestRenderer"]
