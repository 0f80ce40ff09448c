"""Fan-out fetch across calendars, fan-in merge into one chronological list."""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone, tzinfo
from itertools import chain
from typing import List, Optional, Protocol, Sequence

from cronus.gcal.models import CalendarEvent
from cronus.util.date_utils import sort_key, today_window, upcoming_window
from cronus.util.logging_utils import get_logger


class EventSource(Protocol):
    async def list_events(
        self, calendar_id: str, time_min: datetime, time_max: datetime
    ) -> List[CalendarEvent]: ...


class DetailSource(Protocol):
    async def get_event_details(self, calendar_id: str, event_id: str) -> Optional[CalendarEvent]: ...


class EventAggregator:
    def __init__(self, source: EventSource, *, tz: tzinfo = timezone.utc) -> None:
        self._source = source
        self._tz = tz
        self._logger = get_logger(__name__)

    async def fetch_merged(
        self, calendar_ids: Sequence[str], time_min: datetime, time_max: datetime
    ) -> List[CalendarEvent]:
        """Fetch every calendar concurrently and return events sorted by start.

        A calendar whose fetch fails contributes nothing; dateless events sort first.
        """

        self._logger.info(
            "Fetching events from %s to %s for %d calendar(s)",
            time_min.isoformat(),
            time_max.isoformat(),
            len(calendar_ids),
        )
        results = await asyncio.gather(
            *(self._fetch_one(calendar_id, time_min, time_max) for calendar_id in calendar_ids)
        )
        merged = list(chain.from_iterable(results))
        merged.sort(key=lambda event: sort_key(event, self._tz))
        return merged

    async def fetch_today(self, calendar_ids: Sequence[str], now: datetime) -> List[CalendarEvent]:
        return await self.fetch_merged(calendar_ids, *today_window(now))

    async def fetch_upcoming(
        self, calendar_ids: Sequence[str], now: datetime, lookahead_days: int
    ) -> List[CalendarEvent]:
        return await self.fetch_merged(calendar_ids, *upcoming_window(now, lookahead_days))

    async def _fetch_one(
        self, calendar_id: str, time_min: datetime, time_max: datetime
    ) -> List[CalendarEvent]:
        try:
            events = await self._source.list_events(calendar_id, time_min, time_max)
        except Exception:
            self._logger.exception("Error fetching events for calendar %s", calendar_id)
            return []
        return [event.with_source(calendar_id) for event in events or []]


__all__ = ["DetailSource", "EventAggregator", "EventSource"]
