import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from cronus.digest.aggregator import EventAggregator
from cronus.gcal.models import CalendarEvent, EventTime
from cronus.util.date_utils import sort_key

NOW = datetime(2024, 1, 1, 7, 0, tzinfo=timezone.utc)


def _timed(event_id, iso):
    return CalendarEvent(event_id=event_id, summary=event_id, start=EventTime(date_time=iso))


class FakeSource:
    def __init__(self, by_calendar, failing=()):
        self.by_calendar = by_calendar
        self.failing = set(failing)
        self.calls = []

    async def list_events(self, calendar_id, time_min, time_max):
        self.calls.append((calendar_id, time_min, time_max))
        await asyncio.sleep(0)
        if calendar_id in self.failing:
            raise RuntimeError(f"{calendar_id} is down")
        return list(self.by_calendar.get(calendar_id, []))


@pytest.mark.asyncio
async def test_merges_calendars_in_start_order():
    source = FakeSource(
        {
            "work": [_timed("w2", "2024-01-02T09:00:00Z"), _timed("w1", "2024-01-01T12:00:00Z")],
            "home": [
                _timed("h1", "2024-01-01T08:00:00Z"),
                CalendarEvent(event_id="h2", start=EventTime(date="2024-01-02")),
                CalendarEvent(event_id="h0"),
            ],
        }
    )
    aggregator = EventAggregator(source)

    events = await aggregator.fetch_merged(["work", "home"], NOW, NOW + timedelta(days=3))

    assert [event.event_id for event in events] == ["h0", "h1", "w1", "h2", "w2"]
    assert {event.event_id: event.source_calendar_id for event in events} == {
        "h0": "home",
        "h1": "home",
        "w1": "work",
        "h2": "home",
        "w2": "work",
    }
    keys = [sort_key(event) for event in events]
    assert keys == sorted(keys)


@pytest.mark.asyncio
async def test_one_failing_calendar_does_not_abort_the_merge():
    source = FakeSource(
        {"ok": [_timed("a", "2024-01-01T10:00:00Z")], "broken": [_timed("b", "2024-01-01T09:00:00Z")]},
        failing={"broken"},
    )
    aggregator = EventAggregator(source)

    events = await aggregator.fetch_merged(["broken", "ok"], NOW, NOW + timedelta(days=1))

    assert [event.event_id for event in events] == ["a"]


@pytest.mark.asyncio
async def test_equal_start_times_keep_fetch_order():
    same = "2024-01-01T10:00:00Z"
    source = FakeSource({"a": [_timed("a1", same), _timed("a2", same)], "b": [_timed("b1", same)]})

    events = await EventAggregator(source).fetch_merged(["a", "b"], NOW, NOW + timedelta(days=1))

    assert [event.event_id for event in events] == ["a1", "a2", "b1"]


@pytest.mark.asyncio
async def test_windows_passed_to_source():
    source = FakeSource({})
    aggregator = EventAggregator(source)

    await aggregator.fetch_today(["primary"], NOW)
    await aggregator.fetch_upcoming(["primary"], NOW, 5)

    (_, today_min, today_max), (_, upcoming_min, upcoming_max) = source.calls
    assert today_min == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert today_max == datetime(2024, 1, 1, 23, 59, 59, 999000, tzinfo=timezone.utc)
    assert upcoming_min == today_min
    assert upcoming_max == datetime(2024, 1, 6, 23, 59, 59, 999000, tzinfo=timezone.utc)
