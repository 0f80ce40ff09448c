"""Hourly check of today's cumulative "online" time against a daily threshold."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Protocol, Sequence

from cronus.alerts.state import AlertStateTracker
from cronus.digest.aggregator import EventAggregator
from cronus.gcal.models import CalendarEvent
from cronus.util.date_utils import event_duration
from cronus.util.logging_utils import get_logger


class Notifier(Protocol):
    async def send(self, text: str) -> bool: ...


@dataclass(frozen=True)
class OnlineTimeResult:
    hours: float = 0.0
    alert_sent: bool = False
    skipped: bool = False


def total_matching_duration(events: Sequence[CalendarEvent], keyword: str) -> timedelta:
    """Sum durations of timed events whose summary contains ``keyword``."""

    needle = keyword.lower()
    total = timedelta()
    for event in events:
        if not event.summary or needle not in event.summary.lower():
            continue
        duration = event_duration(event)
        if duration is not None:
            total += duration
    return total


class OnlineTimeMonitor:
    def __init__(
        self,
        aggregator: EventAggregator,
        notifier: Notifier,
        state: AlertStateTracker,
        *,
        calendar_ids: Sequence[str],
        now: Callable[[], datetime],
        keyword: str = "online",
        threshold_hours: float = 5.0,
    ) -> None:
        self._aggregator = aggregator
        self._notifier = notifier
        self._state = state
        self._calendar_ids = list(calendar_ids)
        self._now = now
        self._keyword = keyword
        self._threshold_hours = threshold_hours
        self._logger = get_logger(__name__)

    async def check(self) -> OnlineTimeResult:
        self._logger.info("Checking daily online status...")
        async with self._state.guard():
            if self._state.has_sent_today():
                self._logger.info(
                    "Alert for >%g hours online time has already been sent today.", self._threshold_hours
                )
                return OnlineTimeResult(skipped=True)

            events = await self._aggregator.fetch_today(self._calendar_ids, self._now())
            if not events:
                self._logger.info("No events found for today.")
                return OnlineTimeResult()

            hours = total_matching_duration(events, self._keyword).total_seconds() / 3600
            self._logger.info("Total %s time today: %.2f hours.", self._keyword, hours)
            if hours <= self._threshold_hours:
                return OnlineTimeResult(hours=hours)

            sent = await self._notifier.send(self._alert_text(hours))
            if not sent:
                self._logger.warning("Threshold alert delivery failed; recording it as sent anyway")
            # Optimistic: recorded whether or not delivery succeeded.
            self._state.record_sent_today()
            return OnlineTimeResult(hours=hours, alert_sent=True)

    def _alert_text(self, hours: float) -> str:
        return (
            f"🚨 *Alert:* Daily {self._keyword} time has exceeded {self._threshold_hours:g} hours. "
            f"Total today: {hours:.2f} hours."
        )


__all__ = ["Notifier", "OnlineTimeMonitor", "OnlineTimeResult", "total_matching_duration"]
