"""Cron-style recurring jobs on top of asyncio."""
from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Iterable, List, Optional, Protocol, Tuple

from cronus.util.logging_utils import get_logger


class Schedule(Protocol):
    def next_run(self, after: datetime) -> datetime: ...


@dataclass(frozen=True)
class DailyAt:
    """Every day (optionally only on ``weekdays``, 0=Monday) at ``hour:minute``."""

    hour: int
    minute: int = 0
    weekdays: Optional[Tuple[int, ...]] = None

    def next_run(self, after: datetime) -> datetime:
        candidate = after.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
        if candidate <= after:
            candidate += timedelta(days=1)
        if self.weekdays:
            while candidate.weekday() not in self.weekdays:
                candidate += timedelta(days=1)
        return candidate

    def describe(self) -> str:
        days = f" on weekdays {list(self.weekdays)}" if self.weekdays else ""
        return f"daily at {self.hour:02d}:{self.minute:02d}{days}"


@dataclass(frozen=True)
class Hourly:
    minute: int = 0

    def next_run(self, after: datetime) -> datetime:
        candidate = after.replace(minute=self.minute, second=0, microsecond=0)
        if candidate <= after:
            candidate += timedelta(hours=1)
        return candidate

    def describe(self) -> str:
        return f"hourly at minute {self.minute:02d}"


@dataclass(frozen=True)
class ScheduledJob:
    name: str
    schedule: Schedule
    action: Callable[[], Awaitable[object]]
    run_on_start: bool = False


class JobScheduler:
    """Runs each job in its own task; a failing run is logged and the loop goes on."""

    def __init__(
        self,
        jobs: Iterable[ScheduledJob],
        *,
        now: Callable[[], datetime],
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._jobs = list(jobs)
        self._now = now
        self._sleep = sleep
        self._running = False
        self._tasks: List[asyncio.Task[None]] = []
        self._logger = get_logger(__name__)

    @property
    def jobs(self) -> List[ScheduledJob]:
        return list(self._jobs)

    async def run_job(self, job: ScheduledJob) -> None:
        self._logger.info("Running job '%s'", job.name)
        try:
            await job.action()
        except Exception:
            self._logger.exception("Job '%s' failed", job.name)

    async def run_startup(self) -> None:
        startup = [job for job in self._jobs if job.run_on_start]
        await asyncio.gather(*(self.run_job(job) for job in startup))

    async def run_forever(self) -> None:
        self._running = True
        for job in self._jobs:
            describe = getattr(job.schedule, "describe", None)
            self._logger.info("Job '%s' scheduled %s", job.name, describe() if describe else job.schedule)
        self._tasks = [asyncio.create_task(self._loop(job), name=job.name) for job in self._jobs]
        try:
            await asyncio.gather(*self._tasks)
        finally:
            for task in self._tasks:
                task.cancel()
            for task in self._tasks:
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            self._tasks = []

    def stop(self) -> None:
        self._running = False

    async def _loop(self, job: ScheduledJob) -> None:
        while self._running:
            now = self._now()
            due = job.schedule.next_run(now)
            # Same-zone subtraction is wall-clock; DST days need absolute instants.
            delay = max(0.0, due.timestamp() - now.timestamp())
            self._logger.debug("Job '%s' next run at %s", job.name, due.isoformat())
            await self._sleep(delay)
            if not self._running:
                break
            await self.run_job(job)


__all__ = ["DailyAt", "Hourly", "JobScheduler", "Schedule", "ScheduledJob"]
