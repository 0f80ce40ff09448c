"""Wires the digest and threshold-alert pipelines into scheduled jobs."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from cronus.alerts.online_time import Notifier, OnlineTimeMonitor, OnlineTimeResult
from cronus.alerts.state import AlertStateTracker
from cronus.config.loader import AppConfig, ReminderConfig
from cronus.digest.aggregator import EventAggregator
from cronus.digest.renderer import Digest, DigestRenderer
from cronus.gcal.google_calendar_client import GoogleCalendarClient
from cronus.notify.telegram import LoggingNotifier, TelegramNotifier
from cronus.util.date_utils import local_now
from cronus.util.job_scheduler import DailyAt, Hourly, ScheduledJob
from cronus.util.locales import get_locale
from cronus.util.logging_utils import get_logger


@dataclass
class BotContext:
    """Everything a scheduled job needs, built once at process start."""

    config: AppConfig
    calendar_ids: List[str]
    aggregator: EventAggregator
    renderer: DigestRenderer
    notifier: Notifier
    alert_state: AlertStateTracker
    monitor: OnlineTimeMonitor
    now: Callable[[], datetime]
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep


def build_context(
    config: AppConfig,
    *,
    dry_run: bool = False,
    calendar_client: Optional[GoogleCalendarClient] = None,
    notifier: Optional[Notifier] = None,
    now: Optional[Callable[[], datetime]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> BotContext:
    tz = config.zone()
    clock = now or (lambda: local_now(tz))
    calendar = calendar_client or GoogleCalendarClient(config)
    transport = notifier or (LoggingNotifier() if dry_run else TelegramNotifier(config.telegram))
    calendar_ids = list(config.calendar.calendar_ids)

    aggregator = EventAggregator(calendar, tz=tz)
    renderer = DigestRenderer(
        calendar,
        keywords=config.digest.flag_keywords,
        tz=tz,
        locale=get_locale(config.digest.locale),
        today=lambda: clock().date(),
    )
    alert_state = AlertStateTracker(
        config.resolve_path(config.alert.state_file), today=lambda: clock().date()
    )
    monitor = OnlineTimeMonitor(
        aggregator,
        transport,
        alert_state,
        calendar_ids=calendar_ids,
        now=clock,
        keyword=config.alert.keyword,
        threshold_hours=config.alert.threshold_hours,
    )
    return BotContext(
        config=config,
        calendar_ids=calendar_ids,
        aggregator=aggregator,
        renderer=renderer,
        notifier=transport,
        alert_state=alert_state,
        monitor=monitor,
        now=clock,
        sleep=sleep,
    )


async def run_digest_job(ctx: BotContext) -> Digest:
    logger = get_logger(__name__)
    logger.info("Checking calendar events...")
    events = await ctx.aggregator.fetch_upcoming(
        ctx.calendar_ids, ctx.now(), ctx.config.calendar.lookahead_days
    )
    digest = await ctx.renderer.render(events)
    if digest.is_empty:
        logger.info("No events found.")
        return digest

    logger.info("Sending digest with %d event(s) over %d day(s)", digest.event_count, digest.day_count)
    await ctx.notifier.send(digest.text)
    if digest.has_flagged_event:
        await ctx.sleep(ctx.config.schedule.flagged_followup_delay_sec)
        await ctx.notifier.send(ctx.config.digest.flagged_followup_message)
    return digest


async def run_threshold_job(ctx: BotContext) -> OnlineTimeResult:
    return await ctx.monitor.check()


async def run_reminder_job(ctx: BotContext, reminder: ReminderConfig) -> bool:
    get_logger(__name__).info("Sending reminder '%s'", reminder.name)
    return await ctx.notifier.send(reminder.message)


def build_jobs(ctx: BotContext) -> List[ScheduledJob]:
    schedule = ctx.config.schedule
    jobs = [
        ScheduledJob(
            name="daily-digest",
            schedule=DailyAt(schedule.digest_hour, schedule.digest_minute),
            action=lambda: run_digest_job(ctx),
            run_on_start=schedule.run_on_start,
        ),
        ScheduledJob(
            name="online-threshold",
            schedule=Hourly(schedule.threshold_check_minute),
            action=lambda: run_threshold_job(ctx),
            run_on_start=schedule.run_on_start,
        ),
    ]
    for reminder in ctx.config.reminders:
        weekdays = tuple(reminder.weekdays) if reminder.weekdays else None
        jobs.append(
            ScheduledJob(
                name=f"reminder:{reminder.name}",
                schedule=DailyAt(reminder.hour, reminder.minute, weekdays),
                action=lambda reminder=reminder: run_reminder_job(ctx, reminder),
            )
        )
    return jobs


__all__ = [
    "BotContext",
    "build_context",
    "build_jobs",
    "run_digest_job",
    "run_reminder_job",
    "run_threshold_job",
]
