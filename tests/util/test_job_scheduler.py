from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from cronus.util.job_scheduler import DailyAt, Hourly, JobScheduler, ScheduledJob


def test_daily_schedule_rolls_over_to_next_day():
    schedule = DailyAt(8)
    before = datetime(2024, 1, 1, 7, 59, tzinfo=timezone.utc)
    after = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)
    assert schedule.next_run(before) == datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)
    assert schedule.next_run(after) == datetime(2024, 1, 2, 8, 0, tzinfo=timezone.utc)


def test_daily_schedule_honours_weekdays():
    # 2024-01-01 is a Monday; 6 = Sunday
    schedule = DailyAt(19, 30, weekdays=(6,))
    assert schedule.next_run(datetime(2024, 1, 1, 12, tzinfo=timezone.utc)) == datetime(
        2024, 1, 7, 19, 30, tzinfo=timezone.utc
    )


def test_hourly_schedule_fires_on_the_hour():
    schedule = Hourly()
    assert schedule.next_run(datetime(2024, 1, 1, 10, 15, tzinfo=timezone.utc)) == datetime(
        2024, 1, 1, 11, 0, tzinfo=timezone.utc
    )
    assert schedule.next_run(datetime(2024, 1, 1, 23, 0, tzinfo=timezone.utc)) == datetime(
        2024, 1, 2, 0, 0, tzinfo=timezone.utc
    )


@pytest.mark.asyncio
async def test_scheduler_sleeps_until_due_and_survives_failures():
    clock = {"now": datetime(2024, 1, 1, 10, 15, tzinfo=timezone.utc)}
    delays = []
    runs = []

    async def fake_sleep(seconds):
        delays.append(seconds)
        clock["now"] += timedelta(seconds=seconds)

    async def flaky():
        runs.append(clock["now"])
        if len(runs) == 1:
            raise RuntimeError("boom")
        if len(runs) == 2:
            scheduler.stop()

    scheduler = JobScheduler(
        [ScheduledJob("hourly", Hourly(), flaky)],
        now=lambda: clock["now"],
        sleep=fake_sleep,
    )
    await scheduler.run_forever()

    assert delays == [45 * 60, 60 * 60]
    assert runs == [
        datetime(2024, 1, 1, 11, 0, tzinfo=timezone.utc),
        datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
    ]


@pytest.mark.asyncio
async def test_run_startup_only_runs_flagged_jobs():
    ran = []

    async def action(name):
        ran.append(name)

    scheduler = JobScheduler(
        [
            ScheduledJob("digest", DailyAt(8), lambda: action("digest"), run_on_start=True),
            ScheduledJob("reminder", DailyAt(19), lambda: action("reminder")),
        ],
        now=lambda: datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    await scheduler.run_startup()
    assert ran == ["digest"]


@pytest.mark.asyncio
async def test_daily_delay_spans_dst_change_in_real_time():
    # Europe/Berlin jumps from 02:00 to 03:00 on 2024-03-31
    berlin = ZoneInfo("Europe/Berlin")
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)
        scheduler.stop()

    async def action():
        raise AssertionError("stopped scheduler must not run the job")

    scheduler = JobScheduler(
        [ScheduledJob("digest", DailyAt(8), action)],
        now=lambda: datetime(2024, 3, 31, 1, 30, tzinfo=berlin),
        sleep=fake_sleep,
    )
    await scheduler.run_forever()

    assert delays == [5.5 * 3600]
