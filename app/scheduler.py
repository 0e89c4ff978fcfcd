from __future__ import annotations

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

SCHEDULER_TIMEZONE = "UTC"


def create_scheduler(timezone_name: str = SCHEDULER_TIMEZONE) -> AsyncIOScheduler:
    return AsyncIOScheduler(timezone=timezone_name)


def parse_schedule_time(schedule_time: str) -> tuple[int, int]:
    hour_str, minute_str = schedule_time.split(":", 1)
    hour, minute = int(hour_str), int(minute_str)
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ValueError(f"Invalid schedule time: {schedule_time!r}")
    return hour, minute


def daily_trigger(schedule_time: str, timezone_name: str = SCHEDULER_TIMEZONE) -> CronTrigger:
    hour, minute = parse_schedule_time(schedule_time)
    return CronTrigger(hour=hour, minute=minute, timezone=timezone_name)


def hourly_trigger(timezone_name: str = SCHEDULER_TIMEZONE) -> CronTrigger:
    return CronTrigger(minute=0, timezone=timezone_name)
