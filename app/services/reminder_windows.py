from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

# West Africa Time. Only used to decide whether a run is the morning check.
WAT = timezone(timedelta(hours=1), "WAT")
MORNING_CHECK_HOUR_WAT = 8

OVERDUE_LOOKBACK = timedelta(days=30)
WEEK_LOOKAHEAD = timedelta(days=7)
SMART_REMINDER_LOOKAHEAD = timedelta(hours=48)

_ONE_MS = timedelta(milliseconds=1)


@dataclass(frozen=True)
class ReminderWindows:
    now: datetime
    today_end: datetime
    tomorrow_start: datetime
    tomorrow_end: datetime
    week_start: datetime
    week_end: datetime
    overdue_start: datetime
    future_window: datetime


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def end_of_utc_day(value: datetime) -> datetime:
    return as_utc(value).replace(hour=23, minute=59, second=59, microsecond=999000)


def compute_windows(now: datetime) -> ReminderWindows:
    """Compute the reminder boundaries for a run started at ``now``.

    All boundaries are UTC. ``today_end``/``tomorrow_end`` are the last
    millisecond of their UTC calendar day, so the gap between a day end and
    the next day start is exactly one millisecond and holds no instants a
    millisecond-precision due date can take.
    """
    now = as_utc(now)
    today_end = end_of_utc_day(now)
    tomorrow_start = today_end + _ONE_MS
    tomorrow_end = end_of_utc_day(tomorrow_start)
    return ReminderWindows(
        now=now,
        today_end=today_end,
        tomorrow_start=tomorrow_start,
        tomorrow_end=tomorrow_end,
        week_start=tomorrow_end + _ONE_MS,
        week_end=now + WEEK_LOOKAHEAD,
        overdue_start=now - OVERDUE_LOOKBACK,
        future_window=now + SMART_REMINDER_LOOKAHEAD,
    )


def is_morning_check(now: datetime) -> bool:
    return as_utc(now).astimezone(WAT).hour == MORNING_CHECK_HOUR_WAT
