from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from app.models import Assignment, DigestBucket, Priority, ReminderType
from app.services.reminder_windows import ReminderWindows, as_utc

PRIORITY_ORDER = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}

NEW_ASSIGNMENT_ALERT_MINUTES = 60
# Day-before reminder: 24h ahead with one hour of tolerance each way.
DAY_BEFORE_MIN_HOURS = 23.0
DAY_BEFORE_MAX_HOURS = 25.0
MORNING_HORIZON_HOURS = 24.0
# Low priority items get a single reminder about two hours before the deadline.
LOW_PRIORITY_MIN_HOURS = 1.5
LOW_PRIORITY_MAX_HOURS = 2.5


def priority_sort_key(assignment: Assignment) -> tuple[int, datetime]:
    """High before medium before low, then earliest due date first."""
    return PRIORITY_ORDER.get(assignment.priority, len(PRIORITY_ORDER)), assignment.due_date


def sort_by_priority(assignments: list[Assignment]) -> list[Assignment]:
    return sorted(assignments, key=priority_sort_key)


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start) / timedelta(hours=1)


def minutes_between(start: datetime, end: datetime) -> float:
    return (end - start) / timedelta(minutes=1)


def classify_daily(assignment: Assignment, windows: ReminderWindows) -> Optional[DigestBucket]:
    """Place a pending assignment into exactly one digest bucket, or none.

    Rules are checked in order and the first match wins. Anything outside
    every window (past ``week_end`` or in the sub-millisecond gap between two
    day boundaries) is not reported this run.
    """
    if assignment.completed:
        return None
    now = windows.now
    due = as_utc(assignment.due_date)
    if due < now:
        return DigestBucket.OVERDUE
    if now <= due <= windows.today_end:
        return DigestBucket.DUE_TODAY
    if windows.tomorrow_start <= due <= windows.tomorrow_end:
        return DigestBucket.DUE_TOMORROW
    if windows.week_start <= due <= windows.week_end:
        return DigestBucket.DUE_THIS_WEEK
    return None


def classify_hourly(assignment: Assignment, now: datetime, is_morning: bool) -> Optional[ReminderType]:
    """Pick the smart reminder for one assignment in an hourly run.

    A freshly created high priority assignment gets an immediate ``urgent``
    alert. Otherwise high priority items get a day-before ``tomorrow``
    reminder and, on the morning run, a ``morning`` reminder when due within
    a day. Medium items only get the morning reminder and low items only the
    two-hours-ahead ``urgent`` reminder.
    """
    if assignment.completed:
        return None
    now = as_utc(now)
    hours_left = hours_between(now, as_utc(assignment.due_date))

    if assignment.priority == Priority.HIGH:
        if assignment.created_at is not None:
            if minutes_between(as_utc(assignment.created_at), now) < NEW_ASSIGNMENT_ALERT_MINUTES:
                return ReminderType.URGENT
        if DAY_BEFORE_MIN_HOURS <= hours_left <= DAY_BEFORE_MAX_HOURS:
            return ReminderType.TOMORROW
        if hours_left < MORNING_HORIZON_HOURS and is_morning:
            return ReminderType.MORNING
        return None

    if assignment.priority == Priority.MEDIUM:
        if hours_left < MORNING_HORIZON_HOURS and is_morning:
            return ReminderType.MORNING
        return None

    if assignment.priority == Priority.LOW:
        if LOW_PRIORITY_MIN_HOURS <= hours_left <= LOW_PRIORITY_MAX_HOURS:
            return ReminderType.URGENT
    return None
