from datetime import datetime, timedelta, timezone

from app.models import Assignment, DigestBucket, Priority, ReminderType, UserContact
from app.services.reminder_aggregator import group_daily, group_hourly, resolve_recipient

NOW = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)


def make_assignment(title, user_id="u1", priority=Priority.MEDIUM, hours=5):
    return Assignment(
        id=title,
        user_id=user_id,
        title=title,
        course="CS 101",
        due_date=NOW + timedelta(hours=hours),
        priority=priority,
    )


class DummyStore:
    def __init__(self, users=None, fail=False):
        self.users = users or {}
        self.fail = fail
        self.lookups = []

    def get_user(self, user_id):
        self.lookups.append(user_id)
        if self.fail:
            raise RuntimeError("store unavailable")
        return self.users.get(user_id)


def test_same_user_same_bucket_yields_one_digest_sorted_high_first():
    low = make_assignment("Essay", priority=Priority.LOW, hours=2)
    high = make_assignment("Exam prep", priority=Priority.HIGH, hours=8)
    digests = group_daily([(low, DigestBucket.DUE_TODAY), (high, DigestBucket.DUE_TODAY)])
    assert list(digests) == ["u1"]
    assert [a.title for a in digests["u1"].due_today] == ["Exam prep", "Essay"]
    assert digests["u1"].counts() == {"overdue": 0, "dueToday": 2, "dueTomorrow": 0, "dueThisWeek": 0}


def test_daily_groups_by_user_only():
    pairs = [
        (make_assignment("A", user_id="u1"), DigestBucket.OVERDUE),
        (make_assignment("B", user_id="u2"), DigestBucket.DUE_TODAY),
        (make_assignment("C", user_id="u1"), DigestBucket.DUE_THIS_WEEK),
    ]
    digests = group_daily(pairs)
    assert set(digests) == {"u1", "u2"}
    assert digests["u1"].total() == 2
    assert [a.title for a in digests["u1"].overdue] == ["A"]
    assert [a.title for a in digests["u1"].due_this_week] == ["C"]


def test_hourly_groups_by_user_and_type():
    pairs = [
        (make_assignment("New", priority=Priority.HIGH), ReminderType.URGENT),
        (make_assignment("Soon", priority=Priority.LOW), ReminderType.URGENT),
        (make_assignment("Next day", priority=Priority.HIGH, hours=24), ReminderType.TOMORROW),
        (make_assignment("Other", user_id="u2", priority=Priority.HIGH, hours=24), ReminderType.TOMORROW),
    ]
    groups = group_hourly(pairs)
    assert set(groups) == {("u1", ReminderType.URGENT), ("u1", ReminderType.TOMORROW), ("u2", ReminderType.TOMORROW)}
    assert [a.title for a in groups[("u1", ReminderType.URGENT)].assignments] == ["New", "Soon"]


def test_resolve_recipient_returns_contact():
    store = DummyStore({"u1": UserContact(user_id="u1", email="a@school.edu", name="Ada")})
    contact, reason = resolve_recipient(store, "u1")
    assert reason is None
    assert contact.email == "a@school.edu"


def test_resolve_recipient_missing_profile():
    contact, reason = resolve_recipient(DummyStore(), "ghost")
    assert contact is None
    assert reason == "profile_not_found"


def test_resolve_recipient_opted_out():
    store = DummyStore({"u1": UserContact(user_id="u1", email="a@school.edu", email_notifications=False)})
    contact, reason = resolve_recipient(store, "u1")
    assert reason == "notifications_disabled"
    assert contact.email == "a@school.edu"


def test_resolve_recipient_lookup_error_skips_group():
    contact, reason = resolve_recipient(DummyStore(fail=True), "u1")
    assert contact is None
    assert reason == "profile_lookup_failed"
