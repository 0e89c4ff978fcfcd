from __future__ import annotations

import logging
from typing import Iterable, Optional

from app.models import Assignment, DigestBucket, ReminderGroup, ReminderType, UserContact, UserDigest
from app.services.assignment_store import AssignmentStore
from app.services.reminder_classifier import sort_by_priority

logger = logging.getLogger(__name__)

SKIP_PROFILE_NOT_FOUND = "profile_not_found"
SKIP_NOTIFICATIONS_DISABLED = "notifications_disabled"
SKIP_PROFILE_LOOKUP_FAILED = "profile_lookup_failed"


def group_daily(pairs: Iterable[tuple[Assignment, DigestBucket]]) -> dict[str, UserDigest]:
    digests: dict[str, UserDigest] = {}
    for assignment, bucket in pairs:
        digest = digests.setdefault(assignment.user_id, UserDigest(user_id=assignment.user_id))
        digest.bucket(bucket).append(assignment)
    for digest in digests.values():
        for items in digest.as_buckets().values():
            items[:] = sort_by_priority(items)
    return digests


def group_hourly(
    pairs: Iterable[tuple[Assignment, ReminderType]],
) -> dict[tuple[str, ReminderType], ReminderGroup]:
    groups: dict[tuple[str, ReminderType], ReminderGroup] = {}
    for assignment, reminder_type in pairs:
        key = (assignment.user_id, reminder_type)
        group = groups.setdefault(key, ReminderGroup(user_id=assignment.user_id, reminder_type=reminder_type))
        group.assignments.append(assignment)
    for group in groups.values():
        group.assignments = sort_by_priority(group.assignments)
    return groups


def resolve_recipient(store: AssignmentStore, user_id: str) -> tuple[Optional[UserContact], Optional[str]]:
    """Look up who should receive a group, or why the group is skipped."""
    try:
        contact = store.get_user(user_id)
    except Exception:
        logger.exception("Error fetching user %s", user_id)
        return None, SKIP_PROFILE_LOOKUP_FAILED
    if contact is None:
        logger.info("Skipping user %s: profile not found", user_id)
        return None, SKIP_PROFILE_NOT_FOUND
    if not contact.email_notifications:
        logger.info("Skipping %s: notifications disabled", contact.email)
        return contact, SKIP_NOTIFICATIONS_DISABLED
    return contact, None
