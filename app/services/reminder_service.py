from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
from typing import Mapping, Optional

from app.models import (
    Assignment,
    DigestBucket,
    GroupResult,
    GroupStatus,
    Priority,
    RunReport,
    RunStats,
    SendResult,
    TemplateType,
    UserDigest,
)
from app.services.assignment_store import AssignmentStore
from app.services.notifier import EmailNotifier
from app.services.reminder_aggregator import group_daily, group_hourly, resolve_recipient
from app.services.reminder_classifier import classify_daily, classify_hourly
from app.services.reminder_windows import as_utc, compute_windows, is_morning_check

logger = logging.getLogger(__name__)

TEST_MODE_LOOKBACK = timedelta(hours=1)


class ReminderService:
    """Runs one reminder pass: fetch, classify, group, resolve, send, report.

    The store and notifier are injected; nothing is kept between runs, so a
    repeated run with the same ``now`` classifies identically (and sends
    again, there is no sent marker).
    """

    def __init__(self, store: AssignmentStore, notifier: EmailNotifier) -> None:
        self.store = store
        self.notifier = notifier

    @staticmethod
    def _now(now: Optional[datetime]) -> datetime:
        return as_utc(now) if now is not None else datetime.now(timezone.utc)

    async def run_daily_digest(self, now: Optional[datetime] = None) -> RunReport:
        now = self._now(now)
        logger.info("Daily digest run started at %s", now.isoformat())
        windows = compute_windows(now)
        assignments = self.store.list_incomplete_due_between(windows.overdue_start, windows.week_end)
        logger.info("Found %d incomplete assignments due in the next 7 days or overdue", len(assignments))
        if not assignments:
            return self._empty_report("daily_digest", now)

        pairs = []
        for assignment in assignments:
            bucket = classify_daily(assignment, windows)
            if bucket is not None:
                pairs.append((assignment, bucket))
        digests = group_daily(pairs)
        logger.info("%d user(s) have assignments to report", len(digests))

        report = RunReport(
            message="Daily digest processed",
            mode="daily_digest",
            generated_at=now,
            stats=RunStats(total_checked=len(assignments), users_processed=len(digests)),
        )
        for user_id, digest in digests.items():
            if digest.total() == 0:
                continue
            await self._deliver(report, user_id, digest.payload(), TemplateType.DAILY_DIGEST, digest.counts())
        self._log_summary(report)
        return report

    async def run_smart_reminders(self, now: Optional[datetime] = None) -> RunReport:
        now = self._now(now)
        morning = is_morning_check(now)
        logger.info("Smart reminder run started at %s (morning check: %s)", now.isoformat(), morning)
        windows = compute_windows(now)
        assignments = self.store.list_incomplete_due_between(now, windows.future_window)
        logger.info("Found %d incomplete assignments due in the next 48 hours", len(assignments))
        if not assignments:
            return self._empty_report("smart_reminders", now)

        pairs = []
        for assignment in assignments:
            reminder_type = classify_hourly(assignment, now, morning)
            if reminder_type is not None:
                pairs.append((assignment, reminder_type))
        groups = group_hourly(pairs)

        report = RunReport(
            message="Smart reminders processed",
            mode="smart_reminders",
            generated_at=now,
            stats=RunStats(
                total_checked=len(assignments),
                users_processed=len({user_id for user_id, _ in groups}),
            ),
        )
        for (user_id, reminder_type), group in groups.items():
            template = TemplateType(reminder_type.value)
            await self._deliver(
                report,
                user_id,
                {reminder_type.value: group.assignments},
                template,
                {reminder_type.value: len(group.assignments)},
            )
        self._log_summary(report)
        return report

    async def run_recent_test_digest(self, now: Optional[datetime] = None) -> RunReport:
        """Send a digest of assignments created within the last hour, all listed as due today."""
        now = self._now(now)
        assignments = self.store.list_incomplete_created_since(now - TEST_MODE_LOOKBACK)
        if not assignments:
            return self._empty_report("test_mode", now, "No assignments created in the last hour")

        digests: dict[str, UserDigest] = {}
        for assignment in assignments:
            digest = digests.setdefault(assignment.user_id, UserDigest(user_id=assignment.user_id))
            digest.due_today.append(assignment)

        report = RunReport(
            message="Test digest emails processed",
            mode="test_mode",
            generated_at=now,
            stats=RunStats(total_checked=len(assignments), users_processed=len(digests)),
        )
        for user_id, digest in digests.items():
            await self._deliver(report, user_id, digest.payload(), TemplateType.DAILY_DIGEST, digest.counts())
        return report

    async def send_sample_email(self, email: str, name: str, template: TemplateType) -> SendResult:
        now = datetime.now(timezone.utc)
        samples = [
            Assignment(
                id="sample-1",
                user_id="sample",
                title="Calculus Problem Set #5",
                course="MATH 201",
                due_date=now + timedelta(hours=12),
                priority=Priority.HIGH,
            ),
            Assignment(
                id="sample-2",
                user_id="sample",
                title="Chemistry Lab Report",
                course="CHEM 101",
                due_date=now + timedelta(hours=20),
                priority=Priority.MEDIUM,
            ),
            Assignment(
                id="sample-3",
                user_id="sample",
                title="History Essay Draft",
                course="HIST 301",
                due_date=now + timedelta(hours=23),
                priority=Priority.LOW,
            ),
        ]
        if template == TemplateType.DAILY_DIGEST:
            buckets = {DigestBucket.DUE_TODAY.value: samples}
        else:
            buckets = {template.value: samples}
        logger.info("Sending test email to %s", email)
        return await self.notifier.send(email, name, buckets, template)

    async def _deliver(
        self,
        report: RunReport,
        user_id: str,
        buckets: Mapping[str, list[Assignment]],
        template: TemplateType,
        counts: dict[str, int],
    ) -> None:
        contact, skip_reason = resolve_recipient(self.store, user_id)
        if skip_reason is not None or contact is None:
            report.stats.groups_skipped += 1
            report.results.append(
                GroupResult(
                    user_id=user_id,
                    email=contact.email if contact else None,
                    template=template,
                    status=GroupStatus.SKIPPED,
                    reason=skip_reason,
                    counts=counts,
                )
            )
            return

        logger.info("Sending %s to %s: %s", template.value, contact.email, counts)
        try:
            result = await self.notifier.send(contact.email, contact.name, buckets, template)
        except Exception as exc:
            logger.exception("Failed to send to %s", contact.email)
            result = SendResult(success=False, error=str(exc) or exc.__class__.__name__)

        if result.success:
            report.stats.emails_sent += 1
        else:
            report.stats.emails_failed += 1
        report.results.append(
            GroupResult(
                user_id=user_id,
                email=contact.email,
                template=template,
                status=GroupStatus.SENT if result.success else GroupStatus.FAILED,
                reason=result.error,
                counts=counts,
            )
        )

    @staticmethod
    def _empty_report(mode: str, now: datetime, message: str = "No assignments found") -> RunReport:
        logger.info("%s: nothing to send", message)
        return RunReport(message=message, mode=mode, generated_at=now)

    @staticmethod
    def _log_summary(report: RunReport) -> None:
        logger.info(
            "%s completed: %d emails sent, %d failed, %d skipped",
            report.mode,
            report.stats.emails_sent,
            report.stats.emails_failed,
            report.stats.groups_skipped,
        )
