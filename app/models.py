from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DigestBucket(str, Enum):
    OVERDUE = "overdue"
    DUE_TODAY = "dueToday"
    DUE_TOMORROW = "dueTomorrow"
    DUE_THIS_WEEK = "dueThisWeek"


class ReminderType(str, Enum):
    URGENT = "urgent"
    TOMORROW = "tomorrow"
    MORNING = "morning"


class TemplateType(str, Enum):
    DAILY_DIGEST = "daily_digest"
    URGENT = "urgent"
    TOMORROW = "tomorrow"
    MORNING = "morning"


class GroupStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Assignment(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    user_id: str
    title: str
    course: str = ""
    description: str = ""
    due_date: datetime
    priority: Priority = Priority.MEDIUM
    completed: bool = False
    created_at: Optional[datetime] = None

    @field_validator("due_date", "created_at")
    @classmethod
    def normalize_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)

    @field_validator("description", mode="before")
    @classmethod
    def empty_description(cls, v: Any) -> str:
        return v or ""


class UserContact(CamelModel):
    user_id: str
    email: str = ""
    name: str = "Student"
    email_notifications: bool = True

    @field_validator("email", mode="before")
    @classmethod
    def default_email(cls, v: Any) -> str:
        return v or ""

    @field_validator("name", mode="before")
    @classmethod
    def default_name(cls, v: Any) -> str:
        return v or "Student"

    @field_validator("email_notifications", mode="before")
    @classmethod
    def default_opt_in(cls, v: Any) -> bool:
        # Only an explicit false opts the user out.
        return v is not False


class UserDigest(BaseModel):
    user_id: str
    overdue: list[Assignment] = Field(default_factory=list)
    due_today: list[Assignment] = Field(default_factory=list)
    due_tomorrow: list[Assignment] = Field(default_factory=list)
    due_this_week: list[Assignment] = Field(default_factory=list)

    def bucket(self, bucket: DigestBucket) -> list[Assignment]:
        return {
            DigestBucket.OVERDUE: self.overdue,
            DigestBucket.DUE_TODAY: self.due_today,
            DigestBucket.DUE_TOMORROW: self.due_tomorrow,
            DigestBucket.DUE_THIS_WEEK: self.due_this_week,
        }[bucket]

    def as_buckets(self) -> dict[DigestBucket, list[Assignment]]:
        return {bucket: self.bucket(bucket) for bucket in DigestBucket}

    def payload(self) -> dict[str, list[Assignment]]:
        return {bucket.value: items for bucket, items in self.as_buckets().items()}

    def counts(self) -> dict[str, int]:
        return {bucket.value: len(items) for bucket, items in self.as_buckets().items()}

    def total(self) -> int:
        return sum(self.counts().values())


class ReminderGroup(BaseModel):
    user_id: str
    reminder_type: ReminderType
    assignments: list[Assignment] = Field(default_factory=list)


class SendResult(BaseModel):
    success: bool
    data: Optional[dict[str, Any]] = None
    error: Optional[str] = None


class GroupResult(CamelModel):
    user_id: str
    email: Optional[str] = None
    template: TemplateType
    status: GroupStatus
    reason: Optional[str] = None
    counts: dict[str, int] = Field(default_factory=dict)


class RunStats(CamelModel):
    total_checked: int = 0
    users_processed: int = 0
    emails_sent: int = 0
    emails_failed: int = 0
    groups_skipped: int = 0


class RunReport(CamelModel):
    success: bool = True
    message: str
    mode: str
    generated_at: datetime
    stats: RunStats = Field(default_factory=RunStats)
    results: list[GroupResult] = Field(default_factory=list)
