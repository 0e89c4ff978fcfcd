from __future__ import annotations

import logging
from enum import Enum
from typing import Mapping, Optional, Union

import httpx

from app.models import Assignment, DigestBucket, SendResult, TemplateType
from app.services.reminder_windows import WAT

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"

SECTION_TITLES = {
    DigestBucket.OVERDUE.value: "Overdue",
    DigestBucket.DUE_TODAY.value: "Due Today",
    DigestBucket.DUE_TOMORROW.value: "Due Tomorrow",
    DigestBucket.DUE_THIS_WEEK.value: "Due This Week",
}


def _key(value: Union[str, Enum]) -> str:
    return getattr(value, "value", value)


def format_due(assignment: Assignment) -> str:
    return assignment.due_date.astimezone(WAT).strftime("%b %d, %I:%M %p WAT")


class EmailNotifier:
    def __init__(
        self,
        api_key: str,
        from_email: str,
        app_url: str = "http://localhost:3000",
        timeout_sec: int = 20,
        api_url: str = RESEND_API_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = (api_key or "").strip()
        self.from_email = from_email
        self.app_url = app_url.rstrip("/")
        self.timeout_sec = max(3, timeout_sec)
        self.api_url = api_url
        self.transport = transport

    @staticmethod
    def build_subject(template_type: TemplateType, count: int) -> str:
        if template_type == TemplateType.URGENT:
            return f"Urgent: {count} assignments due soon"
        if template_type == TemplateType.TOMORROW:
            return f"Upcoming: {count} assignments due tomorrow"
        if template_type == TemplateType.MORNING:
            return f"Daily Digest: {count} assignments due today"
        return f"Your Daily Digest: {count} assignments need attention"

    @staticmethod
    def _intro(template_type: TemplateType, count: int) -> str:
        if template_type == TemplateType.URGENT:
            return f"You have {count} assignments due very soon. Please prioritize these tasks."
        if template_type == TemplateType.TOMORROW:
            return f"You have {count} assignments due tomorrow. Plan your time accordingly."
        if template_type == TemplateType.MORNING:
            return f"Good morning. You have {count} assignments due today."
        return f"Here is your daily overview of {count} pending assignments."

    def build_text(
        self,
        user_name: str,
        buckets: Mapping[str, list[Assignment]],
        template_type: TemplateType,
    ) -> str:
        count = sum(len(items) for items in buckets.values())
        lines = [f"Hi {user_name},", "", self._intro(template_type, count)]
        for key, items in buckets.items():
            if not items:
                continue
            lines.append("")
            if template_type == TemplateType.DAILY_DIGEST:
                lines.append(f"{SECTION_TITLES.get(key, key)} ({len(items)})")
            for assignment in items:
                lines.append(
                    f"- {assignment.title} | {assignment.course} | "
                    f"{assignment.priority.value.capitalize()} | Due: {format_due(assignment)}"
                )
        lines.extend(["", f"View dashboard: {self.app_url}/assignments"])
        return "\n".join(lines)

    async def _post(self, payload: dict) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        async with httpx.AsyncClient(timeout=self.timeout_sec, transport=self.transport) as client:
            return await client.post(self.api_url, json=payload, headers=headers)

    async def send(
        self,
        user_email: str,
        user_name: str,
        buckets: Mapping[str, list[Assignment]],
        template_type: TemplateType,
    ) -> SendResult:
        """Send one reminder email.

        Provider rejections come back as a failed ``SendResult``. Transport
        errors (DNS, timeouts, refused connections) are raised to the caller.
        """
        if not self.api_key:
            return SendResult(success=False, error="Resend API key is missing")
        if not user_email:
            return SendResult(success=False, error="Recipient email is missing")

        buckets = {_key(k): v for k, v in buckets.items()}
        count = sum(len(items) for items in buckets.values())
        payload = {
            "from": self.from_email,
            "to": user_email,
            "subject": self.build_subject(template_type, count),
            "text": self.build_text(user_name, buckets, template_type),
        }
        resp = await self._post(payload)
        if resp.is_error:
            logger.error("Resend API error %s for %s: %s", resp.status_code, user_email, resp.text)
            return SendResult(success=False, error=f"Resend API error: {resp.status_code} - {resp.text}")
        try:
            data = resp.json()
        except ValueError:
            data = {}
        logger.info("Email sent to %s (%s)", user_email, _key(template_type))
        return SendResult(success=True, data=data if isinstance(data, dict) else {"response": data})
