from __future__ import annotations

from datetime import datetime
import json
from pathlib import Path
from typing import Optional, Protocol

from pydantic import ValidationError

from app.models import Assignment, UserContact
from app.services.reminder_windows import as_utc


class AssignmentStoreError(RuntimeError):
    pass


class AssignmentStore(Protocol):
    """Read side of the assignment document store used by reminder runs."""

    def list_incomplete_due_between(self, start: datetime, end: datetime) -> list[Assignment]: ...

    def list_incomplete_created_since(self, since: datetime) -> list[Assignment]: ...

    def get_user(self, user_id: str) -> Optional[UserContact]: ...


class JsonDocumentStore:
    """Assignment store backed by a JSON export of the document database.

    Layout::

        {"assignments": [{"id": ..., "userId": ..., "dueDate": ...}, ...],
         "users": {"<uid>": {"email": ..., "name": ..., "emailNotifications": true}}}

    The file is re-read on every query so each run sees fresh data.
    """

    def __init__(self, path: str) -> None:
        self.path = Path(path)

    def _load(self) -> dict:
        if not self.path.exists():
            return {"assignments": [], "users": {}}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise AssignmentStoreError(f"Cannot read store {self.path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise AssignmentStoreError(f"Store {self.path} must hold a JSON object")
        return payload

    def _assignments(self) -> list[Assignment]:
        """Validate pending rows only; completed rows never reach a reminder query."""
        rows = self._load().get("assignments", [])
        if not isinstance(rows, list):
            raise AssignmentStoreError("'assignments' must be a list")
        pending = [row for row in rows if not (isinstance(row, dict) and row.get("completed") is True)]
        try:
            return [Assignment.model_validate(row) for row in pending]
        except ValidationError as exc:
            raise AssignmentStoreError(f"Malformed assignment record: {exc}") from exc

    def list_incomplete_due_between(self, start: datetime, end: datetime) -> list[Assignment]:
        start, end = as_utc(start), as_utc(end)
        return [a for a in self._assignments() if not a.completed and start <= a.due_date <= end]

    def list_incomplete_created_since(self, since: datetime) -> list[Assignment]:
        since = as_utc(since)
        return [
            a
            for a in self._assignments()
            if not a.completed and a.created_at is not None and a.created_at >= since
        ]

    def get_user(self, user_id: str) -> Optional[UserContact]:
        users = self._load().get("users", {})
        row = users.get(user_id) if isinstance(users, dict) else None
        if not isinstance(row, dict):
            return None
        try:
            return UserContact.model_validate({**row, "userId": user_id})
        except ValidationError as exc:
            raise AssignmentStoreError(f"Malformed user record {user_id}: {exc}") from exc
