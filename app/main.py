from __future__ import annotations

import logging
import secrets
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.config import settings
from app.models import ReminderType, TemplateType
from app.scheduler import create_scheduler, daily_trigger, hourly_trigger
from app.services.assignment_store import JsonDocumentStore
from app.services.notifier import EmailNotifier
from app.services.reminder_service import ReminderService

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Assignment Reminder Service", version="0.1.0")

store = JsonDocumentStore(settings.store_path)
notifier = EmailNotifier(
    settings.resend_api_key,
    settings.resend_from_email,
    settings.app_url,
    settings.notifier_timeout_sec,
)
reminder_service = ReminderService(store, notifier)
scheduler = create_scheduler()


class UnauthorizedError(Exception):
    pass


class SampleEmailRequest(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = None
    type: str = ReminderType.MORNING.value


def get_reminder_service() -> ReminderService:
    return reminder_service


def is_authorized(request: Request) -> bool:
    expected = settings.cron_secret
    provided = request.headers.get("authorization") or ""
    if not expected:
        return False
    return secrets.compare_digest(provided.encode("utf-8"), f"Bearer {expected}".encode("utf-8"))


def require_cron_secret(request: Request) -> None:
    if not is_authorized(request):
        raise UnauthorizedError()


def require_cron_secret_outside_development(request: Request) -> None:
    if settings.is_development:
        return
    require_cron_secret(request)


@app.exception_handler(UnauthorizedError)
async def unauthorized_handler(request: Request, exc: UnauthorizedError) -> JSONResponse:
    logger.warning("Rejected unauthorized call to %s", request.url.path)
    return JSONResponse(status_code=401, content={"error": "Unauthorized"})


def internal_error(exc: Exception) -> JSONResponse:
    logger.exception("Reminder run failed")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "message": str(exc) or "Unknown error"},
    )


async def run_scheduled(job_name: str, service: ReminderService) -> None:
    try:
        if job_name == "daily_digest":
            await service.run_daily_digest()
        else:
            await service.run_smart_reminders()
    except Exception:
        logger.exception("Scheduled %s run failed", job_name)


@app.on_event("startup")
async def startup_event() -> None:
    if not settings.scheduler_enabled:
        return
    scheduler.add_job(
        run_scheduled,
        daily_trigger(settings.digest_time),
        args=["daily_digest", reminder_service],
        id="daily_digest",
        replace_existing=True,
    )
    scheduler.add_job(
        run_scheduled,
        hourly_trigger(),
        args=["smart_reminders", reminder_service],
        id="smart_reminders",
        replace_existing=True,
    )
    scheduler.start()


@app.on_event("shutdown")
async def shutdown_event() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/api/cron/check-assignments", dependencies=[Depends(require_cron_secret)])
async def check_assignments(service: ReminderService = Depends(get_reminder_service)):
    try:
        report = await service.run_daily_digest()
    except Exception as exc:
        return internal_error(exc)
    return report.model_dump(mode="json", by_alias=True)


@app.get("/api/cron/smart-reminders", dependencies=[Depends(require_cron_secret)])
async def smart_reminders(service: ReminderService = Depends(get_reminder_service)):
    try:
        report = await service.run_smart_reminders()
    except Exception as exc:
        return internal_error(exc)
    return report.model_dump(mode="json", by_alias=True)


@app.get("/api/cron/test-mode", dependencies=[Depends(require_cron_secret_outside_development)])
async def test_mode(service: ReminderService = Depends(get_reminder_service)):
    try:
        report = await service.run_recent_test_digest()
    except Exception as exc:
        return internal_error(exc)
    return report.model_dump(mode="json", by_alias=True)


@app.post("/api/test-email")
async def test_email(body: SampleEmailRequest, service: ReminderService = Depends(get_reminder_service)):
    if not settings.is_development:
        return JSONResponse(status_code=403, content={"error": "Test endpoint disabled in production"})
    if not body.email or not body.name:
        return JSONResponse(status_code=400, content={"error": "Email and name are required"})
    if body.type not in {t.value for t in ReminderType}:
        return JSONResponse(
            status_code=400,
            content={"error": f"Unknown reminder type '{body.type}', expected one of: urgent, tomorrow, morning"},
        )
    try:
        result = await service.send_sample_email(body.email, body.name, TemplateType(body.type))
    except Exception as exc:
        return internal_error(exc)
    if not result.success:
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to send email", "details": result.error},
        )
    return {"success": True, "message": f"Test email sent successfully to {body.email}", "data": result.data}
