# sms_api/tasks.py
"""Periodic maintenance jobs run by the Celery worker and beat."""
import asyncio
import logging

from celery_worker import celery_app

from .core.database import AsyncSessionLocal, engine
from .services.reminder_service import PaymentReminderService
from .services.session_service import SessionService

logger = logging.getLogger(__name__)


async def _run_with_session(job):
    try:
        async with AsyncSessionLocal() as db:
            return await job(db)
    finally:
        # Pooled connections are bound to this event loop
        await engine.dispose()


async def _mark_overdue(db):
    return await PaymentReminderService(db).mark_overdue_assignments()


async def _generate_reminders(db):
    service = PaymentReminderService(db)
    await service.mark_overdue_assignments()
    result = await service.generate_reminders()
    return {"created": result["created"], "skipped": result["skipped"]}


async def _clean_sessions(db):
    return await SessionService(db).clean_expired_sessions()


@celery_app.task(name="sms_api.tasks.mark_overdue_assignments")
def mark_overdue_assignments():
    count = asyncio.run(_run_with_session(_mark_overdue))
    logger.info(f"Overdue sweep finished: {count} assignments updated")
    return count


@celery_app.task(name="sms_api.tasks.generate_payment_reminders")
def generate_payment_reminders():
    return asyncio.run(_run_with_session(_generate_reminders))


@celery_app.task(name="sms_api.tasks.clean_expired_sessions")
def clean_expired_sessions():
    return asyncio.run(_run_with_session(_clean_sessions))
