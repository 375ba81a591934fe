from celery import Celery
from celery.schedules import crontab

from sms_api.core.config import settings

# Celery configuration
celery_app = Celery(
    "sms_api",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["sms_api.tasks"]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    broker_connection_retry_on_startup=True,
)

celery_app.conf.beat_schedule = {
    "mark-overdue-assignments": {
        "task": "sms_api.tasks.mark_overdue_assignments",
        "schedule": crontab(hour=0, minute=15),
    },
    "generate-payment-reminders": {
        "task": "sms_api.tasks.generate_payment_reminders",
        "schedule": crontab(hour=7, minute=0),
    },
    "clean-expired-sessions": {
        "task": "sms_api.tasks.clean_expired_sessions",
        "schedule": crontab(minute=0),
    },
}
