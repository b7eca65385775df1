"""Celery application and beat schedule for background jobs."""
from celery import Celery
from celery.schedules import crontab

from partake.config import settings

celery_app = Celery("partake", broker=settings.CELERY_BROKER_URL, include=["partake.tasks"])

celery_app.conf.update(
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    beat_schedule={
        "purge-expired-accounts": {
            "task": "partake.tasks.purge_expired_accounts",
            "schedule": crontab(minute=0, hour=settings.PURGE_SCHEDULE_HOUR_UTC),
        },
    },
)
