"""
Celery application and beat schedule.

Schedule (UTC, per-user local time is applied inside the engines):
- proactive trigger sweep every 15 minutes
- briefing check at the top of every hour
- due-reminder dispatch every minute
- streak decay once a day
"""

from __future__ import annotations

import os

from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging as celery_setup_logging

from src.config.settings import get_settings
from src.lib.logging import setup_logging

_settings = get_settings()

celery_app = Celery(
    "shree",
    broker=_settings.celery_broker_url,
    backend=_settings.celery_result_backend,
    include=["src.worker.tasks"],
)

celery_app.conf.update(
    broker_connection_retry_on_startup=True,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    task_track_started=True,
    worker_prefetch_multiplier=int(os.getenv("SHREE_CELERY_PREFETCH", "1")),
    task_default_queue=os.getenv("SHREE_CELERY_QUEUE", "shree"),
    timezone="UTC",
    enable_utc=True,
)

celery_app.conf.beat_schedule = {
    "shree.proactive_sweep": {
        "task": "shree.proactive_sweep",
        "schedule": crontab(minute="*/15"),
    },
    "shree.briefings": {
        "task": "shree.briefings",
        "schedule": crontab(minute=0),
    },
    "shree.dispatch_reminders": {
        "task": "shree.dispatch_reminders",
        "schedule": 60.0,
    },
    "shree.streak_decay": {
        "task": "shree.streak_decay",
        "schedule": crontab(hour=0, minute=5),
    },
}


@celery_setup_logging.connect
def _configure_logging(**kwargs: object) -> None:
    # Connecting this signal stops Celery from replacing the root logger
    setup_logging()


__all__ = ["celery_app"]
