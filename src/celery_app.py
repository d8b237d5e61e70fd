"""Celery application configuration."""

from celery import Celery
from celery.schedules import crontab

from src.config import get_settings

settings = get_settings()

app = Celery(
    "sla_engine",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["src.tasks.engine"],
)

# Celery configuration
app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes max per task
    task_soft_time_limit=240,  # 4 minutes soft limit
)

app.conf.beat_schedule = {
    "reminder-tick": {
        "task": "src.tasks.engine.run_reminder_tick",
        "schedule": 60.0,
    },
    "escalation-tick": {
        "task": "src.tasks.engine.run_escalation_tick",
        "schedule": crontab(minute="*/15"),
    },
    "refresh-category-stats": {
        "task": "src.tasks.engine.refresh_category_stats",
        "schedule": crontab(hour=2, minute=0),
    },
    "purge-read-notifications": {
        "task": "src.tasks.engine.purge_read_notifications",
        "schedule": crontab(hour=3, minute=0),
    },
}
