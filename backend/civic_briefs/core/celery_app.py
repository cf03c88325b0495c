from celery import Celery
from celery.schedules import crontab

from .config import get_settings
from .logging import configure_logging

settings = get_settings()
configure_logging()

celery_app = Celery(
    "civic_briefs",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

celery_app.conf.update(
    task_routes={
        "civic_briefs.pipeline.tasks.orchestrate_brief": {"queue": "brief"},
        "civic_briefs.pipeline.tasks.fetch_brief_data": {"queue": "data"},
        "civic_briefs.pipeline.tasks.generate_brief_script": {"queue": "script"},
        "civic_briefs.pipeline.tasks.generate_brief_audio": {"queue": "audio"},
        "civic_briefs.pipeline.tasks.upload_brief": {"queue": "upload"},
    },
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    # Ack after the stage finishes so a crashed worker gets the message redelivered
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    imports=("civic_briefs.pipeline.tasks",),
    beat_schedule={
        "schedule-daily-briefs": {
            "task": "civic_briefs.pipeline.tasks.schedule_daily_briefs",
            "schedule": crontab(
                hour=settings.DAILY_BRIEF_CRON_HOUR,
                minute=settings.DAILY_BRIEF_CRON_MINUTE,
            ),
        },
    },
)
