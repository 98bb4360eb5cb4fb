from celery import Celery
from celery.schedules import crontab

from searchsuggest.config import settings

celery = Celery(
    "searchsuggest",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["searchsuggest.workers.recount_tasks"],
)

celery.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    beat_schedule={
        "recount-suggestions-nightly": {
            "task": "searchsuggest.workers.recount_tasks.recount_all_suggestions",
            "schedule": crontab(hour=3, minute=30),  # 3:30 AM UTC
        },
    },
)
