"""Celery app (SQS broker) whose Beat schedule drains the job queue."""

from __future__ import annotations

from celery import Celery
from celery.schedules import crontab

from app.core.config import get_settings


settings = get_settings()

# The SQS transport prefixes queue names, so "default" maps to "<prefix>default".
QUEUE_PREFIX = (settings.CELERY_QUEUE_PREFIX or "seo-content-").strip()
JOB_QUEUE = "default"

celery_app = Celery(
    "seo_content",
    broker=(settings.CELERY_BROKER_URL or "sqs://").strip(),
    include=["app.worker.tasks"],
)

transport_options: dict = {
    "region": (settings.AWS_REGION or "").strip(),
    "queue_name_prefix": QUEUE_PREFIX,
    # Must exceed the hard task limit or SQS redelivers a running tick.
    "visibility_timeout": int(settings.CELERY_VISIBILITY_TIMEOUT),
}
if (settings.SQS_DEFAULT_QUEUE_URL or "").strip():
    transport_options["predefined_queues"] = {
        JOB_QUEUE: {"url": settings.SQS_DEFAULT_QUEUE_URL.strip()},
    }

celery_app.conf.update(
    broker_transport_options=transport_options,
    task_default_queue=JOB_QUEUE,
    task_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    worker_prefetch_multiplier=1,
    task_time_limit=int(settings.CELERY_TASK_TIME_LIMIT),
    task_soft_time_limit=int(settings.CELERY_TASK_SOFT_TIME_LIMIT),
    beat_schedule={
        # Each tick processes at most one job.
        "process-job-queue": {
            "task": "app.worker.tasks.process_job_queue",
            "schedule": crontab(minute=settings.WORKER_SCHEDULE_MINUTE),
            "options": {"queue": JOB_QUEUE, "expires": 55},
        },
    },
)
