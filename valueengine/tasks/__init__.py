"""Celery tasks for the value engine.

This module configures Celery and registers the periodic value run.
"""

from celery import Celery

from valueengine.config import configure_logging, get_settings

settings = get_settings()
configure_logging(settings.log_level)

# Create Celery application
celery_app = Celery(
    "valueengine",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "valueengine.tasks.value_runs",
    ],
)

# Celery configuration
celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Timezone
    timezone="UTC",
    enable_utc=True,
    # Task behavior
    task_track_started=True,
    task_time_limit=600,  # 10 minute hard limit
    task_soft_time_limit=540,  # 9 minute soft limit
    # Result expiration
    result_expires=3600,  # 1 hour
    # One run at a time: concurrent runs for the same day are unsupported
    worker_prefetch_multiplier=1,
    worker_concurrency=1,
)

# Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    "run-value-engine": {
        "task": "valueengine.tasks.value_runs.run_value_engine",
        "schedule": settings.run_interval_seconds,
        "options": {"expires": max(settings.run_interval_seconds - 20, 60)},
    },
}
