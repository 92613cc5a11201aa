from celery import Celery
from celery.schedules import crontab
from celery.signals import worker_process_init

from app.core.config import settings

celery_app = Celery(
    "mention_tracker",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
)

# Celery Beat schedule; the scheduler itself decides which brands are due
# (next_scan_at gate), so frequent runs are cheap and overlapping runs harmless.
celery_app.conf.beat_schedule = {
    "run-automated-scans": {
        "task": "run_automated_scans",
        "schedule": crontab(minute="*/15"),
    },
    "process-scan-queue": {
        "task": "process_scan_queue",
        "schedule": crontab(),  # every minute
    },
}

# Explicit include (autodiscover only looks for app.tasks.tasks)
celery_app.conf.include = ["app.tasks.scan_tasks"]


@worker_process_init.connect
def _init_worker(**kwargs):
    from app.core.logging import setup_logging
    from app.core.sentry import init_sentry

    setup_logging()
    init_sentry("worker")
