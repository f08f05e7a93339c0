"""
Celery application configuration.

Used when ``SCHEDULER_MODE=celery``: beat triggers one task per engagement
job and a worker runs a single sweep through the same ``Scheduler`` the
embedded mode uses.
"""

from celery import Celery
from celery.signals import task_failure, task_success

from engagehub.config import settings
from engagehub.core.logging_config import get_logger

logger = get_logger(__name__)

# Create Celery app
celery_app = Celery(
    "engagehub",
    broker=str(settings.redis_url),
    backend=str(settings.redis_url),
    include=[
        "engagehub.features.scheduling.tasks",
    ]
)

celery_app.conf.update(
    # Task execution
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Task routing
    task_routes={
        "engagehub.scheduling.*": {"queue": "engagement"},
    },

    result_expires=3600,  # Results expire after 1 hour

    # A sweep must not be redelivered while it may still be running
    task_acks_late=False,
    # The job lock must outlive the task so a killed sweep never overlaps its successor
    task_time_limit=settings.job_lock_ttl_seconds,
    task_soft_time_limit=int(settings.job_lock_ttl_seconds * 0.9),

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,  # Restart worker after N tasks (memory management)

    # Monitoring
    worker_send_task_events=True,
    task_send_sent_event=True,
)


@task_success.connect
def task_success_handler(sender=None, result=None, **kwargs):
    logger.info("task_succeeded", task=sender.name)


@task_failure.connect
def task_failure_handler(sender=None, exception=None, **kwargs):
    logger.error("task_failed", task=sender.name, error=str(exception))


# Celery beat schedule (periodic tasks)
celery_app.conf.beat_schedule = {
    "sync-comments": {
        "task": "engagehub.scheduling.run_job",
        "schedule": settings.sync_interval_seconds,
        "args": ("sync_comments",),
    },
    "auto-reply": {
        "task": "engagehub.scheduling.run_job",
        "schedule": settings.auto_reply_interval_seconds,
        "args": ("auto_reply",),
    },
    "generate-leads": {
        "task": "engagehub.scheduling.run_job",
        "schedule": settings.lead_generation_interval_seconds,
        "args": ("generate_leads",),
    },
}
