"""
Celery tasks for the engagement jobs.

Each task runs exactly one sweep in a fresh event loop, the same way the
embedded scheduler would. Workers share a redis ``JobLock`` so a sweep
still running on one worker makes the same job skip on every other.
"""

import asyncio

from engagehub.core.celery_app import celery_app
from engagehub.core.database import db_manager
from engagehub.core.locks import JobLock
from engagehub.core.logging_config import get_logger
from engagehub.features.scheduling.scheduler import create_scheduler

logger = get_logger(__name__)


@celery_app.task(name="engagehub.scheduling.run_job")
def run_job(job_name: str) -> dict:
    """
    Run one sweep of a scheduler job.

    Args:
        job_name: sync_comments, auto_reply or generate_leads

    Returns:
        The sweep's ``JobRunResult`` as a dictionary
    """
    logger.info("scheduled_task_started", job=job_name)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(_run_job(job_name))
    finally:
        loop.close()


async def _run_job(job_name: str) -> dict:
    db_manager.init()
    job_lock = JobLock()
    try:
        scheduler = create_scheduler(db_manager.session_factory, job_lock=job_lock)
        result = await scheduler.run_job(job_name)
        return result.to_dict()
    finally:
        await job_lock.close()
        await db_manager.close()
