"""
Periodic job scheduler.

Runs the engagement sweeps (comment sync, auto-reply, lead generation)
over every eligible tenant. Guarantees:

- A job never overlaps itself. Inside one process APScheduler runs each
  job with ``max_instances=1`` and an in-process lock guards manual
  triggers; across processes an optional redis ``JobLock`` does the same
  for Celery workers, which each build their own scheduler.
- Each tenant runs in its own session under a hard timeout; a failing or
  stuck tenant is logged, reported and counted, and the sweep moves on.
- A sweep that fails before reaching the tenants (database down, lock
  store unreachable) is logged, reported and recorded as ``failed``.

The scheduler runs either embedded in the API process (``start``/``stop``
from the FastAPI lifespan) or one sweep at a time from a Celery beat task.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from engagehub.config import settings
from engagehub.core.context import clear_request_context, set_request_context
from engagehub.core.error_tracking import error_tracker
from engagehub.core.locks import JobLock
from engagehub.core.logging_config import get_logger
from engagehub.core.metrics import (
    scheduler_job_duration_seconds,
    scheduler_job_runs_total,
    scheduler_tenant_failures_total,
)
from engagehub.features.engagement.orchestrator import EngagementOrchestrator, engagement_orchestrator
from engagehub.features.ingestion.sync import CommentSync, comment_sync
from engagehub.models.base import utcnow
from engagehub.models.tenant import Tenant, TenantStatus

logger = get_logger(__name__)

SYNC_COMMENTS = "sync_comments"
AUTO_REPLY = "auto_reply"
GENERATE_LEADS = "generate_leads"


@dataclass
class Job:
    name: str
    interval: float
    handler: Callable[[AsyncSession, Tenant], Awaitable[Any]]
    tenant_filter: Callable[[], list[Any]] = field(default=lambda: [])


@dataclass
class JobRunResult:
    job: str
    skipped: bool = False
    tenants_processed: int = 0
    tenants_failed: int = 0
    error: str | None = None
    started_at: datetime = field(default_factory=utcnow)
    finished_at: datetime | None = None

    @property
    def status(self) -> str:
        if self.skipped:
            return "skipped"
        if self.error is not None:
            return "failed"
        return "partial" if self.tenants_failed else "success"

    def to_dict(self) -> dict[str, Any]:
        return {
            "job": self.job,
            "status": self.status,
            "skipped": self.skipped,
            "tenants_processed": self.tenants_processed,
            "tenants_failed": self.tenants_failed,
            "error": self.error,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


class Scheduler:
    """Interval scheduler with per-job overlap prevention."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        jobs: list[Job],
        tenant_timeout: float | None = None,
        job_lock: JobLock | None = None,
    ):
        self._session_factory = session_factory
        self._jobs = {job.name: job for job in jobs}
        self._locks = {job.name: asyncio.Lock() for job in jobs}
        self._job_lock = job_lock
        self.tenant_timeout = tenant_timeout or settings.scheduler_tenant_timeout_seconds
        self._apscheduler: AsyncIOScheduler | None = None

    @property
    def started(self) -> bool:
        return self._apscheduler is not None and self._apscheduler.running

    @property
    def job_names(self) -> list[str]:
        return list(self._jobs)

    def is_running(self, name: str) -> bool:
        """Whether a run of the job is currently in flight in this process."""
        return self._locks[name].locked()

    def next_run_at(self, name: str) -> datetime | None:
        if not self.started:
            return None
        scheduled = self._apscheduler.get_job(name)
        return scheduled.next_run_time if scheduled else None

    def state(self) -> dict[str, Any]:
        jobs = {}
        for name, job in self._jobs.items():
            next_run = self.next_run_at(name)
            jobs[name] = {
                "interval_seconds": job.interval,
                "running": self.is_running(name),
                "next_run_at": next_run.isoformat() if next_run else None,
            }
        return {"started": self.started, "jobs": jobs}

    def start(self) -> None:
        """Register every job on an asyncio APScheduler. Must be called inside a running event loop."""
        if self.started:
            return
        self._apscheduler = AsyncIOScheduler(timezone="UTC")
        for job in self._jobs.values():
            self._apscheduler.add_job(
                self.run_job,
                trigger=IntervalTrigger(seconds=job.interval),
                args=[job.name],
                id=job.name,
                name=job.name,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
        self._apscheduler.start()
        logger.info("scheduler_started", jobs=self.job_names)

    async def stop(self) -> None:
        """Shut APScheduler down; in-flight sweeps are cancelled."""
        if self._apscheduler is None:
            return
        if self._apscheduler.running:
            self._apscheduler.shutdown(wait=False)
        self._apscheduler = None
        # Let cancelled sweeps unwind before the engine is disposed
        await asyncio.sleep(0)
        logger.info("scheduler_stopped")

    async def run_job(self, name: str) -> JobRunResult:
        """
        Run one sweep of a job over all eligible tenants.

        Returns a skipped result without doing anything when a run of the
        same job is already in flight, here or (with a ``JobLock``) in any
        other process. Never raises for a failed sweep; the failure is
        carried on the result.
        """
        if name not in self._jobs:
            raise ValueError(f"Unknown job: {name}")

        job = self._jobs[name]
        lock = self._locks[name]

        if lock.locked():
            logger.warning("job_run_skipped", job=name, reason="previous run still in flight")
            scheduler_job_runs_total.labels(job=name, status="skipped").inc()
            return JobRunResult(job=name, skipped=True, finished_at=utcnow())

        async with lock:
            result = JobRunResult(job=name)
            started = time.perf_counter()
            set_request_context(job=name)
            try:
                if self._job_lock is None:
                    await self._sweep(job, result)
                else:
                    async with self._job_lock.hold(name) as acquired:
                        if acquired:
                            await self._sweep(job, result)
                        else:
                            logger.warning("job_run_skipped", job=name, reason="held by another worker")
                            result.skipped = True
            except Exception as e:
                result.error = str(e)
                logger.exception("job_run_failed", job=name, error=str(e))
                error_tracker.capture_exception(e, context={"job": name})
            finally:
                clear_request_context()

            result.finished_at = utcnow()
            duration = time.perf_counter() - started
            scheduler_job_runs_total.labels(job=name, status=result.status).inc()
            if result.skipped:
                return result

            scheduler_job_duration_seconds.labels(job=name).observe(duration)
            logger.info(
                "job_run_completed",
                job=name,
                status=result.status,
                tenants_processed=result.tenants_processed,
                tenants_failed=result.tenants_failed,
                duration_ms=round(duration * 1000, 2),
            )
            return result

    async def _sweep(self, job: Job, result: JobRunResult) -> None:
        tenant_ids = await self._eligible_tenant_ids(job)
        logger.info("job_run_started", job=job.name, tenants=len(tenant_ids))

        for tenant_id in tenant_ids:
            if await self._run_for_tenant(job, tenant_id):
                result.tenants_processed += 1
            else:
                result.tenants_failed += 1

    async def _eligible_tenant_ids(self, job: Job) -> list[str]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(Tenant.id)
                .where(Tenant.status == TenantStatus.ACTIVE.value, *job.tenant_filter())
                .order_by(Tenant.created_at.asc())
            )
            return list(result.scalars().all())

    async def _run_for_tenant(self, job: Job, tenant_id: str) -> bool:
        set_request_context(tenant_id=tenant_id, job=job.name)
        try:
            await asyncio.wait_for(self._invoke(job, tenant_id), timeout=self.tenant_timeout)
            return True
        except asyncio.TimeoutError as e:
            logger.error(
                "tenant_run_timed_out",
                job=job.name,
                tenant_id=tenant_id,
                timeout_seconds=self.tenant_timeout,
            )
            scheduler_tenant_failures_total.labels(job=job.name).inc()
            error_tracker.capture_exception(e, context={"job": job.name, "tenant_id": tenant_id, "timeout": True})
            return False
        except Exception as e:
            logger.error(
                "tenant_run_failed",
                job=job.name,
                tenant_id=tenant_id,
                error=str(e),
                exc_info=True,
            )
            scheduler_tenant_failures_total.labels(job=job.name).inc()
            error_tracker.capture_exception(e, context={"job": job.name, "tenant_id": tenant_id})
            return False

    async def _invoke(self, job: Job, tenant_id: str) -> None:
        async with self._session_factory() as db:
            tenant = await db.get(Tenant, tenant_id)
            if tenant is None or not tenant.is_active:
                return
            await job.handler(db, tenant)


def build_jobs(
    orchestrator: EngagementOrchestrator | None = None,
    sync: CommentSync | None = None,
) -> list[Job]:
    """The engagement jobs with their configured intervals."""
    orchestrator = orchestrator or engagement_orchestrator
    sync = sync or comment_sync

    async def sync_comments(db: AsyncSession, tenant: Tenant) -> None:
        await sync.sync_tenant(db, tenant)

    async def auto_reply(db: AsyncSession, tenant: Tenant) -> None:
        await orchestrator.process_unreplied(db, tenant, limit=settings.auto_reply_batch_size)

    async def generate_leads(db: AsyncSession, tenant: Tenant) -> None:
        await orchestrator.generate_leads(db, tenant)

    return [
        Job(
            name=SYNC_COMMENTS,
            interval=settings.sync_interval_seconds,
            handler=sync_comments,
            tenant_filter=lambda: [
                or_(Tenant.instagram_enabled.is_(True), Tenant.facebook_enabled.is_(True))
            ],
        ),
        Job(
            name=AUTO_REPLY,
            interval=settings.auto_reply_interval_seconds,
            handler=auto_reply,
            tenant_filter=lambda: [Tenant.auto_reply_enabled.is_(True)],
        ),
        Job(
            name=GENERATE_LEADS,
            interval=settings.lead_generation_interval_seconds,
            handler=generate_leads,
            tenant_filter=lambda: [Tenant.lead_generation_enabled.is_(True)],
        ),
    ]


def create_scheduler(
    session_factory: async_sessionmaker[AsyncSession],
    orchestrator: EngagementOrchestrator | None = None,
    sync: CommentSync | None = None,
    job_lock: JobLock | None = None,
) -> Scheduler:
    return Scheduler(
        session_factory=session_factory,
        jobs=build_jobs(orchestrator, sync),
        tenant_timeout=settings.scheduler_tenant_timeout_seconds,
        job_lock=job_lock,
    )
