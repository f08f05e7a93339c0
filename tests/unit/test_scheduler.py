"""
Unit tests for the periodic job scheduler.

Jobs here use plain handlers so the scheduling guarantees are tested in
isolation from the engagement services.
"""

import asyncio

import fakeredis
import pytest

from engagehub.core.locks import JobLock
from engagehub.features.scheduling import scheduler as scheduler_module
from engagehub.features.scheduling.scheduler import (
    AUTO_REPLY,
    GENERATE_LEADS,
    SYNC_COMMENTS,
    Job,
    Scheduler,
    build_jobs,
)
from engagehub.models.tenant import Tenant, TenantStatus
from tests.factories import TenantFactory


def make_scheduler(
    session_factory, handler, tenant_filter=None, timeout: float = 1.0, job_lock=None, name: str = "sweep",
) -> Scheduler:
    job = Job(name=name, interval=60, handler=handler)
    if tenant_filter is not None:
        job.tenant_filter = tenant_filter
    return Scheduler(session_factory=session_factory, jobs=[job], tenant_timeout=timeout, job_lock=job_lock)


@pytest.fixture
def redis_server():
    return fakeredis.FakeServer()


def make_job_lock(server) -> JobLock:
    """A lock on its own client, as a separate worker process would hold."""
    return JobLock(client=fakeredis.FakeAsyncRedis(server=server, decode_responses=True), ttl=60)


@pytest.mark.unit
class TestRunJob:
    async def test_runs_every_active_tenant(self, session_factory, db_session):
        first = await TenantFactory.create(db_session, with_roles=False)
        second = await TenantFactory.create(db_session, with_roles=False)
        await TenantFactory.create(db_session, with_roles=False, status=TenantStatus.SUSPENDED.value)
        await TenantFactory.create(db_session, with_roles=False, status=TenantStatus.INACTIVE.value)
        seen = []

        async def handler(db, tenant):
            seen.append(tenant.id)

        result = await make_scheduler(session_factory, handler).run_job("sweep")

        assert result.skipped is False
        assert result.tenants_processed == 2
        assert result.tenants_failed == 0
        assert result.finished_at is not None
        assert sorted(seen) == sorted([first.id, second.id])

    async def test_tenant_filter(self, session_factory, db_session):
        enabled = await TenantFactory.create(db_session, with_roles=False, auto_reply_enabled=True)
        await TenantFactory.create(db_session, with_roles=False, auto_reply_enabled=False)
        seen = []

        async def handler(db, tenant):
            seen.append(tenant.id)

        scheduler = make_scheduler(
            session_factory,
            handler,
            tenant_filter=lambda: [Tenant.auto_reply_enabled.is_(True)],
        )
        await scheduler.run_job("sweep")

        assert seen == [enabled.id]

    async def test_failing_tenant_does_not_stop_the_sweep(self, session_factory, db_session):
        broken = await TenantFactory.create(db_session, with_roles=False)
        healthy = await TenantFactory.create(db_session, with_roles=False)
        seen = []

        async def handler(db, tenant):
            if tenant.id == broken.id:
                raise RuntimeError("boom")
            seen.append(tenant.id)

        result = await make_scheduler(session_factory, handler).run_job("sweep")

        assert result.tenants_processed == 1
        assert result.tenants_failed == 1
        assert seen == [healthy.id]

    async def test_stuck_tenant_times_out(self, session_factory, db_session):
        await TenantFactory.create(db_session, with_roles=False)

        async def handler(db, tenant):
            await asyncio.sleep(5)

        result = await make_scheduler(session_factory, handler, timeout=0.05).run_job("sweep")

        assert result.tenants_processed == 0
        assert result.tenants_failed == 1

    async def test_overlapping_run_is_skipped(self, session_factory, db_session):
        await TenantFactory.create(db_session, with_roles=False)
        entered = asyncio.Event()
        release = asyncio.Event()

        async def handler(db, tenant):
            entered.set()
            await release.wait()

        scheduler = make_scheduler(session_factory, handler)
        first = asyncio.create_task(scheduler.run_job("sweep"))
        await asyncio.wait_for(entered.wait(), timeout=1)

        assert scheduler.is_running("sweep") is True
        second = await scheduler.run_job("sweep")
        assert second.skipped is True
        assert second.tenants_processed == 0

        release.set()
        first_result = await first
        assert first_result.skipped is False
        assert first_result.tenants_processed == 1
        assert scheduler.is_running("sweep") is False

    async def test_unknown_job(self, session_factory):
        async def handler(db, tenant):
            pass

        with pytest.raises(ValueError):
            await make_scheduler(session_factory, handler).run_job("nope")


@pytest.mark.unit
class TestLifecycle:
    async def test_start_and_stop(self, session_factory):
        async def handler(db, tenant):
            pass

        scheduler = make_scheduler(session_factory, handler)
        scheduler.start()
        scheduler.start()

        assert scheduler.started is True
        job_state = scheduler.state()["jobs"]["sweep"]
        assert job_state["interval_seconds"] == 60
        assert job_state["running"] is False
        assert job_state["next_run_at"] is not None

        await scheduler.stop()
        assert scheduler.started is False
        assert scheduler.state()["jobs"]["sweep"]["next_run_at"] is None

    def test_engagement_jobs(self):
        assert [job.name for job in build_jobs()] == [SYNC_COMMENTS, AUTO_REPLY, GENERATE_LEADS]

    async def test_skipped_result_to_dict(self):
        scheduler = Scheduler(session_factory=None, jobs=[Job(name="sweep", interval=1, handler=None)])
        async with scheduler._locks["sweep"]:
            payload = (await scheduler.run_job("sweep")).to_dict()

        assert payload["job"] == "sweep"
        assert payload["skipped"] is True
        assert payload["status"] == "skipped"
        assert payload["finished_at"] is not None

    async def test_registers_jobs_with_apscheduler(self, session_factory):
        async def handler(db, tenant):
            pass

        scheduler = make_scheduler(session_factory, handler)
        scheduler.start()
        try:
            scheduled = scheduler._apscheduler.get_job("sweep")
            assert scheduled.max_instances == 1
            assert scheduled.coalesce is True
            assert scheduled.args == ("sweep",)
        finally:
            await scheduler.stop()


@pytest.mark.unit
class TestSweepFailure:
    async def test_failed_sweep_is_reported_not_raised(self, monkeypatch):
        captured = []
        monkeypatch.setattr(
            scheduler_module.error_tracker,
            "capture_exception",
            lambda error, context=None: captured.append((error, context)),
        )

        def unavailable():
            raise ConnectionError("database unavailable")

        async def handler(db, tenant):
            pass

        result = await make_scheduler(unavailable, handler).run_job("sweep")

        assert result.skipped is False
        assert result.status == "failed"
        assert result.error == "database unavailable"
        assert result.finished_at is not None
        assert result.to_dict()["status"] == "failed"
        assert len(captured) == 1
        assert captured[0][1] == {"job": "sweep"}

    async def test_failed_sweep_releases_the_lock(self, redis_server):
        def unavailable():
            raise ConnectionError("database unavailable")

        async def handler(db, tenant):
            pass

        job_lock = make_job_lock(redis_server)
        scheduler = make_scheduler(unavailable, handler, job_lock=job_lock)

        assert (await scheduler.run_job("sweep")).status == "failed"
        assert scheduler.is_running("sweep") is False
        async with job_lock.hold("sweep") as acquired:
            assert acquired is True


@pytest.mark.unit
class TestJobLock:
    async def test_second_holder_is_refused(self, redis_server):
        first = make_job_lock(redis_server)
        second = make_job_lock(redis_server)

        async with first.hold("auto_reply") as acquired:
            assert acquired is True
            async with second.hold("auto_reply") as contended:
                assert contended is False
            async with second.hold("sync_comments") as other_job:
                assert other_job is True

        async with second.hold("auto_reply") as released:
            assert released is True

    async def test_lock_expires(self, redis_server):
        job_lock = make_job_lock(redis_server)
        async with job_lock.hold("auto_reply"):
            ttl = await job_lock.client.ttl("engagehub:job-lock:auto_reply")

        assert 0 < ttl <= 60

    async def test_release_keeps_a_lock_taken_over_by_another_holder(self, redis_server):
        job_lock = make_job_lock(redis_server)
        async with job_lock.hold("auto_reply"):
            # Our key expired and another worker took the job over
            await job_lock.client.set("engagehub:job-lock:auto_reply", "someone-else")

        assert await job_lock.client.get("engagehub:job-lock:auto_reply") == "someone-else"

    async def test_two_schedulers_never_overlap(self, session_factory, db_session, redis_server):
        await TenantFactory.create(db_session, with_roles=False, auto_reply_enabled=True)
        entered = asyncio.Event()
        release = asyncio.Event()
        calls = []

        async def handler(db, tenant):
            calls.append(tenant.id)
            entered.set()
            await release.wait()

        worker_a = make_scheduler(session_factory, handler, job_lock=make_job_lock(redis_server), name=AUTO_REPLY)
        worker_b = make_scheduler(session_factory, handler, job_lock=make_job_lock(redis_server), name=AUTO_REPLY)

        first = asyncio.create_task(worker_a.run_job(AUTO_REPLY))
        await asyncio.wait_for(entered.wait(), timeout=1)

        second = await worker_b.run_job(AUTO_REPLY)
        assert second.skipped is True
        assert second.status == "skipped"
        assert second.tenants_processed == 0

        release.set()
        first_result = await first
        assert first_result.skipped is False
        assert first_result.tenants_processed == 1
        assert len(calls) == 1

        # Lock released: the other worker may run the next tick
        third = await worker_b.run_job(AUTO_REPLY)
        assert third.skipped is False
        assert third.tenants_processed == 1
