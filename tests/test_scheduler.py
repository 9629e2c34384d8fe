"""Tests for src/jobs/scheduler.py and src/jobs/registry.py."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from src.events import subscribe
from src.jobs.registry import build_jobs, setup_jobs
from src.jobs.scheduler import (
    JobNotFoundError,
    JobRegistrationError,
    JobScheduler,
    ScheduledJob,
)
from src.schemas.events import EventType
from src.schemas.jobs import JobResult


def _job(name="test-job", schedule="0 3 * * *", handler=None, **kwargs):
    handler = handler or AsyncMock(return_value=JobResult(success=True, message="done", details={"count": 2}))
    return ScheduledJob(name=name, schedule=schedule, handler=handler, **kwargs)


# ── Registration ─────────────────────────────────────────────────────


class TestRegister:
    """Duplicate names and malformed cron expressions are rejected."""

    def test_register(self):
        scheduler = JobScheduler(timezone="UTC")
        scheduler.register(_job())

        status = scheduler.get_status()
        assert status.total_jobs == 1
        assert status.enabled_jobs == 1
        assert status.jobs[0].name == "test-job"

    def test_duplicate_name(self):
        scheduler = JobScheduler(timezone="UTC")
        scheduler.register(_job())

        with pytest.raises(JobRegistrationError, match="already registered"):
            scheduler.register(_job())

    @pytest.mark.parametrize("schedule", ["not a cron", "61 3 * * *", "0 3 * *"])
    def test_invalid_cron(self, schedule):
        scheduler = JobScheduler(timezone="UTC")

        with pytest.raises(JobRegistrationError, match="Invalid cron expression"):
            scheduler.register(_job(schedule=schedule))

        assert scheduler.get_status().total_jobs == 0


# ── Execution ────────────────────────────────────────────────────────


class TestRunNow:
    """Manual triggering and result bookkeeping."""

    @pytest.mark.asyncio()
    async def test_records_last_result(self):
        scheduler = JobScheduler(timezone="UTC")
        scheduler.register(_job())

        result = await scheduler.run_now("test-job")

        assert result.success is True
        status = scheduler.get_job_status("test-job")
        assert status.last_result == result
        assert status.last_run is not None
        assert status.is_running is False

    @pytest.mark.asyncio()
    async def test_unknown_job(self):
        with pytest.raises(JobNotFoundError):
            await JobScheduler(timezone="UTC").run_now("nope")

    @pytest.mark.asyncio()
    async def test_handler_exception_becomes_failed_result(self):
        scheduler = JobScheduler(timezone="UTC")
        scheduler.register(_job(handler=AsyncMock(side_effect=RuntimeError("kaboom"))))

        result = await scheduler.run_now("test-job")

        assert result.success is False
        assert result.message == "kaboom"
        assert "RuntimeError" in result.details["error"]
        assert scheduler.get_job_status("test-job").is_running is False

    @pytest.mark.asyncio()
    async def test_overlapping_run_is_skipped(self):
        started = asyncio.Event()
        release = asyncio.Event()
        calls = 0

        async def _slow():
            nonlocal calls
            calls += 1
            started.set()
            await release.wait()
            return JobResult(success=True, message="slow done")

        scheduler = JobScheduler(timezone="UTC")
        scheduler.register(_job(handler=_slow))

        first = asyncio.create_task(scheduler.run_now("test-job"))
        await started.wait()
        assert scheduler.get_job_status("test-job").is_running is True

        second = await scheduler.run_now("test-job")
        release.set()
        first_result = await first

        assert second.success is False
        assert second.message == "Job is already running"
        assert first_result.message == "slow done"
        assert calls == 1

    def test_unknown_status_is_none(self):
        assert JobScheduler(timezone="UTC").get_job_status("nope") is None


# ── Events ───────────────────────────────────────────────────────────


class TestEvents:
    """Each run ends with job.completed or job.failed."""

    @pytest.mark.asyncio()
    async def test_completed_event(self):
        seen = []

        async def _capture(event):
            seen.append(event)

        subscribe(_capture)
        scheduler = JobScheduler(timezone="UTC")
        scheduler.register(_job())

        await scheduler.run_now("test-job")

        assert len(seen) == 1
        event = seen[0]
        assert event.event_type is EventType.JOB_COMPLETED
        assert event.job_name == "test-job"
        assert event.data["message"] == "done"
        assert event.data["count"] == 2
        assert event.data["duration_ms"] >= 0

    @pytest.mark.asyncio()
    async def test_failed_event(self):
        scheduler = JobScheduler(timezone="UTC")
        scheduler.register(_job(handler=AsyncMock(return_value=JobResult(success=False, message="bad"))))

        with patch("src.jobs.scheduler.emit", new_callable=AsyncMock) as mock_emit:
            await scheduler.run_now("test-job")

        event = mock_emit.call_args[0][0]
        assert event.event_type is EventType.JOB_FAILED
        assert event.data["message"] == "bad"


# ── Lifecycle ────────────────────────────────────────────────────────


class TestLifecycle:
    """start() schedules enabled jobs only."""

    @pytest.mark.asyncio()
    async def test_start_and_stop(self):
        scheduler = JobScheduler(timezone="UTC")
        scheduler.register(_job(name="on"))
        scheduler.register(_job(name="off", enabled=False))

        scheduler.start()
        try:
            assert scheduler.get_job_status("on").next_run is not None
            assert scheduler.get_job_status("off").next_run is None
            assert scheduler.get_status().enabled_jobs == 1
        finally:
            scheduler.stop()

    def test_stop_without_start(self):
        JobScheduler(timezone="UTC").stop()


# ── Registry ─────────────────────────────────────────────────────────


class TestRegistry:
    """The three compliance jobs with their default schedules."""

    def test_build_jobs(self, store):
        jobs = {job.name: job for job in build_jobs(store)}

        assert jobs["finalize-deletions"].schedule == "30 4 * * *"
        assert jobs["anonymize-audit-logs"].schedule == "0 3 * * *"
        assert jobs["delete-audit-logs"].schedule == "30 3 * * 0"
        assert all(job.description for job in jobs.values())

    def test_setup_jobs_without_start(self, store):
        scheduler = setup_jobs(store, auto_start=False)

        status = scheduler.get_status()
        assert status.total_jobs == 3
        assert {j.name for j in status.jobs} == {
            "finalize-deletions",
            "anonymize-audit-logs",
            "delete-audit-logs",
        }

    @pytest.mark.asyncio()
    async def test_registered_handler_runs_against_store(self, store, now):
        scheduler = setup_jobs(store, auto_start=False)

        result = await scheduler.run_now("finalize-deletions")

        assert result.success is True
        assert result.details["total_requests"] == 0
