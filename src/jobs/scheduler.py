"""Cron scheduler for the compliance jobs.

Wraps APScheduler's AsyncIOScheduler. Each registered job runs on its cron
expression in UTC. The scheduler guarantees that two runs of the same job
never overlap (a scheduled tick and a manual `run_now` included), which
the batch jobs rely on instead of locking.

Never raises out of a job execution: handler exceptions become a failed
JobResult and a `job.failed` event.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.config import settings
from src.events import emit
from src.schemas.events import EventType, SystemEvent
from src.schemas.jobs import JobResult, JobStatus, SchedulerStatus

logger = logging.getLogger(__name__)

JobHandler = Callable[[], Awaitable[JobResult]]


class JobRegistrationError(Exception):
    """Raised when a job cannot be registered (duplicate name, bad cron)."""


class JobNotFoundError(Exception):
    """Raised when a job name is not registered."""


@dataclass
class ScheduledJob:
    """A job definition plus its last execution state."""

    name: str
    schedule: str  # crontab: minute hour day month day_of_week
    handler: JobHandler
    enabled: bool = True
    description: str | None = None
    last_run: datetime | None = None
    last_result: JobResult | None = None


class JobScheduler:
    """Registers jobs, fires them on their cron schedule, tracks their results."""

    def __init__(self, timezone: str | None = None) -> None:
        self._timezone = timezone or settings.compliance.scheduler_timezone
        self._scheduler = AsyncIOScheduler(timezone=self._timezone)
        self._jobs: dict[str, ScheduledJob] = {}
        self._triggers: dict[str, CronTrigger] = {}
        self._running: set[str] = set()

    # ── Registration ─────────────────────────────────────────────────

    def register(self, job: ScheduledJob) -> None:
        if job.name in self._jobs:
            msg = f'Job with name "{job.name}" is already registered'
            raise JobRegistrationError(msg)

        try:
            trigger = CronTrigger.from_crontab(job.schedule, timezone=self._timezone)
        except ValueError as exc:
            msg = f'Invalid cron expression for job "{job.name}": {job.schedule}'
            raise JobRegistrationError(msg) from exc

        self._jobs[job.name] = job
        self._triggers[job.name] = trigger
        logger.info("Registered job: %s (%s, enabled=%s)", job.name, job.schedule, job.enabled)

    # ── Lifecycle ────────────────────────────────────────────────────

    def start(self) -> None:
        """Schedule every enabled job. Must be called from a running event loop."""
        for name, job in self._jobs.items():
            if not job.enabled:
                logger.debug("Skipping disabled job: %s", name)
                continue
            self._scheduler.add_job(
                self._execute,
                self._triggers[name],
                args=[name],
                id=name,
                name=name,
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
            logger.info("Scheduled job: %s", name)

        self._scheduler.start()
        logger.info("Job scheduler started with %d active jobs", len(self._scheduler.get_jobs()))

    def stop(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        logger.info("Job scheduler stopped")

    # ── Execution ────────────────────────────────────────────────────

    async def run_now(self, name: str) -> JobResult:
        """Trigger a job immediately, outside its schedule."""
        if name not in self._jobs:
            msg = f'Job "{name}" not found'
            raise JobNotFoundError(msg)

        logger.info("Manually triggering job: %s", name)
        return await self._execute(name)

    async def _execute(self, name: str) -> JobResult:
        job = self._jobs[name]

        if name in self._running:
            logger.warning('Job "%s" is already running, skipping execution', name)
            return JobResult(success=False, message="Job is already running")

        self._running.add(name)
        started = time.monotonic()
        logger.info("Starting job execution: %s", name)

        try:
            result = await job.handler()
        except Exception as exc:
            logger.exception("Job failed: %s", name)
            result = JobResult(success=False, message=str(exc) or type(exc).__name__, details={"error": repr(exc)})
        finally:
            self._running.discard(name)

        duration_ms = int((time.monotonic() - started) * 1000)
        job.last_run = datetime.now(UTC)
        job.last_result = result

        if result.success:
            logger.info("Job completed successfully: %s (%dms) %s", name, duration_ms, result.message)
        else:
            logger.warning("Job completed with errors: %s (%dms) %s", name, duration_ms, result.message)

        await emit(SystemEvent(
            event_type=EventType.JOB_COMPLETED if result.success else EventType.JOB_FAILED,
            job_name=name,
            data={"message": result.message, "duration_ms": duration_ms, **result.details},
            source_module="jobs.scheduler",
        ))
        return result

    # ── Status ───────────────────────────────────────────────────────

    def get_job_status(self, name: str) -> JobStatus | None:
        job = self._jobs.get(name)
        if job is None:
            return None

        scheduled = self._scheduler.get_job(name)
        return JobStatus(
            name=job.name,
            description=job.description,
            schedule=job.schedule,
            enabled=job.enabled,
            is_running=name in self._running,
            last_run=job.last_run,
            next_run=getattr(scheduled, "next_run_time", None),
            last_result=job.last_result,
        )

    def get_status(self) -> SchedulerStatus:
        statuses = [self.get_job_status(name) for name in self._jobs]
        return SchedulerStatus(
            total_jobs=len(self._jobs),
            enabled_jobs=sum(1 for job in self._jobs.values() if job.enabled),
            running_jobs=len(self._running),
            jobs=[s for s in statuses if s is not None],
        )
