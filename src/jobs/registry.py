"""Wiring of the compliance jobs into a JobScheduler."""

from __future__ import annotations

import logging

from src.compliance.audit_sweep import AuditLogPurgeJob, AuditRetentionSweeper
from src.compliance.finalization import DeletionFinalizationJob
from src.compliance.store import ComplianceStore
from src.config import settings
from src.jobs.scheduler import JobScheduler, ScheduledJob

logger = logging.getLogger(__name__)


def build_jobs(store: ComplianceStore) -> list[ScheduledJob]:
    """Job definitions with their configured cron schedules."""
    cfg = settings.compliance
    finalization = DeletionFinalizationJob(store)
    sweeper = AuditRetentionSweeper(store)
    purge = AuditLogPurgeJob(store)

    return [
        ScheduledJob(
            name=sweeper.name,
            schedule=cfg.anonymize_audit_logs_schedule,
            handler=sweeper.run,
            description=sweeper.description,
        ),
        ScheduledJob(
            name=purge.name,
            schedule=cfg.delete_audit_logs_schedule,
            handler=purge.run,
            description=purge.description,
        ),
        ScheduledJob(
            name=finalization.name,
            schedule=cfg.finalize_deletions_schedule,
            handler=finalization.run,
            description=finalization.description,
        ),
    ]


def setup_jobs(store: ComplianceStore, *, auto_start: bool = True) -> JobScheduler:
    """Create a scheduler with every compliance job registered.

    Usage:
        scheduler = setup_jobs(ComplianceStore(async_session_factory))
        ...
        scheduler.stop()
    """
    scheduler = JobScheduler()
    jobs = build_jobs(store)
    for job in jobs:
        scheduler.register(job)

    logger.info("Registered %d jobs with scheduler: %s", len(jobs), [j.name for j in jobs])

    if auto_start:
        scheduler.start()
    return scheduler
