"""Job result schemas — the contract handed to the scheduler and alerting."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class JobResult(BaseModel):
    """Outcome of a single job invocation.

    `details` is job-specific; see the `*Details` models below.
    """

    success: bool
    message: str = ""
    details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def failure(cls, message: str, error: BaseException | str) -> JobResult:
        """Build the run-level failure result."""
        return cls(success=False, message=message, details={"error": str(error)})


class FinalizationDetails(BaseModel):
    """Details reported by the deletion finalization job."""

    total_requests: int
    processed_count: int
    anonymized_count: int
    deleted_count: int
    grace_period_days: int
    errors: list[str] | None = None


class AuditSweepDetails(BaseModel):
    """Details reported by the audit retention sweep."""

    anonymized_count: int
    metadata_anonymized: int
    cutoff_date: str
    retention_years: int
    errors: list[str] | None = None


class AuditPurgeDetails(BaseModel):
    """Details reported by the audit log purge."""

    deleted_count: int
    cutoff_date: str
    retention_years: int


class JobStatus(BaseModel):
    """Scheduler view of one registered job."""

    name: str
    description: str | None = None
    schedule: str
    enabled: bool
    is_running: bool
    last_run: datetime | None = None
    next_run: datetime | None = None
    last_result: JobResult | None = None


class SchedulerStatus(BaseModel):
    """Scheduler view of all registered jobs."""

    total_jobs: int
    enabled_jobs: int
    running_jobs: int
    jobs: list[JobStatus]
