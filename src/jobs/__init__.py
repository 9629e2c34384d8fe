"""Scheduled job runner for the compliance engine."""

from src.jobs.registry import build_jobs, setup_jobs
from src.jobs.scheduler import JobNotFoundError, JobRegistrationError, JobScheduler, ScheduledJob

__all__ = [
    "JobNotFoundError",
    "JobRegistrationError",
    "JobScheduler",
    "ScheduledJob",
    "build_jobs",
    "setup_jobs",
]
