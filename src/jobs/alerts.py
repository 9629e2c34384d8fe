"""Job alerting — turns failed-job events into error-level log records.

Subscribed to `job.failed` only. Log shipping and paging hang off the
error log stream.
"""

from __future__ import annotations

import logging

from src.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

WATCHED_TYPES: list[EventType] = [EventType.JOB_FAILED]


async def alert_on_job_failure(event: SystemEvent) -> None:
    """Log a failed job run with the errors it reported."""
    if event.event_type is not EventType.JOB_FAILED:
        return

    errors = event.data.get("errors") or ([event.data["error"]] if "error" in event.data else [])
    logger.error(
        "ALERT job %s failed: %s (%d errors)",
        event.job_name,
        event.data.get("message", ""),
        len(errors),
    )
    for error in errors:
        logger.error("ALERT job %s: %s", event.job_name, error)
