"""Deletion finalization job — daily cron job.

Finds deletion requests whose grace period has elapsed and hands each one
to the record processor, one at a time. Eligibility is recomputed from
`requested_at` on every run, so a missed tick is caught up by the next one
and a repeated tick finds nothing left to do.
"""

from __future__ import annotations

from datetime import UTC, datetime

import structlog

from src.compliance.policy import grace_period_cutoff
from src.compliance.processor import RecordProcessor
from src.compliance.report import BatchTally
from src.compliance.store import ComplianceStore
from src.config import settings
from src.schemas.jobs import JobResult

logger = structlog.get_logger(__name__)


class DeletionFinalizationJob:
    """Executes account deletions past the grace period."""

    name = "finalize-deletions"
    description = "Execute scheduled user deletions past the grace period"

    def __init__(
        self,
        store: ComplianceStore,
        processor: RecordProcessor | None = None,
        grace_period_days: int | None = None,
    ) -> None:
        self._store = store
        self._processor = processor or RecordProcessor(store)
        self.grace_period_days = (
            grace_period_days if grace_period_days is not None else settings.compliance.grace_period_days
        )

    async def run(self, now: datetime | None = None) -> JobResult:
        """Process every eligible request. Never raises."""
        now = now or datetime.now(UTC)
        log = logger.bind(job=self.name)

        try:
            log.info("Starting finalization of scheduled deletions")

            cutoff = grace_period_cutoff(now, self.grace_period_days)
            requests = await self._store.find_eligible_deletion_requests(cutoff)
            log.debug("Found deletion requests to process", count=len(requests))

            tally = BatchTally(grace_period_days=self.grace_period_days, total_requests=len(requests))
            # Sequential on purpose: bounded store load, one failure per record
            for request in requests:
                tally.add(await self._processor.process(request, now, log=log))

        except Exception as exc:
            log.exception("Failed to finalize deletions")
            return JobResult.failure("Failed to finalize deletions", exc)

        log.info(
            "Deletion finalization completed",
            total_requests=tally.total_requests,
            processed_count=tally.processed_count,
            anonymized_count=tally.anonymized_count,
            deleted_count=tally.deleted_count,
            errors=len(tally.errors),
        )
        return tally.to_result()
