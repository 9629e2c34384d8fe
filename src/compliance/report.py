"""Job report aggregation for the deletion finalization batch.

A BatchTally is created per run and folded over the record outcomes, so
the job keeps no counters between runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from src.compliance.processor import RecordOutcome
from src.models.enums import DestructionMode
from src.schemas.jobs import FinalizationDetails, JobResult


@dataclass
class BatchTally:
    """Running totals for one finalization run."""

    grace_period_days: int
    total_requests: int = 0
    processed_count: int = 0
    anonymized_count: int = 0
    deleted_count: int = 0
    errors: list[str] = field(default_factory=list)

    def add(self, outcome: RecordOutcome) -> None:
        if outcome.error is not None:
            self.errors.append(outcome.error)
            return
        if not outcome.processed:
            return

        self.processed_count += 1
        if outcome.mode is DestructionMode.ANONYMIZE:
            self.anonymized_count += 1
        elif outcome.mode is DestructionMode.FULL_DELETE:
            self.deleted_count += 1

    @property
    def details(self) -> FinalizationDetails:
        return FinalizationDetails(
            total_requests=self.total_requests,
            processed_count=self.processed_count,
            anonymized_count=self.anonymized_count,
            deleted_count=self.deleted_count,
            grace_period_days=self.grace_period_days,
            errors=list(self.errors) or None,
        )

    def to_result(self) -> JobResult:
        return JobResult(
            success=not self.errors,
            message=(
                f"Processed {self.processed_count} deletion requests "
                f"({self.anonymized_count} anonymized, {self.deleted_count} deleted)"
            ),
            details=self.details.model_dump(exclude_none=True),
        )
