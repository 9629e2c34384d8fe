"""Audit log retention — daily anonymization sweep and weekly purge.

Two tiers:
- After `audit_retention_years` (1): identifying columns are cleared and PII
  keys are stripped from the metadata bag. The entry itself is kept.
- After `audit_purge_years` (3): the entry is deleted.

Both are safe to call on every schedule tick: the predicates only match rows
that still need work, so running twice is harmless.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

import structlog

from src.compliance.policy import retention_cutoff, scrub_metadata
from src.compliance.store import ComplianceStore
from src.config import settings
from src.schemas.jobs import AuditPurgeDetails, AuditSweepDetails, JobResult

logger = structlog.get_logger(__name__)


class AuditRetentionSweeper:
    """Anonymizes audit entries older than the retention window."""

    name = "anonymize-audit-logs"
    description = "Anonymize audit logs older than the retention window"

    def __init__(
        self,
        store: ComplianceStore,
        retention_years: int | None = None,
        pii_keys: Sequence[str] | None = None,
    ) -> None:
        self._store = store
        self.retention_years = (
            retention_years if retention_years is not None else settings.compliance.audit_retention_years
        )
        self.pii_keys = tuple(pii_keys if pii_keys is not None else settings.compliance.metadata_pii_keys)

    async def run(self, now: datetime | None = None) -> JobResult:
        """Run both phases. Never raises."""
        now = now or datetime.now(UTC)
        log = logger.bind(job=self.name)
        cutoff = retention_cutoff(now, self.retention_years)

        try:
            log.info("Starting anonymization of old audit logs", cutoff=cutoff.isoformat())

            # Phase 1: one set-based update for user/ip/agent
            anonymized_count = await self._store.clear_audit_identity(cutoff)

            # Phase 2: metadata is an open JSON bag, sanitized entry by entry
            entries = await self._store.find_audit_metadata(cutoff)
        except Exception as exc:
            log.exception("Failed to anonymize audit logs")
            return JobResult.failure("Failed to anonymize audit logs", exc)

        metadata_anonymized = 0
        errors: list[str] = []
        for entry_id, metadata in entries:
            if not isinstance(metadata, dict):
                continue
            sanitized, changed = scrub_metadata(metadata, self.pii_keys)
            if not changed:
                continue
            try:
                await self._store.update_audit_metadata(entry_id, sanitized)
            except Exception as exc:
                error = f"Failed to sanitize metadata for audit log {entry_id}: {exc}"
                errors.append(error)
                log.error(error)
                continue
            metadata_anonymized += 1

        details = AuditSweepDetails(
            anonymized_count=anonymized_count,
            metadata_anonymized=metadata_anonymized,
            cutoff_date=cutoff.isoformat(),
            retention_years=self.retention_years,
            errors=errors or None,
        )
        log.info(
            "Anonymization completed",
            anonymized_count=anonymized_count,
            metadata_anonymized=metadata_anonymized,
            errors=len(errors),
        )
        return JobResult(
            success=not errors,
            message=(
                f"Anonymized {anonymized_count} audit logs, "
                f"sanitized metadata in {metadata_anonymized} logs"
            ),
            details=details.model_dump(exclude_none=True),
        )


class AuditLogPurgeJob:
    """Deletes audit entries older than the purge window."""

    name = "delete-audit-logs"
    description = "Delete audit logs older than the purge window"

    def __init__(self, store: ComplianceStore, purge_years: int | None = None) -> None:
        self._store = store
        self.purge_years = purge_years if purge_years is not None else settings.compliance.audit_purge_years

    async def run(self, now: datetime | None = None) -> JobResult:
        now = now or datetime.now(UTC)
        log = logger.bind(job=self.name)
        cutoff = retention_cutoff(now, self.purge_years)

        try:
            log.info("Starting deletion of very old audit logs", cutoff=cutoff.isoformat())
            deleted_count = await self._store.delete_audit_logs_before(cutoff)
        except Exception as exc:
            log.exception("Failed to delete old audit logs")
            return JobResult.failure("Failed to delete old audit logs", exc)

        log.info("Deletion completed", deleted_count=deleted_count)
        details = AuditPurgeDetails(
            deleted_count=deleted_count,
            cutoff_date=cutoff.isoformat(),
            retention_years=self.purge_years,
        )
        return JobResult(
            success=True,
            message=f"Deleted {deleted_count} audit logs older than {self.purge_years} years",
            details=details.model_dump(),
        )
