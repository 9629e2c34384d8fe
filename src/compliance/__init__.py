"""Compliance data-lifecycle engine — deletion finalization and audit retention."""

from src.compliance.audit_sweep import AuditLogPurgeJob, AuditRetentionSweeper
from src.compliance.finalization import DeletionFinalizationJob
from src.compliance.processor import RecordOutcome, RecordProcessor
from src.compliance.store import ComplianceStore, StoreError

__all__ = [
    "AuditLogPurgeJob",
    "AuditRetentionSweeper",
    "ComplianceStore",
    "DeletionFinalizationJob",
    "RecordOutcome",
    "RecordProcessor",
    "StoreError",
]
