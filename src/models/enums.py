"""Domain enums used across SQLAlchemy models and the compliance engine.

All enums use str mixin for JSON serialization.
"""

from __future__ import annotations

from enum import Enum


class DeletionRequestStatus(str, Enum):
    """Account deletion request lifecycle.

    PENDING → COMPLETED is driven by the finalization job; PENDING → CANCELLED
    by the user. COMPLETED and CANCELLED are terminal.
    """

    PENDING = "pending"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class DestructionMode(str, Enum):
    """How a user's data is destroyed once their grace period has elapsed."""

    ANONYMIZE = "anonymize"  # scrub PII, keep contributions under a sentinel name
    FULL_DELETE = "full_delete"  # drop the user row and everything it owns
