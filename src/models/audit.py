"""AuditLog model — security and privacy event trail.

Entries are append-only for their first year. After that the retention
sweeper clears identifying columns and PII metadata keys; after the purge
window they are deleted outright.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import ForeignKey, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, IdentityMixin


class AuditLog(IdentityMixin, Base):
    """Audit trail entry."""

    __tablename__ = "audit_logs"

    # Nulled on account deletion and on retention sweep
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), index=True
    )

    action: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    ip_address: Mapped[str | None] = mapped_column(String(45))
    user_agent: Mapped[str | None] = mapped_column(String(500))

    # `metadata` is reserved on declarative classes
    metadata_: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONB(none_as_null=True))

    def __repr__(self) -> str:
        return f"<AuditLog action={self.action} user={self.user_id}>"
