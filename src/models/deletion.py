"""DataDeletionRequest model — deferred account deletion with a grace period."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin
from src.models.enums import DeletionRequestStatus


class DataDeletionRequest(TimestampMixin, Base):
    """A user's request to leave the platform.

    Eligibility is derived from `requested_at`; `scheduled_for` is written by
    the request flow for display only.
    """

    __tablename__ = "data_deletion_requests"

    # Nulled when the user row is removed
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), index=True
    )

    # Status tracking
    status: Mapped[str] = mapped_column(
        String(20), default=DeletionRequestStatus.PENDING.value, nullable=False, index=True
    )
    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    scheduled_for: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # {"anonymizeContributions": bool}, written by the request flow
    options: Mapped[dict[str, Any] | None] = mapped_column(JSONB)

    def __repr__(self) -> str:
        return f"<DataDeletionRequest user={self.user_id} status={self.status}>"
