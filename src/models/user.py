"""User model — a marketplace member.

Deletion is two-staged: anonymization scrubs PII in place and stamps
`anonymized_at`/`deleted_at`; full deletion removes the row and relies on
FK cascades for owned rows.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin


class User(TimestampMixin, Base):
    """A registered member of the marketplace."""

    __tablename__ = "users"

    # Profile (PII)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    bio: Mapped[str | None] = mapped_column(Text)
    avatar_url: Mapped[str | None] = mapped_column(String(500))

    # Privacy preferences
    show_email_on_profile: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    include_in_search: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    show_activity_publicly: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Terminal markers
    anonymized_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<User id={self.id} anonymized={self.anonymized_at is not None}>"
