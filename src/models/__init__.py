"""SQLAlchemy ORM models for the compliance engine.

Import all models here so Alembic and Base.metadata.create_all() discover them.
"""

from __future__ import annotations

from src.models.audit import AuditLog
from src.models.base import Base
from src.models.consent import ConsentRecord
from src.models.deletion import DataDeletionRequest
from src.models.enums import DeletionRequestStatus, DestructionMode
from src.models.notification import Notification
from src.models.tokens import PushToken, RefreshToken
from src.models.user import User

__all__ = [
    # Base
    "Base",
    # Models
    "User",
    "DataDeletionRequest",
    "AuditLog",
    "ConsentRecord",
    "PushToken",
    "RefreshToken",
    "Notification",
    # Enums
    "DeletionRequestStatus",
    "DestructionMode",
]
