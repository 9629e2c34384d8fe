"""Store contract for the compliance jobs.

Every method is one independent, committed unit of work on its own
AsyncSession. There is no transaction spanning calls, so callers may run
calls against disjoint tables concurrently and must tolerate partial
effects when one of them fails.
"""

from __future__ import annotations

import contextlib
import logging
import uuid
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.models.audit import AuditLog
from src.models.base import Base
from src.models.deletion import DataDeletionRequest
from src.models.enums import DeletionRequestStatus
from src.models.user import User

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when a store call fails at the database layer."""

    def __init__(self, operation: str, cause: BaseException) -> None:
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation


class ComplianceStore:
    """Reads and writes used by the deletion and audit retention jobs."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @contextlib.asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Open a session, commit on success, translate driver errors."""
        try:
            async with self._session_factory() as db:
                yield db
                await db.commit()
        except SQLAlchemyError as exc:
            raise StoreError(operation, exc) from exc

    # ── Deletion requests ────────────────────────────────────────────

    async def find_eligible_deletion_requests(self, cutoff: datetime) -> list[DataDeletionRequest]:
        """Pending requests whose `requested_at` is at or before the cutoff."""
        async with self._session("find eligible deletion requests") as db:
            result = await db.execute(
                select(DataDeletionRequest)
                .where(
                    DataDeletionRequest.status == DeletionRequestStatus.PENDING.value,
                    DataDeletionRequest.requested_at <= cutoff,
                )
                .order_by(DataDeletionRequest.requested_at)
            )
            return list(result.scalars().all())

    async def complete_deletion_request(self, request_id: uuid.UUID, now: datetime) -> bool:
        """Move a request to COMPLETED.

        Guarded on PENDING: a request cancelled or completed in the meantime
        is left as is and False is returned.
        """
        async with self._session("complete deletion request") as db:
            result = await db.execute(
                update(DataDeletionRequest)
                .where(
                    DataDeletionRequest.id == request_id,
                    DataDeletionRequest.status == DeletionRequestStatus.PENDING.value,
                )
                .values(status=DeletionRequestStatus.COMPLETED.value, completed_at=now)
            )
            return result.rowcount > 0  # type: ignore[attr-defined]

    # ── Users ────────────────────────────────────────────────────────

    async def get_user(self, user_id: uuid.UUID) -> User | None:
        async with self._session("load user") as db:
            return await db.get(User, user_id)

    async def update_user(self, user_id: uuid.UUID, values: dict[str, Any]) -> int:
        async with self._session("update user") as db:
            result = await db.execute(update(User).where(User.id == user_id).values(**values))
            return result.rowcount  # type: ignore[attr-defined]

    async def delete_user(self, user_id: uuid.UUID) -> int:
        """Delete the user row; FK cascades remove the rows it owns."""
        async with self._session("delete user") as db:
            result = await db.execute(delete(User).where(User.id == user_id))
            return result.rowcount  # type: ignore[attr-defined]

    async def delete_owned_rows(self, model: type[Base], user_id: uuid.UUID) -> int:
        """Delete every row of `model` owned by the user."""
        table = model.__tablename__
        async with self._session(f"delete {table}") as db:
            result = await db.execute(delete(model).where(model.user_id == user_id))  # type: ignore[attr-defined]
            count = result.rowcount  # type: ignore[attr-defined]
        logger.debug("Deleted %d %s rows for user %s", count, table, user_id)
        return count

    async def detach_audit_logs(self, user_id: uuid.UUID) -> int:
        """Null out the user reference on the user's audit entries (kept, not deleted)."""
        async with self._session("detach audit logs") as db:
            result = await db.execute(
                update(AuditLog).where(AuditLog.user_id == user_id).values(user_id=None)
            )
            return result.rowcount  # type: ignore[attr-defined]

    # ── Audit log retention ──────────────────────────────────────────

    async def clear_audit_identity(self, cutoff: datetime) -> int:
        """Set-based clear of identifying columns on aged entries.

        Matches any entry that still carries one of them, including entries
        already detached from their user by a deletion.
        """
        async with self._session("clear audit identity") as db:
            result = await db.execute(
                update(AuditLog)
                .where(
                    AuditLog.created_at < cutoff,
                    or_(
                        AuditLog.user_id.isnot(None),
                        AuditLog.ip_address.isnot(None),
                        AuditLog.user_agent.isnot(None),
                    ),
                )
                .values(user_id=None, ip_address=None, user_agent=None)
            )
            return result.rowcount  # type: ignore[attr-defined]

    async def find_audit_metadata(self, cutoff: datetime) -> list[tuple[uuid.UUID, dict[str, Any]]]:
        """(id, metadata) of aged entries that still carry a metadata bag."""
        async with self._session("find audit metadata") as db:
            result = await db.execute(
                select(AuditLog.id, AuditLog.metadata_).where(
                    AuditLog.created_at < cutoff,
                    AuditLog.metadata_.isnot(None),
                )
            )
            return [(row[0], row[1]) for row in result.all()]

    async def update_audit_metadata(self, entry_id: uuid.UUID, metadata: dict[str, Any]) -> None:
        async with self._session("update audit metadata") as db:
            await db.execute(
                update(AuditLog).where(AuditLog.id == entry_id).values({AuditLog.metadata_: metadata})
            )

    async def delete_audit_logs_before(self, cutoff: datetime) -> int:
        async with self._session("delete audit logs") as db:
            result = await db.execute(delete(AuditLog).where(AuditLog.created_at < cutoff))
            return result.rowcount  # type: ignore[attr-defined]
