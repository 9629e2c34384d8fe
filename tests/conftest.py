"""Shared fixtures: an in-memory stand-in for ComplianceStore.

FakeStore mirrors ComplianceStore's method surface and predicates
(`requested_at <= cutoff`, `created_at < cutoff`, guarded completion, FK
cascade / SET NULL on user delete) so batch-level behaviour can be tested
without PostgreSQL. Failures are injected per operation and per user.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any

import pytest

from src.events import clear_subscribers
from src.models.enums import DeletionRequestStatus

NOW = datetime(2026, 3, 15, 4, 30, tzinfo=UTC)

OWNED_TABLES = ("push_tokens", "refresh_tokens", "consent_records", "notifications")


class FakeStore:
    """In-memory tables plus the ComplianceStore methods used by the jobs."""

    def __init__(self) -> None:
        self.users: dict[uuid.UUID, SimpleNamespace] = {}
        self.requests: dict[uuid.UUID, SimpleNamespace] = {}
        self.audit_logs: dict[uuid.UUID, SimpleNamespace] = {}
        self.owned: dict[str, list[SimpleNamespace]] = {t: [] for t in OWNED_TABLES}
        self._failures: dict[tuple[str, Any], Exception] = {}
        self.calls: list[str] = []

    # ── Seeding ──────────────────────────────────────────────────────

    def add_user(self, *, with_personal_data: bool = True, **fields: Any) -> SimpleNamespace:
        user_id = fields.pop("id", None) or uuid.uuid4()
        user = SimpleNamespace(
            id=user_id,
            email=f"user-{user_id.hex[:8]}@example.com",
            name="Ada Lovelace",
            bio="Builds engines",
            avatar_url="https://cdn.example.com/ada.png",
            anonymized_at=None,
            deleted_at=None,
            show_email_on_profile=True,
            include_in_search=True,
            show_activity_publicly=True,
        )
        for key, value in fields.items():
            setattr(user, key, value)
        self.users[user_id] = user
        if with_personal_data:
            for table in OWNED_TABLES:
                self.owned[table].append(SimpleNamespace(id=uuid.uuid4(), user_id=user_id))
        return user

    def add_request(
        self,
        user_id: uuid.UUID | None,
        requested_at: datetime,
        *,
        status: str = DeletionRequestStatus.PENDING.value,
        options: dict[str, Any] | None = None,
    ) -> SimpleNamespace:
        request = SimpleNamespace(
            id=uuid.uuid4(),
            user_id=user_id,
            status=status,
            requested_at=requested_at,
            scheduled_for=None,
            completed_at=None,
            options=options,
        )
        self.requests[request.id] = request
        return request

    def add_audit_log(
        self,
        created_at: datetime,
        *,
        user_id: uuid.UUID | None = None,
        ip_address: str | None = "203.0.113.7",
        user_agent: str | None = "Mozilla/5.0",
        metadata: dict[str, Any] | None = None,
    ) -> SimpleNamespace:
        entry = SimpleNamespace(
            id=uuid.uuid4(),
            user_id=user_id,
            action="auth.login",
            ip_address=ip_address,
            user_agent=user_agent,
            metadata_=metadata,
            created_at=created_at,
        )
        self.audit_logs[entry.id] = entry
        return entry

    def fail(self, operation: str, key: Any = None, exc: Exception | None = None) -> None:
        """Make `operation` raise, for every call or only for one user/entry id."""
        self._failures[(operation, key)] = exc or RuntimeError(f"{operation} exploded")

    def owned_rows(self, table: str, user_id: uuid.UUID) -> list[SimpleNamespace]:
        return [row for row in self.owned[table] if row.user_id == user_id]

    def _check(self, operation: str, key: Any = None) -> None:
        self.calls.append(operation)
        for candidate in ((operation, None), (operation, key)):
            if candidate in self._failures:
                raise self._failures[candidate]

    # ── ComplianceStore surface ──────────────────────────────────────

    async def find_eligible_deletion_requests(self, cutoff: datetime) -> list[SimpleNamespace]:
        self._check("find_eligible_deletion_requests")
        eligible = [
            r for r in self.requests.values()
            if r.status == DeletionRequestStatus.PENDING.value and r.requested_at <= cutoff
        ]
        return sorted(eligible, key=lambda r: r.requested_at)

    async def complete_deletion_request(self, request_id: uuid.UUID, now: datetime) -> bool:
        self._check("complete_deletion_request", request_id)
        request = self.requests[request_id]
        if request.status != DeletionRequestStatus.PENDING.value:
            return False
        request.status = DeletionRequestStatus.COMPLETED.value
        request.completed_at = now
        return True

    async def get_user(self, user_id: uuid.UUID) -> SimpleNamespace | None:
        self._check("get_user", user_id)
        return self.users.get(user_id)

    async def update_user(self, user_id: uuid.UUID, values: dict[str, Any]) -> int:
        self._check("update_user", user_id)
        user = self.users.get(user_id)
        if user is None:
            return 0
        for key, value in values.items():
            setattr(user, key, value)
        return 1

    async def delete_user(self, user_id: uuid.UUID) -> int:
        self._check("delete_user", user_id)
        if self.users.pop(user_id, None) is None:
            return 0
        for table in OWNED_TABLES:
            self.owned[table] = [row for row in self.owned[table] if row.user_id != user_id]
        for request in self.requests.values():
            if request.user_id == user_id:
                request.user_id = None
        for entry in self.audit_logs.values():
            if entry.user_id == user_id:
                entry.user_id = None
        return 1

    async def delete_owned_rows(self, model: type, user_id: uuid.UUID) -> int:
        table = model.__tablename__
        self._check(f"delete {table}", user_id)
        before = len(self.owned[table])
        self.owned[table] = [row for row in self.owned[table] if row.user_id != user_id]
        return before - len(self.owned[table])

    async def detach_audit_logs(self, user_id: uuid.UUID) -> int:
        self._check("detach_audit_logs", user_id)
        count = 0
        for entry in self.audit_logs.values():
            if entry.user_id == user_id:
                entry.user_id = None
                count += 1
        return count

    async def clear_audit_identity(self, cutoff: datetime) -> int:
        self._check("clear_audit_identity")
        count = 0
        for entry in self.audit_logs.values():
            identified = (entry.user_id, entry.ip_address, entry.user_agent) != (None, None, None)
            if entry.created_at < cutoff and identified:
                entry.user_id = None
                entry.ip_address = None
                entry.user_agent = None
                count += 1
        return count

    async def find_audit_metadata(self, cutoff: datetime) -> list[tuple[uuid.UUID, Any]]:
        self._check("find_audit_metadata")
        return [
            (e.id, dict(e.metadata_) if isinstance(e.metadata_, dict) else e.metadata_)
            for e in self.audit_logs.values()
            if e.created_at < cutoff and e.metadata_ is not None
        ]

    async def update_audit_metadata(self, entry_id: uuid.UUID, metadata: dict[str, Any]) -> None:
        self._check("update_audit_metadata", entry_id)
        self.audit_logs[entry_id].metadata_ = metadata

    async def delete_audit_logs_before(self, cutoff: datetime) -> int:
        self._check("delete_audit_logs_before")
        doomed = [i for i, e in self.audit_logs.items() if e.created_at < cutoff]
        for entry_id in doomed:
            del self.audit_logs[entry_id]
        return len(doomed)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture(autouse=True)
def _isolated_event_subscribers():
    """Event subscribers are module-level; keep them from leaking across tests."""
    clear_subscribers()
    yield
    clear_subscribers()


@pytest.fixture
def now() -> datetime:
    return NOW
