"""Record processor — finalizes a single account deletion request.

Knows nothing about batching: given one DataDeletionRequest it destroys the
user's data with the strategy the scrub policy selects, marks the request
COMPLETED and reports what happened. It never raises; failures come back as
a RecordOutcome with `error` set and the request left PENDING for the next
run.

Cleanup steps touch disjoint tables and run concurrently, each in its own
committed session. A failure in one step does not roll back the others, so
the outcome records every step's result.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, assert_never

import structlog

from src.compliance.policy import anonymized_user_values, select_strategy
from src.compliance.store import ComplianceStore
from src.events import emit
from src.models.consent import ConsentRecord
from src.models.deletion import DataDeletionRequest
from src.models.enums import DestructionMode
from src.models.notification import Notification
from src.models.tokens import PushToken, RefreshToken
from src.schemas.events import EventType, SystemEvent

logger = structlog.get_logger(__name__)


class CleanupStepError(Exception):
    """Raised when one or more concurrent cleanup steps failed."""

    def __init__(self, failures: list[str]) -> None:
        super().__init__("; ".join(failures))
        self.failures = failures


@dataclass
class StepResult:
    """Result of one store operation within a record's cleanup."""

    name: str
    succeeded: bool
    affected: int = 0
    error: str | None = None


@dataclass
class RecordOutcome:
    """What happened to one deletion request.

    `mode` is None when no destruction was needed (the user was already gone).
    """

    request_id: Any = None
    user_id: Any = None
    processed: bool = False
    mode: DestructionMode | None = None
    error: str | None = None
    steps: list[StepResult] = field(default_factory=list)

    @property
    def failed_steps(self) -> list[StepResult]:
        return [step for step in self.steps if not step.succeeded]


class RecordProcessor:
    """Applies ANONYMIZE or FULL_DELETE to the user behind a deletion request."""

    def __init__(self, store: ComplianceStore) -> None:
        self._store = store

    async def process(
        self,
        request: DataDeletionRequest,
        now: datetime,
        log: Any = None,
    ) -> RecordOutcome:
        """Finalize one request. Never raises."""
        log = log or logger
        user_id = request.user_id
        outcome = RecordOutcome(request_id=request.id, user_id=user_id)

        try:
            user = await self._store.get_user(user_id) if user_id is not None else None

            if user is None:
                # Removed out-of-band: nothing left to destroy
                outcome.processed = await self._complete(request, now, log)
                return outcome

            mode = select_strategy(request.options)
            outcome.mode = mode

            match mode:
                case DestructionMode.ANONYMIZE:
                    log.info("Anonymizing user", user_id=str(user_id))
                    await self._anonymize(user_id, now, outcome)
                case DestructionMode.FULL_DELETE:
                    log.info("Deleting user", user_id=str(user_id))
                    await self._full_delete(user_id, outcome)
                case _:
                    assert_never(mode)

            await self._complete(request, now, log)
            outcome.processed = True

            await emit(SystemEvent(
                event_type=EventType.DELETION_COMPLETED,
                user_id=user_id,
                data={"deletion_request_id": str(request.id), "mode": mode.value},
                source_module="compliance.processor",
            ))

        except Exception as exc:
            outcome.error = f"Failed to process deletion for user {user_id}: {exc}"
            log.exception(outcome.error, request_id=str(request.id))

        return outcome

    # ── Strategies ───────────────────────────────────────────────────

    async def _anonymize(self, user_id: uuid.UUID, now: datetime, outcome: RecordOutcome) -> None:
        """Scrub the user row, drop credentials/consents and detach audit entries.

        All five steps are independent and run together. Projects, ideas and
        collaborations stay, attributed to the sentinel name.
        """
        await self._run_steps(outcome, {
            "users": self._store.update_user(user_id, anonymized_user_values(user_id, now)),
            "push_tokens": self._store.delete_owned_rows(PushToken, user_id),
            "refresh_tokens": self._store.delete_owned_rows(RefreshToken, user_id),
            "consent_records": self._store.delete_owned_rows(ConsentRecord, user_id),
            "audit_logs": self._store.detach_audit_logs(user_id),
        })

    async def _full_delete(self, user_id: uuid.UUID, outcome: RecordOutcome) -> None:
        """Delete personal-data rows explicitly, then the user row itself.

        The user row is only deleted once every explicit step succeeded;
        cascades take care of collaborations, upvotes and other owned rows.
        """
        await self._run_steps(outcome, {
            "notifications": self._store.delete_owned_rows(Notification, user_id),
            "push_tokens": self._store.delete_owned_rows(PushToken, user_id),
            "refresh_tokens": self._store.delete_owned_rows(RefreshToken, user_id),
            "consent_records": self._store.delete_owned_rows(ConsentRecord, user_id),
            "audit_logs": self._store.detach_audit_logs(user_id),
        })
        await self._run_steps(outcome, {
            "users": self._store.delete_user(user_id),
        })

    # ── Helpers ──────────────────────────────────────────────────────

    async def _run_steps(self, outcome: RecordOutcome, steps: dict[str, Awaitable[int]]) -> None:
        """Run steps concurrently, record each result, raise if any failed."""
        names = list(steps)
        results = await asyncio.gather(*steps.values(), return_exceptions=True)

        failures: list[str] = []
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                outcome.steps.append(StepResult(name=name, succeeded=False, error=str(result)))
                failures.append(f"{name}: {result}")
            else:
                outcome.steps.append(StepResult(name=name, succeeded=True, affected=result or 0))

        if failures:
            raise CleanupStepError(failures)

    async def _complete(self, request: DataDeletionRequest, now: datetime, log: Any) -> bool:
        completed = await self._store.complete_deletion_request(request.id, now)
        if not completed:
            log.warning(
                "Deletion request no longer pending, left unchanged",
                request_id=str(request.id),
            )
        return completed
