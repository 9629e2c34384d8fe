"""SystemEvent schema — the event type that flows through the job system.

Subscribers (alert logging, external observability hooks) consume these
events asynchronously.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """All event types emitted by the compliance engine."""

    # Data lifecycle
    DELETION_COMPLETED = "gdpr.deletion_completed"

    # Scheduled jobs
    JOB_COMPLETED = "job.completed"
    JOB_FAILED = "job.failed"


class SystemEvent(BaseModel):
    """Immutable event emitted by the engine."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Context (job events have no user)
    user_id: uuid.UUID | None = None
    job_name: str | None = None

    # Flexible payload
    data: dict[str, Any] = Field(default_factory=dict)

    source_module: str | None = Field(default=None, description="Module that emitted this event")

    model_config = {"frozen": True}
