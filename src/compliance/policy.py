"""PII scrub policy — pure decisions about what gets destroyed and when.

No I/O. The record processor and the sweepers ask this module which
strategy applies to a request, what an anonymized user row looks like,
which metadata keys are PII, and where the time gates fall.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta
from typing import Any

from src.config import settings
from src.models.enums import DestructionMode

DEFAULT_METADATA_PII_KEYS: tuple[str, ...] = ("email", "name", "phoneNumber", "address")
ANONYMIZE_OPTION_KEY = "anonymizeContributions"


# ── Strategy selection ───────────────────────────────────────────────


def select_strategy(options: Mapping[str, Any] | None) -> DestructionMode:
    """Choose the destruction mode for a deletion request.

    The request flow stores `{"anonymizeContributions": bool}`; the snake_case
    spelling is accepted too. Only an explicit false selects a full delete;
    missing options or a missing key keep the user's contributions.
    """
    if options is None:
        return DestructionMode.ANONYMIZE
    flag = options.get(ANONYMIZE_OPTION_KEY, options.get("anonymize_contributions", True))
    if flag is False:
        return DestructionMode.FULL_DELETE
    return DestructionMode.ANONYMIZE


# ── Field-level scrub table ──────────────────────────────────────────


def placeholder_email(user_id: uuid.UUID | str, domain: str | None = None) -> str:
    """Unique, undeliverable address that keeps the email column's unique index happy."""
    return f"deleted-{user_id}@{domain or settings.compliance.deleted_email_domain}"


def anonymized_user_values(user_id: uuid.UUID | str, now: datetime) -> dict[str, Any]:
    """Column values written to a user row in ANONYMIZE mode.

    Content rows (projects, ideas, collaborations) are left alone and show
    up under the sentinel name.
    """
    return {
        "email": placeholder_email(user_id),
        "name": settings.compliance.deleted_user_name,
        "bio": None,
        "avatar_url": None,
        "anonymized_at": now,
        "deleted_at": now,
        "show_email_on_profile": False,
        "include_in_search": False,
        "show_activity_publicly": False,
    }


def scrub_metadata(
    metadata: Mapping[str, Any],
    pii_keys: Iterable[str] = DEFAULT_METADATA_PII_KEYS,
) -> tuple[dict[str, Any], bool]:
    """Drop PII keys from an audit metadata bag.

    Returns:
        The sanitized copy and whether any key was actually removed.
    """
    keys = set(pii_keys)
    sanitized = {k: v for k, v in metadata.items() if k not in keys}
    return sanitized, len(sanitized) != len(metadata)


# ── Time gates ───────────────────────────────────────────────────────


def grace_period_cutoff(now: datetime, grace_period_days: int) -> datetime:
    """Latest `requested_at` that is past its grace period at `now`."""
    return now - timedelta(days=grace_period_days)


def is_deletion_eligible(requested_at: datetime, now: datetime, grace_period_days: int) -> bool:
    """True once `now >= requested_at + grace period`."""
    return requested_at <= grace_period_cutoff(now, grace_period_days)


def retention_cutoff(now: datetime, years: int) -> datetime:
    """`now` shifted back by whole calendar years (Feb 29 clamps to Feb 28)."""
    try:
        return now.replace(year=now.year - years)
    except ValueError:
        return now.replace(year=now.year - years, day=28)


def is_past_retention(created_at: datetime, cutoff: datetime) -> bool:
    """Entries strictly older than the cutoff are swept."""
    return created_at < cutoff
