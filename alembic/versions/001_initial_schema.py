"""Initial schema — users, deletion requests, audit log, personal-data tables.

Revision ID: 001
Revises: None
Create Date: 2026-10-16
"""
from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, tuple[str, ...], None] = None
depends_on: Union[str, tuple[str, ...], None] = None


def _id_and_timestamps(*, updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False, index=True),
    ]
    if updated:
        columns.append(
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False)
        )
    return columns


def _user_fk(ondelete: str, *, nullable: bool = False) -> sa.Column:
    return sa.Column(
        "user_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete=ondelete),
        nullable=nullable,
        index=True,
    )


def upgrade() -> None:
    # ── Users ──────────────────────────────────────────────────────────

    op.create_table(
        "users",
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("bio", sa.Text()),
        sa.Column("avatar_url", sa.String(500)),
        sa.Column("show_email_on_profile", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("include_in_search", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("show_activity_publicly", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("anonymized_at", sa.DateTime(timezone=True), index=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True)),
        *_id_and_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    # ── Lifecycle tables (survive user deletion) ───────────────────────

    op.create_table(
        "data_deletion_requests",
        _user_fk("SET NULL", nullable=True),
        sa.Column("status", sa.String(20), nullable=False, index=True),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column("scheduled_for", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("options", postgresql.JSONB(astext_type=sa.Text())),
        *_id_and_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "audit_logs",
        _user_fk("SET NULL", nullable=True),
        sa.Column("action", sa.String(100), nullable=False, index=True),
        sa.Column("ip_address", sa.String(45)),
        sa.Column("user_agent", sa.String(500)),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text())),
        *_id_and_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
    )

    # ── Personal data (cascade with the user row) ──────────────────────

    op.create_table(
        "consent_records",
        _user_fk("CASCADE"),
        sa.Column("consent_type", sa.String(50), nullable=False),
        sa.Column("granted", sa.Boolean(), nullable=False),
        sa.Column("policy_version", sa.String(20)),
        *_id_and_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "push_tokens",
        _user_fk("CASCADE"),
        sa.Column("token", sa.String(255), nullable=False),
        sa.Column("platform", sa.String(20), nullable=False, comment="ios or android"),
        sa.Column("last_used_at", sa.DateTime(timezone=True)),
        *_id_and_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token"),
    )

    op.create_table(
        "refresh_tokens",
        _user_fk("CASCADE"),
        sa.Column("token_hash", sa.String(128), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True)),
        *_id_and_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token_hash"),
    )

    op.create_table(
        "notifications",
        _user_fk("CASCADE"),
        sa.Column("kind", sa.String(50), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text())),
        sa.Column("read_at", sa.DateTime(timezone=True)),
        *_id_and_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    # Drop in reverse dependency order
    op.drop_table("notifications")
    op.drop_table("refresh_tokens")
    op.drop_table("push_tokens")
    op.drop_table("consent_records")
    op.drop_table("audit_logs")
    op.drop_table("data_deletion_requests")
    op.drop_table("users")
