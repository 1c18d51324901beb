"""create indexnow submission log table

Revision ID: 0001_create_submission_logs
Revises:
Create Date: 2026-10-19 09:00:00

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001_create_submission_logs"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

SUBMISSION_ACTIONS = ("create", "update", "delete", "manual", "retry")
SUBMISSION_STATUSES = ("pending", "success", "failed", "permanent_fail")


def upgrade() -> None:
    op.create_table(
        "indexnow_submission_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("source_table", sa.String(length=255), nullable=True),
        sa.Column("record_id", sa.Integer(), nullable=True),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column(
            "action",
            sa.Enum(*SUBMISSION_ACTIONS, name="submission_action"),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum(*SUBMISSION_STATUSES, name="submission_status"),
            server_default="pending",
            nullable=False,
        ),
        sa.Column("response_code", sa.Integer(), nullable=True),
        sa.Column("response_message", sa.Text(), nullable=True),
        sa.Column(
            "attempts", sa.Integer(), server_default=sa.text("1"), nullable=False
        ),
        sa.Column("last_attempt_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_retry_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_indexnow_submission_logs_created_at",
        "indexnow_submission_logs",
        ["created_at"],
    )
    op.create_index(
        "ix_indexnow_submission_logs_status",
        "indexnow_submission_logs",
        ["status"],
    )


def downgrade() -> None:
    op.drop_index(
        "ix_indexnow_submission_logs_status",
        table_name="indexnow_submission_logs",
    )
    op.drop_index(
        "ix_indexnow_submission_logs_created_at",
        table_name="indexnow_submission_logs",
    )
    op.drop_table("indexnow_submission_logs")
