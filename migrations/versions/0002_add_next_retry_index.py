"""index submission logs by next retry time

Revision ID: 0002_add_next_retry_index
Revises: 0001_create_submission_logs
Create Date: 2026-10-19 09:30:00

"""

from __future__ import annotations

from collections.abc import Sequence

from alembic import op

revision: str = "0002_add_next_retry_index"
down_revision: str | None = "0001_create_submission_logs"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_index(
        "ix_indexnow_submission_logs_next_retry_at",
        "indexnow_submission_logs",
        ["next_retry_at"],
    )


def downgrade() -> None:
    op.drop_index(
        "ix_indexnow_submission_logs_next_retry_at",
        table_name="indexnow_submission_logs",
    )
