"""Durable callback reminder jobs; at most one pending job per record.

Revision ID: 20261001200000
Revises: 20261001100000
Create Date: 2026-10-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "20261001200000"
down_revision: Union[str, None] = "20261001100000"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "reminder_jobs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("record_id", sa.Integer(), nullable=False),
        sa.Column("due_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("state", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("fired_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_reminder_jobs_record_id"), "reminder_jobs", ["record_id"], unique=False
    )
    op.create_index(op.f("ix_reminder_jobs_state"), "reminder_jobs", ["state"], unique=False)
    op.create_index(
        "uq_reminder_jobs_pending_record",
        "reminder_jobs",
        ["record_id"],
        unique=True,
        postgresql_where=sa.text("state = 'pending'"),
        sqlite_where=sa.text("state = 'pending'"),
    )


def downgrade() -> None:
    op.drop_index("uq_reminder_jobs_pending_record", table_name="reminder_jobs")
    op.drop_index(op.f("ix_reminder_jobs_state"), table_name="reminder_jobs")
    op.drop_index(op.f("ix_reminder_jobs_record_id"), table_name="reminder_jobs")
    op.drop_table("reminder_jobs")
