"""create task recurrences table"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0003_create_task_recurrences"
down_revision = "0002_create_tasks"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "task_recurrences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "task_id",
            sa.Integer(),
            sa.ForeignKey("tasks.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("frequency", sa.String(length=20), nullable=False),
        sa.Column("recurrence_interval", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("days_of_week", sa.JSON(), nullable=True),
        sa.Column("days_of_month", sa.JSON(), nullable=True),
        sa.Column("last_generated", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_task_recurrences_task_id", "task_recurrences", ["task_id"], unique=True)
    op.create_index("ix_task_recurrences_user_id", "task_recurrences", ["user_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_task_recurrences_user_id", table_name="task_recurrences")
    op.drop_index("ix_task_recurrences_task_id", table_name="task_recurrences")
    op.drop_table("task_recurrences")
