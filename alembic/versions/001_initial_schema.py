"""initial schema: judges, work items, judge item sets, run ledger

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Judges & their assigned-item sets ──
    op.create_table(
        "judges",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_judges_created_at", "judges", ["created_at"])
    op.create_index("ix_judges_updated_at", "judges", ["updated_at"])

    op.create_table(
        "judge_assigned_items",
        sa.Column("judge_id", sa.String(), sa.ForeignKey("judges.id"), primary_key=True),
        sa.Column("item_id", sa.String(), primary_key=True),
        sa.Column("added_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_judge_assigned_items_item_id", "judge_assigned_items", ["item_id"])

    # ── Work items (source of truth for who judges what) ──
    op.create_table(
        "work_items",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("team_name", sa.String(), nullable=False, server_default=""),
        sa.Column("assigned_judge", sa.String(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_work_items_assigned_judge", "work_items", ["assigned_judge"])
    op.create_index("ix_work_items_submitted_at", "work_items", ["submitted_at"])

    # ── Run ledger ──
    op.create_table(
        "assignment_runs",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("placed_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unplaced_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(), nullable=False, server_default="running"),
        sa.Column("error", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_assignment_runs_status", "assignment_runs", ["status"])
    op.create_index("ix_assignment_runs_created_at", "assignment_runs", ["created_at"])
    op.create_index("ix_assignment_runs_updated_at", "assignment_runs", ["updated_at"])


def downgrade() -> None:
    op.drop_table("assignment_runs")
    op.drop_table("work_items")
    op.drop_table("judge_assigned_items")
    op.drop_table("judges")
