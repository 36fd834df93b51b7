"""Create onboarding tables

Revision ID: create_onboarding_tables
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "create_onboarding_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "onboarding_paths",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("target_role", sa.String(), nullable=False),
        sa.Column("subscription_tier", sa.String(), nullable=True),
        sa.Column("estimated_duration", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("prerequisites", sa.JSON(), nullable=False),
        sa.Column("learning_objectives", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_onboarding_paths_target_role", "onboarding_paths", ["target_role"])

    op.create_table(
        "onboarding_steps",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("path_id", sa.String(), sa.ForeignKey("onboarding_paths.id"), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("step_type", sa.String(), nullable=False),
        sa.Column("step_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("estimated_time", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("dependencies", sa.JSON(), nullable=False),
        sa.Column("content", sa.JSON(), nullable=False),
        sa.Column("interactive_elements", sa.JSON(), nullable=False),
        sa.Column("success_criteria", sa.JSON(), nullable=False),
    )

    op.create_table(
        "onboarding_sessions",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("organization_id", sa.String(), nullable=True),
        sa.Column("path_id", sa.String(), sa.ForeignKey("onboarding_paths.id"), nullable=False),
        sa.Column("session_type", sa.String(), nullable=False, server_default="individual"),
        sa.Column("status", sa.String(), nullable=False, server_default="active"),
        sa.Column("current_step_id", sa.String(), nullable=True),
        sa.Column("current_step_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("furthest_step_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("progress_percentage", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("time_spent", sa.Float(), nullable=False, server_default="0"),
        sa.Column("completed_step_ids", sa.JSON(), nullable=False),
        sa.Column("skipped_step_ids", sa.JSON(), nullable=False),
        sa.Column("earned_milestones", sa.JSON(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_active_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paused_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("session_metadata", sa.JSON(), nullable=False),
        sa.Column("preferences", sa.JSON(), nullable=False),
    )
    op.create_index("ix_onboarding_sessions_user_id", "onboarding_sessions", ["user_id"])

    op.create_table(
        "user_progress",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "session_id", sa.String(), sa.ForeignKey("onboarding_sessions.id"), nullable=False
        ),
        sa.Column("step_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("time_spent", sa.Float(), nullable=False, server_default="0"),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("feedback", sa.JSON(), nullable=False),
        sa.Column("user_actions", sa.JSON(), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_user_progress_session_id", "user_progress", ["session_id"])

    op.create_table(
        "user_achievements",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column(
            "session_id", sa.String(), sa.ForeignKey("onboarding_sessions.id"), nullable=False
        ),
        sa.Column("milestone_id", sa.String(), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("earned_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("session_id", "milestone_id"),
    )


def downgrade() -> None:
    op.drop_table("user_achievements")
    op.drop_index("ix_user_progress_session_id", table_name="user_progress")
    op.drop_table("user_progress")
    op.drop_index("ix_onboarding_sessions_user_id", table_name="onboarding_sessions")
    op.drop_table("onboarding_sessions")
    op.drop_table("onboarding_steps")
    op.drop_index("ix_onboarding_paths_target_role", table_name="onboarding_paths")
    op.drop_table("onboarding_paths")
