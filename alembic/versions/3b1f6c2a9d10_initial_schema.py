"""initial schema

Revision ID: 3b1f6c2a9d10
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b1f6c2a9d10"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _uuid() -> postgresql.UUID:
    return postgresql.UUID(as_uuid=True)


def _ts() -> sa.DateTime:
    return sa.DateTime(timezone=True)


def _strings() -> postgresql.ARRAY:
    return postgresql.ARRAY(sa.String())


def upgrade() -> None:
    op.create_table(
        "projects",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("short_desc", sa.Text(), nullable=False),
        sa.Column("long_desc", sa.Text(), nullable=False),
        sa.Column("class_min", sa.Integer(), nullable=False),
        sa.Column("class_max", sa.Integer(), nullable=False),
        sa.Column("level", sa.String(length=32), nullable=False),
        sa.Column("guidance", sa.String(length=32), nullable=False),
        sa.Column("duration_hrs", sa.Integer(), nullable=False),
        sa.Column("subjects", _strings(), nullable=False),
        sa.Column("tags", _strings(), nullable=False),
        sa.Column("tools", _strings(), nullable=False),
        sa.Column("prerequisites", _strings(), nullable=False),
        sa.Column("created_at", _ts(), nullable=False),
        sa.Column("updated_at", _ts(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_projects"),
        sa.UniqueConstraint("slug", name="uq_projects_slug"),
    )

    op.create_table(
        "steps",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("project_id", _uuid(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(
            ["project_id"], ["projects.id"], name="fk_steps_project_id_projects"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_steps"),
    )
    op.create_index("ix_steps_project_id", "steps", ["project_id"])

    op.create_table(
        "checklist_items",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("step_id", _uuid(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(
            ["step_id"], ["steps.id"], name="fk_checklist_items_step_id_steps"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_checklist_items"),
    )
    op.create_index("ix_checklist_items_step_id", "checklist_items", ["step_id"])

    op.create_table(
        "resources",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("step_id", _uuid(), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.ForeignKeyConstraint(
            ["step_id"], ["steps.id"], name="fk_resources_step_id_steps"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_resources"),
    )
    op.create_index("ix_resources_step_id", "resources", ["step_id"])

    op.create_table(
        "submission_specs",
        sa.Column("project_id", _uuid(), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("instruction", sa.Text(), nullable=False),
        sa.Column("allowed_types", _strings(), nullable=False),
        sa.ForeignKeyConstraint(
            ["project_id"], ["projects.id"], name="fk_submission_specs_project_id_projects"
        ),
        sa.PrimaryKeyConstraint("project_id", name="pk_submission_specs"),
    )

    op.create_table(
        "users",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("phone_number", sa.String(length=32), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("school", sa.String(length=255), nullable=True),
        sa.Column("class_num", sa.Integer(), nullable=True),
        sa.Column("roles", _strings(), nullable=False),
        sa.Column("created_at", _ts(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("phone_number", name="uq_users_phone_number"),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "groups",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("team_leader_id", _uuid(), nullable=False),
        sa.Column("second_member_name", sa.String(length=255), nullable=True),
        sa.Column("second_member_email", sa.String(length=320), nullable=True),
        sa.Column("second_member_phone_number", sa.String(length=32), nullable=True),
        sa.Column("second_member_school", sa.String(length=255), nullable=True),
        sa.Column("second_member_class_num", sa.Integer(), nullable=True),
        sa.Column("created_at", _ts(), nullable=False),
        sa.Column("updated_at", _ts(), nullable=False),
        sa.ForeignKeyConstraint(
            ["team_leader_id"], ["users.id"], name="fk_groups_team_leader_id_users"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_groups"),
    )
    op.create_index("ix_groups_team_leader_id", "groups", ["team_leader_id"])

    op.create_table(
        "enrollments",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("project_id", _uuid(), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("school", sa.String(length=255), nullable=False),
        sa.Column("class_num", sa.Integer(), nullable=False),
        sa.Column("user_id", _uuid(), nullable=True),
        sa.Column("group_id", _uuid(), nullable=True),
        sa.Column("created_at", _ts(), nullable=False),
        sa.Column("last_activity_at", _ts(), nullable=True),
        sa.Column("completed_at", _ts(), nullable=True),
        sa.Column("time_spent_minutes", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(
            ["project_id"], ["projects.id"], name="fk_enrollments_project_id_projects"
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_enrollments_user_id_users"
        ),
        sa.ForeignKeyConstraint(
            ["group_id"], ["groups.id"], name="fk_enrollments_group_id_groups"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_enrollments"),
    )
    op.create_index("ix_enrollments_project_id", "enrollments", ["project_id"])
    op.create_index("ix_enrollments_email", "enrollments", ["email"])
    op.create_index("ix_enrollments_user_id", "enrollments", ["user_id"])
    op.create_index("ix_enrollments_group_id", "enrollments", ["group_id"])

    op.create_table(
        "enrollment_progress",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("enrollment_id", _uuid(), nullable=False),
        sa.Column("step_id", _uuid(), nullable=False),
        sa.Column("checklist_id", _uuid(), nullable=True),
        sa.Column("completed", sa.Boolean(), nullable=False),
        sa.Column("updated_at", _ts(), nullable=False),
        sa.ForeignKeyConstraint(
            ["enrollment_id"],
            ["enrollments.id"],
            name="fk_enrollment_progress_enrollment_id_enrollments",
        ),
        sa.ForeignKeyConstraint(
            ["step_id"], ["steps.id"], name="fk_enrollment_progress_step_id_steps"
        ),
        sa.ForeignKeyConstraint(
            ["checklist_id"],
            ["checklist_items.id"],
            name="fk_enrollment_progress_checklist_id_checklist_items",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_enrollment_progress"),
    )
    op.create_index(
        "uq_enrollment_progress_step",
        "enrollment_progress",
        ["enrollment_id", "step_id"],
        unique=True,
        postgresql_where=sa.text("checklist_id IS NULL"),
    )
    op.create_index(
        "uq_enrollment_progress_checklist",
        "enrollment_progress",
        ["enrollment_id", "step_id", "checklist_id"],
        unique=True,
        postgresql_where=sa.text("checklist_id IS NOT NULL"),
    )

    op.create_table(
        "submissions",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("enrollment_id", _uuid(), nullable=False),
        sa.Column("url_or_text", sa.Text(), nullable=False),
        sa.Column("created_at", _ts(), nullable=False),
        sa.ForeignKeyConstraint(
            ["enrollment_id"],
            ["enrollments.id"],
            name="fk_submissions_enrollment_id_enrollments",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_submissions"),
    )
    op.create_index("ix_submissions_enrollment_id", "submissions", ["enrollment_id"])

    op.create_table(
        "user_activities",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("enrollment_id", _uuid(), nullable=False),
        sa.Column("activity_type", sa.String(length=32), nullable=False),
        sa.Column("metadata_json", sa.Text(), nullable=True),
        sa.Column("created_at", _ts(), nullable=False),
        sa.ForeignKeyConstraint(
            ["enrollment_id"],
            ["enrollments.id"],
            name="fk_user_activities_enrollment_id_enrollments",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_user_activities"),
    )
    op.create_index(
        "ix_user_activities_enrollment_created",
        "user_activities",
        ["enrollment_id", "created_at"],
    )

    op.create_table(
        "messages",
        sa.Column("id", _uuid(), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("recipient_id", _uuid(), nullable=True),
        sa.Column("created_by_id", _uuid(), nullable=True),
        sa.Column("created_at", _ts(), nullable=False),
        sa.ForeignKeyConstraint(
            ["recipient_id"], ["users.id"], name="fk_messages_recipient_id_users"
        ),
        sa.ForeignKeyConstraint(
            ["created_by_id"], ["users.id"], name="fk_messages_created_by_id_users"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_messages"),
    )
    op.create_index("ix_messages_recipient_id", "messages", ["recipient_id"])

    op.create_table(
        "message_reads",
        sa.Column("message_id", _uuid(), nullable=False),
        sa.Column("user_id", _uuid(), nullable=False),
        sa.Column("read_at", _ts(), nullable=False),
        sa.ForeignKeyConstraint(
            ["message_id"], ["messages.id"], name="fk_message_reads_message_id_messages"
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_message_reads_user_id_users"
        ),
        sa.PrimaryKeyConstraint("message_id", "user_id", name="pk_message_reads"),
    )


def downgrade() -> None:
    op.drop_table("message_reads")
    op.drop_index("ix_messages_recipient_id", table_name="messages")
    op.drop_table("messages")
    op.drop_index("ix_user_activities_enrollment_created", table_name="user_activities")
    op.drop_table("user_activities")
    op.drop_index("ix_submissions_enrollment_id", table_name="submissions")
    op.drop_table("submissions")
    op.drop_index("uq_enrollment_progress_checklist", table_name="enrollment_progress")
    op.drop_index("uq_enrollment_progress_step", table_name="enrollment_progress")
    op.drop_table("enrollment_progress")
    for column in ("group_id", "user_id", "email", "project_id"):
        op.drop_index(f"ix_enrollments_{column}", table_name="enrollments")
    op.drop_table("enrollments")
    op.drop_index("ix_groups_team_leader_id", table_name="groups")
    op.drop_table("groups")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    op.drop_table("submission_specs")
    op.drop_index("ix_resources_step_id", table_name="resources")
    op.drop_table("resources")
    op.drop_index("ix_checklist_items_step_id", table_name="checklist_items")
    op.drop_table("checklist_items")
    op.drop_index("ix_steps_project_id", table_name="steps")
    op.drop_table("steps")
    op.drop_table("projects")
