"""initial sla engine schema

Revision ID: 5c1e7a9d2b40
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5c1e7a9d2b40"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

user_role = postgresql.ENUM("admin", "leader", "staff", name="userrole", create_type=False)
work_item_kind = postgresql.ENUM("request", "task", name="workitemkind", create_type=False)
work_item_status = postgresql.ENUM(
    "todo",
    "in_progress",
    "needs_clarification",
    "in_review",
    "done",
    "cancelled",
    name="workitemstatus",
    create_type=False,
)
timer_state = postgresql.ENUM("running", "paused", name="timerstate", create_type=False)
trigger_type = postgresql.ENUM(
    "no_confirmation",
    "clarification_timeout",
    "sla_overdue",
    "stuck_task",
    name="triggertype",
    create_type=False,
)
escalation_target = postgresql.ENUM(
    "team_leader", "admin", "custom", name="escalationtarget", create_type=False
)
escalation_status = postgresql.ENUM(
    "pending", "acknowledged", "resolved", name="escalationstatus", create_type=False
)
notification_type = postgresql.ENUM(
    "reminder",
    "escalation",
    "deadline_approaching",
    "overdue",
    "system",
    name="notificationtype",
    create_type=False,
)
notification_priority = postgresql.ENUM(
    "info", "warning", "urgent", name="notificationpriority", create_type=False
)

ENUMS = (
    user_role,
    work_item_kind,
    work_item_status,
    timer_state,
    trigger_type,
    escalation_target,
    escalation_status,
    notification_type,
    notification_priority,
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for enum in ENUMS:
        enum.create(bind, checkfirst=True)

    op.create_table(
        "teams",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("leader_id", sa.Integer(), nullable=True, index=True),
        *_timestamps(),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True, index=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("role", user_role, nullable=False, server_default="staff"),
        sa.Column("team_id", sa.Integer(), sa.ForeignKey("teams.id"), nullable=True, index=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("telegram_chat_id", sa.String(50), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("min_deadline_hours", sa.Float(), nullable=True),
        sa.Column("max_deadline_hours", sa.Float(), nullable=True),
        sa.Column("default_duration_hours", sa.Float(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "category_stats",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column(
            "category_id",
            sa.Integer(),
            sa.ForeignKey("categories.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column("avg_hours", sa.Float(), nullable=False),
        sa.Column("median_hours", sa.Float(), nullable=False),
        sa.Column("min_hours", sa.Float(), nullable=False),
        sa.Column("max_hours", sa.Float(), nullable=False),
        sa.Column("sample_size", sa.Integer(), nullable=False),
        sa.Column("computed_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "work_items",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("kind", work_item_kind, nullable=False, server_default="task"),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("status", work_item_status, nullable=False, server_default="todo", index=True),
        sa.Column(
            "category_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=True, index=True
        ),
        sa.Column(
            "assignee_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True, index=True
        ),
        sa.Column("status_changed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("clarification_requested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_activity_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True, index=True),
        sa.Column("sla_window_minutes", sa.Float(), nullable=True),
        sa.Column("sla_paused_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "accumulated_paused_minutes", sa.Float(), nullable=False, server_default="0"
        ),
        *_timestamps(),
    )

    op.create_table(
        "timer_sessions",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column(
            "work_item_id",
            sa.Integer(),
            sa.ForeignKey("work_items.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("state", timer_state, nullable=False, server_default="running"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("paused_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "accumulated_paused_minutes", sa.Float(), nullable=False, server_default="0"
        ),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
    )

    op.create_table(
        "time_logs",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column(
            "work_item_id", sa.Integer(), sa.ForeignKey("work_items.id"), nullable=False, index=True
        ),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("paused_minutes", sa.Float(), nullable=False),
        sa.Column("worked_minutes", sa.Float(), nullable=False),
    )

    op.create_table(
        "reminder_configs",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("first_reminder_minutes", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("second_reminder_minutes", sa.Integer(), nullable=False, server_default="120"),
        sa.Column("third_reminder_minutes", sa.Integer(), nullable=False, server_default="180"),
        sa.Column("channels", postgresql.JSONB(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "first_reminder_minutes > 0"
            " AND first_reminder_minutes < second_reminder_minutes"
            " AND second_reminder_minutes < third_reminder_minutes",
            name="ck_reminder_thresholds_ordered",
        ),
    )

    op.create_table(
        "reminder_send_records",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column(
            "work_item_id", sa.Integer(), sa.ForeignKey("work_items.id"), nullable=False, index=True
        ),
        sa.Column("level", sa.Integer(), nullable=False),
        sa.Column("run_started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "work_item_id", "level", "run_started_at", name="uq_reminder_level_run"
        ),
    )

    op.create_table(
        "escalation_rules",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("trigger_type", trigger_type, nullable=False),
        sa.Column("threshold_hours", sa.Float(), nullable=False, server_default="24"),
        sa.Column(
            "escalate_to", escalation_target, nullable=False, server_default="team_leader"
        ),
        sa.Column(
            "custom_recipient_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True
        ),
        sa.Column("notification_channels", postgresql.JSONB(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "escalation_records",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column(
            "rule_id",
            sa.Integer(),
            sa.ForeignKey("escalation_rules.id"),
            nullable=False,
            index=True,
        ),
        sa.Column("entity_type", work_item_kind, nullable=False),
        sa.Column(
            "entity_id", sa.Integer(), sa.ForeignKey("work_items.id"), nullable=False, index=True
        ),
        sa.Column(
            "recipient_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, index=True
        ),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("status", escalation_status, nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column("cleared_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    # At most one open escalation per rule and entity
    op.create_index(
        "uq_escalation_open_episode",
        "escalation_records",
        ["rule_id", "entity_type", "entity_id"],
        unique=True,
        postgresql_where=sa.text("cleared_at IS NULL"),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("type", notification_type, nullable=False),
        sa.Column("priority", notification_priority, nullable=False, server_default="info"),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("link", sa.String(500), nullable=True),
        sa.Column("template_key", sa.String(100), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_notifications_user_read", "notifications", ["user_id", "is_read"])

    op.create_table(
        "notification_settings",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column(
            "user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, unique=True
        ),
        sa.Column("dnd_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("dnd_start_time", sa.Time(), nullable=True),
        sa.Column("dnd_end_time", sa.Time(), nullable=True),
        sa.Column("dnd_days", postgresql.JSONB(), nullable=True),
        sa.Column("timezone", sa.String(50), nullable=False, server_default="UTC"),
        *_timestamps(),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True, index=True),
        sa.Column("action", sa.String(100), nullable=False, index=True),
        sa.Column("entity", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("payload", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, index=True),
    )


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("notification_settings")
    op.drop_index("ix_notifications_user_read", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("uq_escalation_open_episode", table_name="escalation_records")
    op.drop_table("escalation_records")
    op.drop_table("escalation_rules")
    op.drop_table("reminder_send_records")
    op.drop_table("reminder_configs")
    op.drop_table("time_logs")
    op.drop_table("timer_sessions")
    op.drop_table("work_items")
    op.drop_table("category_stats")
    op.drop_table("categories")
    op.drop_table("users")
    op.drop_table("teams")

    bind = op.get_bind()
    for enum in reversed(ENUMS):
        enum.drop(bind, checkfirst=True)
