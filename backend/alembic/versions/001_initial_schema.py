"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _uuid(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), **kwargs)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now())


def upgrade() -> None:
    op.create_table(
        "organizations",
        _uuid("id", primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("subscription_plan", sa.String(50), nullable=True),
        sa.Column("trial_ends_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )

    op.create_table(
        "users",
        _uuid("id", primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("role", sa.String(50), nullable=False, server_default="user"),
        _uuid("organization_id", sa.ForeignKey("organizations.id"), nullable=True),
        _uuid("current_organization_id", sa.ForeignKey("organizations.id"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("subscription_status", sa.String(50), nullable=True),
        sa.Column("subscription_plan", sa.String(50), nullable=True),
        sa.Column("paddle_subscription_id", sa.String(100), nullable=True),
        sa.Column("paddle_customer_id", sa.String(100), nullable=True),
        sa.Column("subscription_start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("subscription_canceled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("subscription_event_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("trial_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("trial_ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("trial_ended_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.CheckConstraint(
            "role IN ('admin', 'hr_manager', 'it_manager', 'manager', 'user')",
            name="chk_user_role",
        ),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_organization_id", "users", ["organization_id"])
    op.create_index("ix_users_subscription_status", "users", ["subscription_status"])
    op.create_index("ix_users_paddle_subscription_id", "users", ["paddle_subscription_id"])
    op.create_index("ix_users_trial_ends_at", "users", ["trial_ends_at"])

    op.create_table(
        "templates",
        _uuid("id", primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _uuid("organization_id", sa.ForeignKey("organizations.id"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _uuid("created_by", sa.ForeignKey("users.id"), nullable=True),
        _created_at(),
    )
    op.create_index("ix_templates_organization_id", "templates", ["organization_id"])

    op.create_table(
        "template_tasks",
        _uuid("id", primary_key=True),
        _uuid("template_id", sa.ForeignKey("templates.id", ondelete="CASCADE"), nullable=False),
        sa.Column("task_name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("assigned_department", sa.String(100), nullable=True),
        sa.Column("due_date_offset", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("priority", sa.String(20), nullable=False, server_default="Medium"),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        sa.CheckConstraint("priority IN ('High', 'Medium', 'Low')", name="chk_template_task_priority"),
    )
    op.create_index("ix_template_tasks_template_id", "template_tasks", ["template_id"])

    op.create_table(
        "offboardings",
        _uuid("id", primary_key=True),
        _uuid("organization_id", sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("employee_name", sa.String(255), nullable=False),
        sa.Column("employee_email", sa.String(255), nullable=False),
        sa.Column("department", sa.String(100), nullable=True),
        sa.Column("role", sa.String(255), nullable=True),
        sa.Column("last_working_day", sa.Date(), nullable=False),
        sa.Column("manager_name", sa.String(255), nullable=True),
        sa.Column("manager_email", sa.String(255), nullable=True),
        sa.Column("reason_for_departure", sa.Text(), nullable=True),
        _uuid("template_id", sa.ForeignKey("templates.id"), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="in_progress"),
        _uuid("created_by", sa.ForeignKey("users.id"), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.CheckConstraint(
            "status IN ('in_progress', 'completed', 'cancelled')",
            name="chk_offboarding_status",
        ),
    )
    op.create_index("ix_offboardings_organization_id", "offboardings", ["organization_id"])
    op.create_index("ix_offboardings_status", "offboardings", ["status"])
    op.create_index("ix_offboardings_created_at", "offboardings", ["created_at"])

    op.create_table(
        "tasks",
        _uuid("id", primary_key=True),
        _uuid("offboarding_id", sa.ForeignKey("offboardings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("task_name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("assigned_department", sa.String(100), nullable=True),
        _uuid("assigned_to", sa.ForeignKey("users.id"), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("priority", sa.String(20), nullable=False, server_default="Medium"),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        _uuid("completed_by", sa.ForeignKey("users.id"), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.CheckConstraint("priority IN ('High', 'Medium', 'Low')", name="chk_task_priority"),
    )
    op.create_index("ix_tasks_offboarding_id", "tasks", ["offboarding_id"])
    op.create_index("ix_tasks_assigned_to", "tasks", ["assigned_to"])

    op.create_table(
        "survey_tokens",
        _uuid("id", primary_key=True),
        sa.Column("token", sa.String(64), nullable=False),
        _uuid("offboarding_id", sa.ForeignKey("offboardings.id", ondelete="CASCADE"), nullable=False),
        _uuid("organization_id", sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("employee_email", sa.String(255), nullable=True),
        sa.Column("employee_name", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.CheckConstraint("status IN ('pending', 'completed')", name="chk_survey_token_status"),
    )
    op.create_index("ix_survey_tokens_token", "survey_tokens", ["token"], unique=True)
    op.create_index("ix_survey_tokens_offboarding_id", "survey_tokens", ["offboarding_id"])
    op.create_index(
        "idx_survey_tokens_pending",
        "survey_tokens",
        ["offboarding_id", "expires_at"],
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        "exit_surveys",
        _uuid("id", primary_key=True),
        _uuid("survey_token_id", sa.ForeignKey("survey_tokens.id", ondelete="SET NULL"), nullable=True),
        _uuid("offboarding_id", sa.ForeignKey("offboardings.id", ondelete="CASCADE"), nullable=False),
        _uuid("organization_id", sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("departure_reason", sa.String(255), nullable=False),
        sa.Column("likelihood_to_recommend", sa.Integer(), nullable=False),
        sa.Column("would_return", sa.Boolean(), nullable=False),
        sa.Column("would_return_reason", sa.Text(), nullable=True),
        sa.Column("suggestions_for_improvement", sa.Text(), nullable=True),
        _uuid("submitted_by", sa.ForeignKey("users.id"), nullable=True),
        _created_at(),
        sa.CheckConstraint(
            "likelihood_to_recommend >= 0 AND likelihood_to_recommend <= 10",
            name="chk_exit_survey_nps_range",
        ),
        sa.UniqueConstraint("survey_token_id", name="uq_exit_survey_token"),
    )
    op.create_index("ix_exit_surveys_offboarding_id", "exit_surveys", ["offboarding_id"])
    op.create_index("ix_exit_surveys_organization_id", "exit_surveys", ["organization_id"])

    op.create_table(
        "exit_insights",
        _uuid("id", primary_key=True),
        _uuid("organization_id", sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("survey_count", sa.Integer(), nullable=False),
        sa.Column("time_period_days", sa.Integer(), nullable=False),
        sa.Column("priority_level", sa.String(20), nullable=False, server_default="low"),
        sa.Column("confidence_score", sa.Float(), nullable=False),
        sa.Column("affected_departments", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("analysis", postgresql.JSONB(), nullable=False, server_default="{}"),
        _created_at(),
    )
    op.create_index("ix_exit_insights_organization_id", "exit_insights", ["organization_id"])
    op.create_index("ix_exit_insights_created_at", "exit_insights", ["created_at"])

    op.create_table(
        "oauth_connections",
        _uuid("id", primary_key=True),
        _uuid("organization_id", sa.ForeignKey("organizations.id"), nullable=False),
        _uuid("offboarding_id", sa.ForeignKey("offboardings.id", ondelete="SET NULL"), nullable=True),
        sa.Column("app_name", sa.String(255), nullable=False),
        sa.Column("employee_email", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        _uuid("revoked_by", sa.ForeignKey("users.id"), nullable=True),
        sa.Column("revocation_method", sa.String(50), nullable=True),
        _created_at(),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.CheckConstraint("status IN ('active', 'revoked')", name="chk_oauth_connection_status"),
    )
    op.create_index("ix_oauth_connections_organization_id", "oauth_connections", ["organization_id"])
    op.create_index("ix_oauth_connections_offboarding_id", "oauth_connections", ["offboarding_id"])
    op.create_index("ix_oauth_connections_status", "oauth_connections", ["status"])

    op.create_table(
        "revocation_logs",
        _uuid("id", primary_key=True),
        _uuid("oauth_connection_id", sa.ForeignKey("oauth_connections.id"), nullable=False),
        _uuid("offboarding_id", nullable=True),
        _uuid("organization_id", sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("app_name", sa.String(255), nullable=False),
        sa.Column("employee_email", sa.String(255), nullable=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("revocation_method", sa.String(50), nullable=False),
        sa.Column("status_before", sa.String(20), nullable=False),
        sa.Column("status_after", sa.String(20), nullable=False),
        _uuid("performed_by", sa.ForeignKey("users.id"), nullable=True),
        _created_at(),
    )
    op.create_index("ix_revocation_logs_oauth_connection_id", "revocation_logs", ["oauth_connection_id"])
    op.create_index("ix_revocation_logs_organization_id", "revocation_logs", ["organization_id"])
    op.create_index("ix_revocation_logs_created_at", "revocation_logs", ["created_at"])

    op.create_table(
        "notifications",
        _uuid("id", primary_key=True),
        _uuid("user_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        _uuid("related_task_id", sa.ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True),
        _uuid("related_offboarding_id", sa.ForeignKey("offboardings.id", ondelete="SET NULL"), nullable=True),
        _created_at(),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])
    op.create_index(
        "idx_notifications_unread",
        "notifications",
        ["user_id", "created_at"],
        postgresql_where=sa.text("read = false"),
    )


def downgrade() -> None:
    for table in (
        "notifications",
        "revocation_logs",
        "oauth_connections",
        "exit_insights",
        "exit_surveys",
        "survey_tokens",
        "tasks",
        "offboardings",
        "template_tasks",
        "templates",
        "users",
        "organizations",
    ):
        op.drop_table(table)
