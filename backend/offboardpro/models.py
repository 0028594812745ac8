"""SQLAlchemy models."""
from sqlalchemy import (
    Boolean, Column, String, Integer, Float, Date, DateTime, Text,
    ForeignKey, CheckConstraint, Index, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from .database import Base


USER_ROLES = ("admin", "hr_manager", "it_manager", "manager", "user")
OFFBOARDING_STATUSES = ("in_progress", "completed", "cancelled")
INVITATION_STATUSES = ("pending", "accepted")
TASK_PRIORITIES = ("High", "Medium", "Low")


class Organization(Base):
    """Organization model (tenant boundary)."""
    __tablename__ = "organizations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    subscription_plan = Column(String(50), nullable=True)
    trial_ends_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    offboardings = relationship("Offboarding", back_populates="organization")
    templates = relationship("Template", back_populates="organization")


class User(Base):
    """User model. Subscription fields are owned by the billing webhook."""
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=True)
    role = Column(String(50), nullable=False, default="user", index=True)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=True, index=True)
    # Multi-org membership: the organization the user is currently working in.
    current_organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    subscription_status = Column(String(50), nullable=True, index=True)
    subscription_plan = Column(String(50), nullable=True)
    paddle_subscription_id = Column(String(100), nullable=True, index=True)
    paddle_customer_id = Column(String(100), nullable=True)
    subscription_start_date = Column(DateTime(timezone=True), nullable=True)
    subscription_canceled_at = Column(DateTime(timezone=True), nullable=True)
    # occurred_at of the last billing event applied (out-of-order guard).
    subscription_event_at = Column(DateTime(timezone=True), nullable=True)
    trial_started_at = Column(DateTime(timezone=True), nullable=True)
    trial_ends_at = Column(DateTime(timezone=True), nullable=True, index=True)
    trial_ended_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(role.in_(USER_ROLES), name="chk_user_role"),
    )

    # Relationships
    organization = relationship("Organization", foreign_keys=[organization_id])


class Template(Base):
    """Checklist template. organization_id NULL marks a global default."""
    __tablename__ = "templates"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    organization = relationship("Organization", back_populates="templates")
    tasks = relationship(
        "TemplateTask",
        back_populates="template",
        order_by="TemplateTask.order_index",
        cascade="all, delete-orphan",
    )


class TemplateTask(Base):
    __tablename__ = "template_tasks"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    template_id = Column(UUID(as_uuid=True), ForeignKey("templates.id", ondelete="CASCADE"), nullable=False, index=True)
    task_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    assigned_department = Column(String(100), nullable=True)
    due_date_offset = Column(Integer, nullable=False, default=0)  # days from last working day
    priority = Column(String(20), nullable=False, default="Medium")
    order_index = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint(priority.in_(TASK_PRIORITIES), name="chk_template_task_priority"),
    )

    template = relationship("Template", back_populates="tasks")


class Offboarding(Base):
    """One employee's departure process."""
    __tablename__ = "offboardings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    employee_name = Column(String(255), nullable=False)
    employee_email = Column(String(255), nullable=False)
    department = Column(String(100), nullable=True)
    role = Column(String(255), nullable=True)
    last_working_day = Column(Date, nullable=False)
    manager_name = Column(String(255), nullable=True)
    manager_email = Column(String(255), nullable=True)
    reason_for_departure = Column(Text, nullable=True)
    template_id = Column(UUID(as_uuid=True), ForeignKey("templates.id"), nullable=True)
    status = Column(String(20), nullable=False, default="in_progress", index=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint(status.in_(OFFBOARDING_STATUSES), name="chk_offboarding_status"),
    )
    __mapper_args__ = {"version_id_col": version}

    # Relationships
    organization = relationship("Organization", back_populates="offboardings")
    tasks = relationship("Task", back_populates="offboarding", order_by="Task.order_index")
    creator = relationship("User", foreign_keys=[created_by])


class Task(Base):
    """Checklist task materialized from a TemplateTask."""
    __tablename__ = "tasks"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    offboarding_id = Column(UUID(as_uuid=True), ForeignKey("offboardings.id", ondelete="CASCADE"), nullable=False, index=True)
    task_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    assigned_department = Column(String(100), nullable=True)
    assigned_to = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True)
    due_date = Column(Date, nullable=True)
    priority = Column(String(20), nullable=False, default="Medium")
    order_index = Column(Integer, nullable=False, default=0)
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    completed_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    notes = Column(Text, nullable=True)
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint(priority.in_(TASK_PRIORITIES), name="chk_task_priority"),
    )
    __mapper_args__ = {"version_id_col": version}

    offboarding = relationship("Offboarding", back_populates="tasks")


class SurveyToken(Base):
    """Single-use capability to submit one exit survey without a session."""
    __tablename__ = "survey_tokens"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    token = Column(String(64), unique=True, nullable=False, index=True)
    offboarding_id = Column(UUID(as_uuid=True), ForeignKey("offboardings.id", ondelete="CASCADE"), nullable=False, index=True)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False)
    employee_email = Column(String(255), nullable=True)
    employee_name = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default="pending")
    expires_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(status.in_(["pending", "completed"]), name="chk_survey_token_status"),
        Index("idx_survey_tokens_pending", "offboarding_id", "expires_at", postgresql_where=(status == "pending")),
    )


class ExitSurvey(Base):
    __tablename__ = "exit_surveys"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    survey_token_id = Column(UUID(as_uuid=True), ForeignKey("survey_tokens.id", ondelete="SET NULL"), nullable=True)
    offboarding_id = Column(UUID(as_uuid=True), ForeignKey("offboardings.id", ondelete="CASCADE"), nullable=False, index=True)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    departure_reason = Column(String(255), nullable=False)
    likelihood_to_recommend = Column(Integer, nullable=False)
    would_return = Column(Boolean, nullable=False)
    would_return_reason = Column(Text, nullable=True)
    suggestions_for_improvement = Column(Text, nullable=True)
    submitted_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)  # NULL for public submissions
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            (likelihood_to_recommend >= 0) & (likelihood_to_recommend <= 10),
            name="chk_exit_survey_nps_range",
        ),
        UniqueConstraint("survey_token_id", name="uq_exit_survey_token"),
    )


class ExitInsight(Base):
    """Result of one AI analysis run over an organization's exit surveys."""
    __tablename__ = "exit_insights"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    survey_count = Column(Integer, nullable=False)
    time_period_days = Column(Integer, nullable=False)
    priority_level = Column(String(20), nullable=False, default="low")
    confidence_score = Column(Float, nullable=False)
    affected_departments = Column(JSONB, nullable=False, default=list)
    analysis = Column(JSONB, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)


class OAuthScan(Base):
    """One recorded review of the apps a departing employee can reach."""
    __tablename__ = "oauth_scans"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    offboarding_id = Column(UUID(as_uuid=True), ForeignKey("offboardings.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_email = Column(String(255), nullable=True)
    scan_type = Column(String(20), nullable=False, default="manual")
    status = Column(String(20), nullable=False, default="completed")
    total_apps_found = Column(Integer, nullable=False, default=0)
    initiated_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    connections = relationship("OAuthConnection", back_populates="scan")


class OAuthConnection(Base):
    """Third-party app access held by a departing employee."""
    __tablename__ = "oauth_connections"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    offboarding_id = Column(UUID(as_uuid=True), ForeignKey("offboardings.id", ondelete="SET NULL"), nullable=True, index=True)
    scan_id = Column(UUID(as_uuid=True), ForeignKey("oauth_scans.id", ondelete="SET NULL"), nullable=True, index=True)
    app_name = Column(String(255), nullable=False)
    app_type = Column(String(50), nullable=False, default="other")
    risk_level = Column(String(20), nullable=True)
    employee_email = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default="active", index=True)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    revoked_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    revocation_method = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint(status.in_(["active", "revoked"]), name="chk_oauth_connection_status"),
    )
    __mapper_args__ = {"version_id_col": version}

    scan = relationship("OAuthScan", back_populates="connections")


class RevocationLog(Base):
    """Append-only audit row, one per OAuthConnection transition."""
    __tablename__ = "revocation_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    oauth_connection_id = Column(UUID(as_uuid=True), ForeignKey("oauth_connections.id"), nullable=False, index=True)
    offboarding_id = Column(UUID(as_uuid=True), nullable=True)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    app_name = Column(String(255), nullable=False)
    employee_email = Column(String(255), nullable=True)
    action = Column(String(50), nullable=False)
    revocation_method = Column(String(50), nullable=False)
    status_before = Column(String(20), nullable=False)
    status_after = Column(String(20), nullable=False)
    performed_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)


class Notification(Base):
    """In-app notification addressed to one user."""
    __tablename__ = "notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    message = Column(Text, nullable=False)
    type = Column(String(50), nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    related_task_id = Column(UUID(as_uuid=True), ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)
    related_offboarding_id = Column(UUID(as_uuid=True), ForeignKey("offboardings.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (
        Index("idx_notifications_unread", "user_id", "created_at", postgresql_where=(read == False)),  # noqa: E712
    )


class Invitation(Base):
    """Pending or accepted invitation to join an organization."""
    __tablename__ = "invitations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    role = Column(String(50), nullable=False, default="user")
    token = Column(String(64), unique=True, nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending")
    invited_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(status.in_(INVITATION_STATUSES), name="chk_invitation_status"),
        CheckConstraint(role.in_(USER_ROLES), name="chk_invitation_role"),
        # One open invitation per address and organization.
        Index(
            "uq_invitations_pending_email",
            "organization_id",
            "email",
            unique=True,
            postgresql_where=(status == "pending"),
        ),
    )
