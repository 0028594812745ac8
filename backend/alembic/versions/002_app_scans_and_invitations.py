"""app scans and team invitations

Revision ID: 002
Revises: 001
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def _uuid(name: str, *args, **kwargs) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), *args, **kwargs)


def upgrade() -> None:
    op.create_table(
        "oauth_scans",
        _uuid("id", primary_key=True),
        _uuid("organization_id", sa.ForeignKey("organizations.id"), nullable=False),
        _uuid("offboarding_id", sa.ForeignKey("offboardings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("employee_email", sa.String(255), nullable=True),
        sa.Column("scan_type", sa.String(20), nullable=False, server_default="manual"),
        sa.Column("status", sa.String(20), nullable=False, server_default="completed"),
        sa.Column("total_apps_found", sa.Integer(), nullable=False, server_default="0"),
        _uuid("initiated_by", sa.ForeignKey("users.id"), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_oauth_scans_organization_id", "oauth_scans", ["organization_id"])
    op.create_index("ix_oauth_scans_offboarding_id", "oauth_scans", ["offboarding_id"])

    op.add_column(
        "oauth_connections",
        _uuid("scan_id", sa.ForeignKey("oauth_scans.id", ondelete="SET NULL"), nullable=True),
    )
    op.add_column(
        "oauth_connections",
        sa.Column("app_type", sa.String(50), nullable=False, server_default="other"),
    )
    op.add_column("oauth_connections", sa.Column("risk_level", sa.String(20), nullable=True))
    op.create_index("ix_oauth_connections_scan_id", "oauth_connections", ["scan_id"])

    op.create_table(
        "invitations",
        _uuid("id", primary_key=True),
        _uuid("organization_id", sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("role", sa.String(50), nullable=False, server_default="user"),
        sa.Column("token", sa.String(64), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        _uuid("invited_by", sa.ForeignKey("users.id"), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("status IN ('pending', 'accepted')", name="chk_invitation_status"),
        sa.CheckConstraint(
            "role IN ('admin', 'hr_manager', 'it_manager', 'manager', 'user')",
            name="chk_invitation_role",
        ),
    )
    op.create_index("ix_invitations_token", "invitations", ["token"], unique=True)
    op.create_index("ix_invitations_organization_id", "invitations", ["organization_id"])
    op.create_index(
        "uq_invitations_pending_email",
        "invitations",
        ["organization_id", "email"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )


def downgrade() -> None:
    op.drop_table("invitations")
    op.drop_index("ix_oauth_connections_scan_id", table_name="oauth_connections")
    op.drop_column("oauth_connections", "risk_level")
    op.drop_column("oauth_connections", "app_type")
    op.drop_column("oauth_connections", "scan_id")
    op.drop_table("oauth_scans")
