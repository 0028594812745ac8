"""Team invitations: invite by email, then accept as an existing or new user.

An invitation moves ``pending -> accepted`` once. Expiry is checked on read.
Open invitations hold a seat, so the plan's member cap counts active
members plus unexpired pending invitations for other addresses.
"""
from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import create_access_token, get_password_hash, user_organization_id
from ..config import settings
from ..domain_errors import DomainError, NotFoundError, StateConflictError, ValidationError
from ..models import USER_ROLES, Invitation, Organization, User
from ..services.background import enqueue
from ..services.entitlements import can_invite_more_members, limits_for_user
from ..worker import send_team_invitation
from .accounts import AuthenticatedSession

logger = logging.getLogger(__name__)


@dataclass
class InviteResult:
    invitation: Invitation
    email_queued: bool


@dataclass
class InvitationPreview:
    invitation: Invitation
    organization_name: str | None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _invalid_invitation() -> NotFoundError:
    return NotFoundError(
        code="INVITATION_NOT_FOUND",
        message="This invitation is invalid or has already been used",
    )


def seats_in_use(*, db: Session, organization_id: UUID, excluding_email: str, now: datetime) -> int:
    members = db.query(func.count(User.id)).filter(
        User.organization_id == organization_id,
        User.is_active == True,  # noqa: E712
    ).scalar() or 0
    open_invitations = db.query(func.count(Invitation.id)).filter(
        Invitation.organization_id == organization_id,
        Invitation.status == "pending",
        Invitation.expires_at > now,
        Invitation.email != excluding_email,
    ).scalar() or 0
    return members + open_invitations


def invite_member_use_case(
    *,
    db: Session,
    email: str,
    role: str,
    current_user: User,
    now: datetime | None = None,
) -> InviteResult:
    """Create (or replace) the pending invitation for an address and email it."""
    org_id = user_organization_id(current_user)
    if org_id is None:
        raise ValidationError(code="NO_ORGANIZATION", message="Could not find your organization")
    email = (email or "").strip().lower()
    if "@" not in email:
        raise ValidationError(code="INVALID_EMAIL", message="Please enter a valid email address")
    if role not in USER_ROLES:
        raise ValidationError(code="INVALID_ROLE", message="Please select a role")

    if db.query(User).filter(User.email == email, User.organization_id == org_id).first():
        raise StateConflictError(
            code="ALREADY_MEMBER",
            message="This user is already a member of your organization",
            http_status=409,
        )

    now = now or _utc_now()
    used = seats_in_use(db=db, organization_id=org_id, excluding_email=email, now=now)
    if not can_invite_more_members(used, current_user.subscription_plan, current_user.subscription_status):
        limit = limits_for_user(current_user).max_team_members
        raise DomainError(
            code="PLAN_LIMIT_REACHED",
            http_status=403,
            message=f"Your plan allows {limit} team members",
            details={"limit": limit, "used": used},
        )

    # A new invitation replaces the open one for the same address.
    db.query(Invitation).filter(
        Invitation.organization_id == org_id,
        Invitation.email == email,
        Invitation.status == "pending",
    ).delete(synchronize_session=False)

    invitation = Invitation(
        id=uuid.uuid4(),
        organization_id=org_id,
        email=email,
        role=role,
        token=secrets.token_urlsafe(32),
        status="pending",
        invited_by=current_user.id,
        expires_at=now + timedelta(days=settings.INVITATION_TTL_DAYS),
    )
    db.add(invitation)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise StateConflictError(
            code="INVITATION_ALREADY_PENDING",
            message="An invitation for this address was just sent",
            http_status=409,
        )
    db.refresh(invitation)
    logger.info("User %s invited %s to org %s as %s", current_user.id, email, org_id, role)

    email_queued = enqueue(send_team_invitation, str(invitation.id), current_user.name or current_user.email)
    if not email_queued:
        logger.warning("Invitation email for %s not queued", invitation.id)
    return InviteResult(invitation=invitation, email_queued=email_queued)


def _load_pending_invitation(*, db: Session, token: str, now: datetime) -> Invitation:
    invitation = db.query(Invitation).filter(Invitation.token == token).first()
    if invitation is None or invitation.status != "pending":
        raise _invalid_invitation()
    if _as_utc(invitation.expires_at) < now:
        raise StateConflictError(code="INVITATION_EXPIRED", message="This invitation has expired")
    return invitation


def _consume(*, db: Session, invitation: Invitation, now: datetime) -> None:
    consumed = db.query(Invitation).filter(
        Invitation.id == invitation.id,
        Invitation.status == "pending",
    ).update(
        {"status": "accepted", "accepted_at": now},
        synchronize_session=False,
    )
    if consumed != 1:
        db.rollback()
        raise _invalid_invitation()


def get_invitation_use_case(*, db: Session, token: str, now: datetime | None = None) -> InvitationPreview:
    invitation = _load_pending_invitation(db=db, token=token, now=now or _utc_now())
    organization_name = db.query(Organization.name).filter(
        Organization.id == invitation.organization_id,
    ).scalar()
    return InvitationPreview(invitation=invitation, organization_name=organization_name)


def accept_invitation_use_case(
    *,
    db: Session,
    token: str,
    current_user: User,
    now: datetime | None = None,
) -> Invitation:
    """Move the signed-in invitee into the inviting organization."""
    now = now or _utc_now()
    invitation = _load_pending_invitation(db=db, token=token, now=now)
    if current_user.email.strip().lower() != invitation.email:
        raise DomainError(
            code="INVITATION_EMAIL_MISMATCH",
            http_status=403,
            message="This invitation is for a different email address",
        )

    _consume(db=db, invitation=invitation, now=now)
    current_user.organization_id = invitation.organization_id
    current_user.current_organization_id = invitation.organization_id
    current_user.role = invitation.role
    current_user.is_active = True
    db.commit()
    logger.info("User %s joined org %s as %s", current_user.id, invitation.organization_id, invitation.role)
    return invitation


def signup_with_invitation_use_case(
    *,
    db: Session,
    token: str,
    name: str,
    password: str,
    now: datetime | None = None,
) -> AuthenticatedSession:
    """Create the invitee's account directly inside the inviting organization."""
    now = now or _utc_now()
    if not (name or "").strip():
        raise ValidationError(code="NAME_REQUIRED", message="Please enter your name")
    if len(password or "") < settings.PASSWORD_MIN_LENGTH:
        raise ValidationError(
            code="PASSWORD_TOO_SHORT",
            message=f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters",
        )

    invitation = _load_pending_invitation(db=db, token=token, now=now)
    duplicate = StateConflictError(
        code="EMAIL_ALREADY_REGISTERED",
        message="An account with this email already exists, log in to accept the invitation",
    )
    if db.query(User).filter(User.email == invitation.email).first():
        raise duplicate

    organization_plan = db.query(Organization.subscription_plan).filter(
        Organization.id == invitation.organization_id,
    ).scalar()

    _consume(db=db, invitation=invitation, now=now)
    user = User(
        id=uuid.uuid4(),
        email=invitation.email,
        password_hash=get_password_hash(password),
        name=name.strip(),
        role=invitation.role,
        organization_id=invitation.organization_id,
        current_organization_id=invitation.organization_id,
        subscription_plan=organization_plan,
        is_active=True,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise duplicate
    db.refresh(user)

    logger.info("Invited user %s signed up into org %s", user.id, invitation.organization_id)
    return AuthenticatedSession(user=user, access_token=create_access_token({"sub": str(user.id)}))
