"""Signup and login."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import authenticate_user, create_access_token, get_password_hash
from ..config import settings
from ..domain_errors import AuthError, StateConflictError, ValidationError
from ..models import Organization, User
from ..schemas import LoginRequest, SignupRequest
from .trials import is_disposable_email, start_trial

logger = logging.getLogger(__name__)


@dataclass
class AuthenticatedSession:
    user: User
    access_token: str


def _issue_session(user: User) -> AuthenticatedSession:
    token = create_access_token({"sub": str(user.id)})
    return AuthenticatedSession(user=user, access_token=token)


def login_use_case(*, db: Session, data: LoginRequest) -> AuthenticatedSession:
    if not data.email or not data.password:
        raise ValidationError(code="CREDENTIALS_REQUIRED", message="Email and password are required")

    user = authenticate_user(db, email=data.email, password=data.password)
    if user is None:
        raise AuthError(code="INVALID_CREDENTIALS", message="Invalid email or password")

    logger.info("User %s logged in", user.id)
    return _issue_session(user)


def signup_use_case(*, db: Session, data: SignupRequest, now: datetime | None = None) -> AuthenticatedSession:
    """Create an organization with its admin on a fresh trial."""
    email = data.email.strip().lower()
    if not data.organization_name.strip() or not data.name.strip() or not email:
        raise ValidationError(code="FIELDS_REQUIRED", message="All fields are required")
    if len(data.password) < settings.PASSWORD_MIN_LENGTH:
        raise ValidationError(
            code="PASSWORD_TOO_SHORT",
            message=f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters",
        )
    if is_disposable_email(email):
        raise ValidationError(
            code="DISPOSABLE_EMAIL",
            message="Disposable email addresses are not eligible for a trial",
        )

    duplicate = StateConflictError(
        code="EMAIL_ALREADY_REGISTERED",
        message="An account with this email already exists",
    )
    if db.query(User).filter(User.email == email).first():
        raise duplicate

    now = now or datetime.now(timezone.utc)
    organization = Organization(name=data.organization_name.strip(), subscription_plan=settings.TRIAL_PLAN)
    db.add(organization)
    db.flush()

    user = User(
        email=email,
        password_hash=get_password_hash(data.password),
        name=data.name.strip(),
        role="admin",
        organization_id=organization.id,
        current_organization_id=organization.id,
        is_active=True,
    )
    start_trial(user, now=now)
    organization.trial_ends_at = user.trial_ends_at
    db.add(user)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise duplicate
    db.refresh(user)

    logger.info("Signup: user %s created organization %s on trial", user.id, organization.id)
    return _issue_session(user)
