"""Organization bootstrap for an existing user."""
from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from ..domain_errors import ValidationError
from ..models import Organization, User

logger = logging.getLogger(__name__)


def create_organization_use_case(*, db: Session, organization_name: str, user_id: UUID) -> Organization:
    """Create an organization, make the user its admin and activate the user."""
    if not organization_name or not organization_name.strip():
        raise ValidationError(code="ORGANIZATION_NAME_REQUIRED", message="Organization name and user ID required")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise ValidationError(code="USER_NOT_FOUND", message="User not found")

    organization = Organization(
        name=organization_name.strip(),
        subscription_plan=user.subscription_plan,
        trial_ends_at=user.trial_ends_at,
    )
    db.add(organization)
    db.flush()

    user.organization_id = organization.id
    user.current_organization_id = organization.id
    user.role = "admin"
    user.is_active = True
    db.commit()
    db.refresh(organization)

    logger.info("Organization %s created by user %s", organization.id, user.id)
    return organization
