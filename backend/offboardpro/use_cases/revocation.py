"""Bulk revocation of third-party app access with an audit trail."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from ..auth import user_organization_id
from ..domain_errors import ValidationError, concurrent_modification
from ..models import OAuthConnection, RevocationLog, User
from ..services.background import enqueue
from ..worker import send_security_alert

logger = logging.getLogger(__name__)

REVOCATION_METHOD_BULK = "bulk"


@dataclass
class RevocationResult:
    revoked_count: int
    message: str


def revoke_all_connections_use_case(
    *,
    db: Session,
    current_user: User,
    now: datetime | None = None,
) -> RevocationResult:
    """Revoke every active connection of the actor's organization.

    Status flips and audit rows commit together. If another writer changed
    any of the snapshot rows in between, nothing is written.
    """
    org_id = user_organization_id(current_user)
    if org_id is None:
        raise ValidationError(code="NO_ORGANIZATION", message="No organization found")

    active = db.query(OAuthConnection).filter(
        OAuthConnection.organization_id == org_id,
        OAuthConnection.status == "active",
    ).all()
    if not active:
        return RevocationResult(revoked_count=0, message="No active connections to revoke")

    now = now or datetime.now(timezone.utc)
    snapshot_ids = [conn.id for conn in active]

    updated = db.query(OAuthConnection).filter(
        OAuthConnection.id.in_(snapshot_ids),
        OAuthConnection.status == "active",
    ).update(
        {
            "status": "revoked",
            "revoked_at": now,
            "revoked_by": current_user.id,
            "revocation_method": REVOCATION_METHOD_BULK,
            "version": OAuthConnection.version + 1,
        },
        synchronize_session=False,
    )
    if updated != len(snapshot_ids):
        db.rollback()
        logger.warning(
            "Bulk revocation aborted for org %s: %s of %s connections changed concurrently",
            org_id,
            len(snapshot_ids) - updated,
            len(snapshot_ids),
        )
        raise concurrent_modification("OAuth connection")

    for conn in active:
        db.add(
            RevocationLog(
                oauth_connection_id=conn.id,
                offboarding_id=conn.offboarding_id,
                organization_id=conn.organization_id,
                app_name=conn.app_name,
                employee_email=conn.employee_email,
                action="revoke_success",
                revocation_method=REVOCATION_METHOD_BULK,
                status_before="active",
                status_after="revoked",
                performed_by=current_user.id,
            )
        )
    db.commit()

    revoked_count = len(snapshot_ids)
    logger.info("Revoked %s connections for org %s by user %s", revoked_count, org_id, current_user.id)
    enqueue(send_security_alert, current_user.email, "bulk_revocation", revoked_count, current_user.email)

    return RevocationResult(
        revoked_count=revoked_count,
        message=f"Successfully revoked {revoked_count} connections",
    )
