"""Recording which third-party apps a departing employee can still reach."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.orm import Session

from ..auth import user_organization_id
from ..domain_errors import DomainError, NotFoundError, ValidationError
from ..models import OAuthConnection, OAuthScan, Offboarding, User
from ..services.entitlements import has_feature_access, upgrade_message

logger = logging.getLogger(__name__)

SCAN_TYPE_MANUAL = "manual"

# App name -> (app type, risk level). Unlisted apps are recorded as "other".
KNOWN_APPS: dict[str, tuple[str, str]] = {
    "Google Workspace": ("productivity", "high"),
    "Microsoft 365": ("productivity", "high"),
    "Slack": ("communication", "high"),
    "GitHub": ("development", "critical"),
    "GitLab": ("development", "critical"),
    "Jira": ("project_management", "medium"),
    "Confluence": ("documentation", "medium"),
    "Notion": ("productivity", "medium"),
    "Trello": ("project_management", "low"),
    "Asana": ("project_management", "low"),
    "Zoom": ("communication", "low"),
    "Dropbox": ("storage", "high"),
    "Google Drive": ("storage", "high"),
    "OneDrive": ("storage", "high"),
    "AWS Console": ("infrastructure", "critical"),
    "Azure Portal": ("infrastructure", "critical"),
    "Salesforce": ("crm", "high"),
    "HubSpot": ("crm", "medium"),
    "Figma": ("design", "low"),
    "Adobe Creative Cloud": ("design", "low"),
}


@dataclass
class ScanResult:
    scan: OAuthScan
    connections: list[OAuthConnection]


def _clean_app_names(app_names: list[str]) -> list[str]:
    seen: set[str] = set()
    cleaned: list[str] = []
    for name in app_names:
        name = (name or "").strip()
        if name and name not in seen:
            seen.add(name)
            cleaned.append(name)
    return cleaned


def record_app_scan_use_case(
    *,
    db: Session,
    offboarding_id: UUID,
    app_names: list[str],
    current_user: User,
    now: datetime | None = None,
) -> ScanResult:
    """Store a manual scan and one active connection per selected app.

    Apps that already have an active connection for the offboarding are
    counted in the scan but not recorded twice.
    """
    org_id = user_organization_id(current_user)
    if org_id is None:
        raise ValidationError(code="NO_ORGANIZATION", message="User has no organization")
    if not has_feature_access("security_scanner", current_user.subscription_plan, current_user.subscription_status):
        raise DomainError(
            code="FEATURE_NOT_AVAILABLE",
            http_status=403,
            message=upgrade_message("security_scanner"),
            details={"feature": "security_scanner"},
        )

    selected = _clean_app_names(app_names)
    if not selected:
        raise ValidationError(code="NO_APPS_SELECTED", message="Select at least one app to scan")

    offboarding = db.query(Offboarding).filter(
        Offboarding.id == offboarding_id,
        Offboarding.organization_id == org_id,
    ).first()
    if not offboarding:
        raise NotFoundError(code="OFFBOARDING_NOT_FOUND", message="Offboarding not found")

    already_active = {
        app_name
        for (app_name,) in db.query(OAuthConnection.app_name).filter(
            OAuthConnection.offboarding_id == offboarding.id,
            OAuthConnection.status == "active",
        ).all()
    }

    now = now or datetime.now(timezone.utc)
    scan = OAuthScan(
        id=uuid.uuid4(),
        organization_id=org_id,
        offboarding_id=offboarding.id,
        employee_email=offboarding.employee_email,
        scan_type=SCAN_TYPE_MANUAL,
        status="completed",
        total_apps_found=len(selected),
        initiated_by=current_user.id,
        completed_at=now,
    )
    db.add(scan)

    connections = []
    for app_name in selected:
        if app_name in already_active:
            continue
        app_type, risk_level = KNOWN_APPS.get(app_name, ("other", None))
        connection = OAuthConnection(
            organization_id=org_id,
            offboarding_id=offboarding.id,
            scan_id=scan.id,
            app_name=app_name,
            app_type=app_type,
            risk_level=risk_level,
            employee_email=offboarding.employee_email,
            status="active",
        )
        db.add(connection)
        connections.append(connection)

    db.commit()
    logger.info(
        "Scan %s for offboarding %s: %s apps found, %s new connections",
        scan.id,
        offboarding.id,
        len(selected),
        len(connections),
    )
    return ScanResult(scan=scan, connections=connections)
