"""Offboarding endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import PermissionChecker, get_current_user
from ..database import get_db
from ..models import User
from ..schemas import (
    AppScanRequest,
    AppScanResponse,
    FinalizeResponse,
    OAuthConnectionResponse,
    OffboardingCreate,
    OffboardingCreateResponse,
    OffboardingListResponse,
    OffboardingResponse,
)
from ..use_cases.app_scans import record_app_scan_use_case
from ..use_cases.offboardings import (
    create_offboarding_use_case,
    finalize_offboarding_use_case,
    list_offboardings_use_case,
)

router = APIRouter(prefix="/offboardings", tags=["offboardings"])


@router.get("", response_model=OffboardingListResponse)
def list_offboardings(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    offboardings = list_offboardings_use_case(db=db, current_user=current_user)
    return OffboardingListResponse(
        offboardings=[OffboardingResponse.model_validate(o) for o in offboardings]
    )


@router.post("", response_model=OffboardingCreateResponse)
def create_offboarding(
    payload: OffboardingCreate,
    current_user: User = Depends(PermissionChecker("canManageOffboardings")),
    db: Session = Depends(get_db),
):
    """Create an offboarding and its checklist from a template."""
    offboarding = create_offboarding_use_case(db=db, data=payload, current_user=current_user)
    return OffboardingCreateResponse(offboarding=OffboardingResponse.model_validate(offboarding))


@router.post("/{offboarding_id}/finalize", response_model=FinalizeResponse, response_model_exclude_none=True)
def finalize_offboarding(
    offboarding_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Mark the offboarding completed and send the exit survey.

    Token or email failures do not undo the completion; they come back as a warning.
    """
    result = finalize_offboarding_use_case(db=db, offboarding_id=offboarding_id, current_user=current_user)
    if result.warning:
        return FinalizeResponse(warning=result.warning)
    return FinalizeResponse(message="Offboarding completed and exit survey sent")


@router.post("/{offboarding_id}/scan-apps", response_model=AppScanResponse)
def scan_apps(
    offboarding_id: UUID,
    payload: AppScanRequest,
    current_user: User = Depends(PermissionChecker("canRevokeAccess")),
    db: Session = Depends(get_db),
):
    """Record the apps the employee can still access, ready for revocation."""
    result = record_app_scan_use_case(
        db=db,
        offboarding_id=offboarding_id,
        app_names=payload.app_names,
        current_user=current_user,
    )
    return AppScanResponse(
        scan_id=result.scan.id,
        total_apps_found=result.scan.total_apps_found,
        connections=[OAuthConnectionResponse.model_validate(c) for c in result.connections],
    )
