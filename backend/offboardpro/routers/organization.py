"""Organization endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas import OrganizationBrief, OrganizationCreateRequest, OrganizationCreateResponse
from ..use_cases.organizations import create_organization_use_case

router = APIRouter(prefix="/organization", tags=["organization"])


@router.post("/create", response_model=OrganizationCreateResponse)
def create_organization(payload: OrganizationCreateRequest, db: Session = Depends(get_db)):
    """Create an organization for a user who signed up without one."""
    organization = create_organization_use_case(
        db=db,
        organization_name=payload.organization_name,
        user_id=payload.user_id,
    )
    return OrganizationCreateResponse(organization=OrganizationBrief.model_validate(organization))
