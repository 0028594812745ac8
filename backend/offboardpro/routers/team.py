"""Team invitation endpoints. Viewing an invitation and signing up with it are public."""
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..auth import PermissionChecker, get_current_user
from ..database import get_db
from ..models import User
from ..schemas import (
    AcceptInvitationResponse,
    InvitationPreviewResponse,
    InvitationResponse,
    InvitationSignupRequest,
    InviteMemberRequest,
    InviteMemberResponse,
    LoginResponse,
    UserResponse,
)
from ..use_cases.invitations import (
    accept_invitation_use_case,
    get_invitation_use_case,
    invite_member_use_case,
    signup_with_invitation_use_case,
)

router = APIRouter(prefix="/team", tags=["team"])


@router.post("/invitations", response_model=InviteMemberResponse)
def invite_member(
    payload: InviteMemberRequest,
    current_user: User = Depends(PermissionChecker("canManageTeam")),
    db: Session = Depends(get_db),
):
    result = invite_member_use_case(db=db, email=payload.email, role=payload.role, current_user=current_user)
    return InviteMemberResponse(
        invitation=InvitationResponse.model_validate(result.invitation),
        email_sent=result.email_queued,
    )


@router.get("/invitations/{token}", response_model=InvitationPreviewResponse)
def get_invitation(token: str, db: Session = Depends(get_db)):
    preview = get_invitation_use_case(db=db, token=token)
    return InvitationPreviewResponse(
        invitation=InvitationResponse.model_validate(preview.invitation),
        organization_name=preview.organization_name,
    )


@router.post("/invitations/{token}/accept", response_model=AcceptInvitationResponse)
def accept_invitation(
    token: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    invitation = accept_invitation_use_case(db=db, token=token, current_user=current_user)
    return AcceptInvitationResponse(organization_id=invitation.organization_id, role=invitation.role)


@router.post("/invitations/{token}/signup", response_model=LoginResponse)
def signup_with_invitation(
    token: str,
    payload: InvitationSignupRequest,
    response: Response,
    db: Session = Depends(get_db),
):
    """Create the invitee's account inside the inviting organization."""
    response.headers["Cache-Control"] = "no-store"
    session = signup_with_invitation_use_case(db=db, token=token, name=payload.name, password=payload.password)
    return LoginResponse(
        user=UserResponse.model_validate(session.user),
        access_token=session.access_token,
    )
