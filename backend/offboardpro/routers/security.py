"""Security endpoints: bulk revocation of third-party app access."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import User
from ..schemas import RevokeAllResponse
from ..use_cases.revocation import revoke_all_connections_use_case

router = APIRouter(prefix="/security", tags=["security"])


@router.post("/revoke-all", response_model=RevokeAllResponse)
def revoke_all(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = revoke_all_connections_use_case(db=db, current_user=current_user)
    return RevokeAllResponse(revoked_count=result.revoked_count, message=result.message)
