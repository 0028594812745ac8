"""Exit survey endpoints. Token validation and submission are public."""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas import (
    CreateSurveyTokenRequest,
    CreateSurveyTokenResponse,
    ExitSurveySubmission,
    OffboardingSnapshot,
    SuccessResponse,
    SurveyTokenPublic,
    ValidateTokenRequest,
    ValidateTokenResponse,
)
from ..use_cases.survey_tokens import (
    issue_token_for_offboarding_use_case,
    submit_survey_use_case,
    validate_token_use_case,
)

router = APIRouter(prefix="/exit-survey", tags=["exit-survey"])
logger = logging.getLogger(__name__)


@router.post("/create-token", response_model=CreateSurveyTokenResponse)
def create_token(payload: CreateSurveyTokenRequest, db: Session = Depends(get_db)):
    """Issue (or return the still usable) survey token for an offboarding."""
    issued = issue_token_for_offboarding_use_case(
        db=db,
        offboarding_id=payload.offboarding_id,
        organization_id=payload.organization_id,
        employee_email=payload.employee_email,
        employee_name=payload.employee_name,
    )
    return CreateSurveyTokenResponse(
        token=issued.survey_token.token,
        expires_at=issued.survey_token.expires_at,
        already_exists=issued.already_exists,
    )


@router.post("/validate-token", response_model=ValidateTokenResponse, response_model_exclude_none=True)
def validate_token(payload: ValidateTokenRequest, db: Session = Depends(get_db)):
    result = validate_token_use_case(db=db, token=payload.token)
    if not result.valid:
        body = ValidateTokenResponse(valid=False, reason=result.reason, error=result.message)
        return JSONResponse(
            status_code=result.http_status,
            content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
        )

    return ValidateTokenResponse(
        valid=True,
        survey_token=SurveyTokenPublic.model_validate(result.survey_token),
        offboarding=OffboardingSnapshot.model_validate(result.offboarding) if result.offboarding else None,
    )


@router.post("/submit", response_model=SuccessResponse)
def submit_survey(payload: ExitSurveySubmission, db: Session = Depends(get_db)):
    submit_survey_use_case(db=db, data=payload)
    return SuccessResponse(message="Thank you for your feedback")
