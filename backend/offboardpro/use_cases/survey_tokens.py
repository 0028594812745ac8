"""Exit-survey token issuance, validation and consumption.

A token moves ``pending -> completed`` exactly once, on survey submission.
Expiry is not materialized: a pending token past ``expires_at`` is simply
rejected on read. Re-issuing replaces the offboarding's pending token rows
unless a usable one already exists, which is returned unchanged. Once a
token is completed the offboarding never gets another one.
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import DomainError, NotFoundError, StateConflictError, ValidationError
from ..models import ExitSurvey, Offboarding, SurveyToken
from ..schemas import ExitSurveySubmission
from ..services.background import enqueue
from ..worker import analyze_exit_surveys

logger = logging.getLogger(__name__)

REASON_INVALID = "invalid_token"
REASON_EXPIRED = "token_expired"
REASON_COMPLETED = "survey_completed"


@dataclass
class IssuedSurveyToken:
    survey_token: SurveyToken
    already_exists: bool
    survey_completed: bool = False


@dataclass
class TokenValidation:
    valid: bool
    http_status: int = 200
    reason: str | None = None
    message: str | None = None
    survey_token: SurveyToken | None = None
    offboarding: Offboarding | None = None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def generate_token() -> str:
    return secrets.token_urlsafe(32)


def is_token_usable(survey_token: SurveyToken, now: datetime) -> bool:
    return survey_token.status == "pending" and _as_utc(survey_token.expires_at) > now


def create_or_reuse_token_use_case(
    *,
    db: Session,
    offboarding_id: UUID,
    organization_id: UUID,
    employee_email: str | None,
    employee_name: str | None,
    now: datetime | None = None,
) -> IssuedSurveyToken:
    """Return the offboarding's usable or consumed token, or replace its pending tokens with a new one."""
    now = now or _utc_now()
    existing = db.query(SurveyToken).filter(
        SurveyToken.offboarding_id == offboarding_id,
    ).all()

    for survey_token in existing:
        # The submitted survey references this row; it must survive re-issue.
        if survey_token.status == "completed":
            return IssuedSurveyToken(survey_token=survey_token, already_exists=True, survey_completed=True)
    for survey_token in existing:
        if is_token_usable(survey_token, now):
            return IssuedSurveyToken(survey_token=survey_token, already_exists=True)

    if existing:
        db.query(SurveyToken).filter(
            SurveyToken.offboarding_id == offboarding_id,
            SurveyToken.status == "pending",
        ).delete(synchronize_session=False)

    survey_token = SurveyToken(
        token=generate_token(),
        offboarding_id=offboarding_id,
        organization_id=organization_id,
        employee_email=employee_email,
        employee_name=employee_name,
        status="pending",
        expires_at=now + timedelta(days=settings.SURVEY_TOKEN_TTL_DAYS),
    )
    db.add(survey_token)
    db.commit()
    logger.info("Issued survey token for offboarding %s", offboarding_id)
    return IssuedSurveyToken(survey_token=survey_token, already_exists=False)


def issue_token_for_offboarding_use_case(
    *,
    db: Session,
    offboarding_id: UUID,
    organization_id: UUID,
    employee_email: str | None,
    employee_name: str | None,
    now: datetime | None = None,
) -> IssuedSurveyToken:
    """Token issuance for callers that name the offboarding by id only."""
    offboarding = db.query(Offboarding).filter(
        Offboarding.id == offboarding_id,
        Offboarding.organization_id == organization_id,
    ).first()
    if not offboarding:
        raise ValidationError(
            code="UNKNOWN_OFFBOARDING",
            message="Offboarding does not exist in this organization",
        )
    issued = create_or_reuse_token_use_case(
        db=db,
        offboarding_id=offboarding.id,
        organization_id=organization_id,
        employee_email=employee_email or offboarding.employee_email,
        employee_name=employee_name or offboarding.employee_name,
        now=now,
    )
    if issued.survey_completed:
        raise StateConflictError(
            code="SURVEY_ALREADY_COMPLETED",
            message="Survey already completed",
            details={"reason": REASON_COMPLETED},
        )
    return issued


def _load_usable_token(*, db: Session, token: str, now: datetime) -> SurveyToken:
    survey_token = db.query(SurveyToken).filter(SurveyToken.token == token).first()
    if survey_token is None:
        raise NotFoundError(
            code="SURVEY_TOKEN_NOT_FOUND",
            message="Invalid token",
            details={"reason": REASON_INVALID},
        )
    if _as_utc(survey_token.expires_at) < now:
        raise StateConflictError(
            code="SURVEY_TOKEN_EXPIRED",
            message="Token has expired",
            details={"reason": REASON_EXPIRED},
        )
    if survey_token.status == "completed":
        raise StateConflictError(
            code="SURVEY_ALREADY_COMPLETED",
            message="Survey already completed",
            details={"reason": REASON_COMPLETED},
        )
    return survey_token


def validate_token_use_case(*, db: Session, token: str, now: datetime | None = None) -> TokenValidation:
    """Read-only freshness check for the public survey page."""
    try:
        survey_token = _load_usable_token(db=db, token=token, now=now or _utc_now())
    except DomainError as exc:
        return TokenValidation(
            valid=False,
            http_status=exc.http_status,
            reason=(exc.details or {}).get("reason"),
            message=exc.message,
        )

    offboarding = db.query(Offboarding).filter(Offboarding.id == survey_token.offboarding_id).first()
    return TokenValidation(valid=True, survey_token=survey_token, offboarding=offboarding)


def submit_survey_use_case(
    *,
    db: Session,
    data: ExitSurveySubmission,
    now: datetime | None = None,
) -> ExitSurvey:
    """Record the survey and consume the token in one transaction."""
    now = now or _utc_now()
    survey_token = _load_usable_token(db=db, token=data.token, now=now)

    survey = ExitSurvey(
        survey_token_id=survey_token.id,
        offboarding_id=survey_token.offboarding_id,
        organization_id=survey_token.organization_id,
        departure_reason=data.departure_reason,
        likelihood_to_recommend=data.likelihood_to_recommend,
        would_return=data.would_return,
        would_return_reason=data.would_return_reason or None,
        suggestions_for_improvement=data.suggestions_for_improvement or None,
        submitted_by=None,
    )
    db.add(survey)

    consumed = db.query(SurveyToken).filter(
        SurveyToken.id == survey_token.id,
        SurveyToken.status == "pending",
    ).update(
        {"status": "completed", "completed_at": now},
        synchronize_session=False,
    )
    already_completed = StateConflictError(
        code="SURVEY_ALREADY_COMPLETED",
        message="Survey already completed",
        details={"reason": REASON_COMPLETED},
    )
    if consumed != 1:
        db.rollback()
        raise already_completed
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise already_completed

    organization_id = survey_token.organization_id
    logger.info("Exit survey submitted for offboarding %s", survey.offboarding_id)
    enqueue(analyze_exit_surveys, str(organization_id))
    return survey
