"""
Celery worker: email delivery, exit analysis and the daily trial downgrade.

Request handlers only enqueue these jobs after their own transaction has
committed, so every job re-reads what it needs from the database.
"""
from celery import Celery
from celery.schedules import crontab
import logging
from uuid import UUID

from .config import settings
from .database import SessionLocal
from .models import Invitation, Offboarding, Organization, SurveyToken, Task, User
from .services import email as email_service
from .services.background import enqueue
from .services.email import EmailDeliveryError
from .services.exit_analysis import ExitAnalysisError
from .use_cases.exit_insights import analyze_exit_surveys_use_case
from .use_cases.trials import DowngradedTrial, downgrade_expired_trials_use_case

logger = logging.getLogger(__name__)

celery_app = Celery(
    "offboardpro",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
)

# Transient provider failures; anything else (missing key, 4xx) is not retried.
RETRYABLE_EMAIL_ERRORS = ("RATE_LIMIT", "EXCEPTION", "HTTP_5")

EMAIL_RETRY_OPTIONS = {
    "autoretry_for": (EmailDeliveryError,),
    "retry_backoff": True,
    "retry_backoff_max": 600,
    "retry_jitter": True,
    "max_retries": 5,
}


def _check_delivery(ok: bool, error: str | None, what: str) -> bool:
    if ok:
        logger.info("Sent %s", what)
        return True
    if error and error.startswith(RETRYABLE_EMAIL_ERRORS):
        logger.warning("Sending %s failed, will retry: %s", what, error)
        raise EmailDeliveryError(error)
    logger.error("Sending %s failed permanently: %s", what, error)
    return False


@celery_app.task(name="send_exit_survey_invitation", **EMAIL_RETRY_OPTIONS)
def send_exit_survey_invitation(survey_token_id: str, organization_name: str):
    """Email the departing employee a link to their exit survey."""
    db = SessionLocal()
    try:
        survey_token = db.query(SurveyToken).filter(SurveyToken.id == UUID(survey_token_id)).first()
        if not survey_token or survey_token.status != "pending" or not survey_token.employee_email:
            logger.info("Survey token %s no longer needs an invitation", survey_token_id)
            return False

        ok, error = email_service.send_exit_survey_invitation_email(
            to=[survey_token.employee_email],
            employee_name=survey_token.employee_name or "there",
            organization_name=organization_name,
            survey_link=f"{settings.APP_BASE_URL}/exit-survey/{survey_token.token}",
            expires_in_days=settings.SURVEY_TOKEN_TTL_DAYS,
        )
        return _check_delivery(ok, error, f"exit survey invitation for token {survey_token_id}")
    finally:
        db.close()


@celery_app.task(name="send_security_alert", **EMAIL_RETRY_OPTIONS)
def send_security_alert(to_email: str, alert_type: str, revoked_count: int, performed_by: str):
    ok, error = email_service.send_security_alert_email(
        to=[to_email],
        alert_type=alert_type,
        revoked_count=revoked_count,
        performed_by=performed_by,
    )
    return _check_delivery(ok, error, f"security alert ({alert_type}) to {to_email}")


@celery_app.task(name="send_offboarding_completed_email", **EMAIL_RETRY_OPTIONS)
def send_offboarding_completed_email(offboarding_id: str):
    """Tell the offboarding's creator that the whole checklist is done."""
    db = SessionLocal()
    try:
        offboarding = db.query(Offboarding).filter(Offboarding.id == UUID(offboarding_id)).first()
        if not offboarding:
            logger.warning("Offboarding %s vanished before completion email", offboarding_id)
            return False
        creator = db.query(User).filter(User.id == offboarding.created_by).first()
        if not creator:
            logger.warning("Offboarding %s has no creator to notify", offboarding_id)
            return False
        completed_tasks = db.query(Task).filter(
            Task.offboarding_id == offboarding.id,
            Task.completed == True,  # noqa: E712
        ).count()

        ok, error = email_service.send_offboarding_completed_email(
            to=[creator.email],
            employee_name=offboarding.employee_name,
            completed_tasks=completed_tasks,
            dashboard_link=f"{settings.APP_BASE_URL}/dashboard/offboardings/{offboarding.id}",
        )
        return _check_delivery(ok, error, f"completion email for offboarding {offboarding_id}")
    finally:
        db.close()


@celery_app.task(name="send_trial_ended_email", **EMAIL_RETRY_OPTIONS)
def send_trial_ended_email(to_email: str, user_name: str):
    ok, error = email_service.send_trial_ended_email(
        to=[to_email],
        user_name=user_name,
        upgrade_link=f"{settings.APP_BASE_URL}/pricing",
    )
    return _check_delivery(ok, error, f"trial ended email to {to_email}")


@celery_app.task(name="send_team_invitation", **EMAIL_RETRY_OPTIONS)
def send_team_invitation(invitation_id: str, inviter_name: str):
    """Email an invitee the link to join the organization."""
    db = SessionLocal()
    try:
        invitation = db.query(Invitation).filter(Invitation.id == UUID(invitation_id)).first()
        if not invitation or invitation.status != "pending":
            logger.info("Invitation %s no longer needs an email", invitation_id)
            return False
        organization = db.query(Organization).filter(Organization.id == invitation.organization_id).first()

        ok, error = email_service.send_team_invitation_email(
            to=[invitation.email],
            inviter_name=inviter_name,
            organization_name=organization.name if organization else "your organization",
            role=invitation.role.replace("_", " ").title(),
            invite_link=f"{settings.APP_BASE_URL}/accept-invite/{invitation.token}",
            expires_in_days=settings.INVITATION_TTL_DAYS,
        )
        return _check_delivery(ok, error, f"team invitation {invitation_id}")
    finally:
        db.close()


@celery_app.task(
    name="analyze_exit_surveys",
    autoretry_for=(ExitAnalysisError,),
    retry_backoff=True,
    retry_backoff_max=900,
    max_retries=3,
)
def analyze_exit_surveys(organization_id: str):
    """Run the AI exit analysis for one organization."""
    db = SessionLocal()
    try:
        insight = analyze_exit_surveys_use_case(db=db, organization_id=UUID(organization_id))
        return str(insight.id) if insight else None
    except Exception:
        db.rollback()
        logger.error("Exit analysis failed for org %s", organization_id, exc_info=True)
        raise
    finally:
        db.close()


def notify_trial_ended(downgraded: list[DowngradedTrial]) -> int:
    """Queue one trial-ended email per downgraded user. Returns how many were queued."""
    queued = 0
    for trial in downgraded:
        if enqueue(send_trial_ended_email, trial.email, trial.name or "there"):
            queued += 1
    return queued


@celery_app.task(name="downgrade_expired_trials")
def downgrade_expired_trials():
    db = SessionLocal()
    try:
        downgraded = downgrade_expired_trials_use_case(db=db)
    except Exception:
        db.rollback()
        logger.error("Trial downgrade job failed", exc_info=True)
        raise
    finally:
        db.close()

    emails_queued = notify_trial_ended(downgraded)
    return {"downgraded": len(downgraded), "emails_queued": emails_queued}


celery_app.conf.beat_schedule = {
    'downgrade-expired-trials-daily': {
        'task': 'downgrade_expired_trials',
        'schedule': crontab(hour=2, minute=0),
    },
}
