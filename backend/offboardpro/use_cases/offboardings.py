"""Offboarding creation, listing and finalization."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..auth import user_organization_id
from ..domain_errors import DomainError, NotFoundError, ValidationError, concurrent_modification
from ..models import Offboarding, Organization, SurveyToken, Task, Template, TemplateTask, User
from ..schemas import OffboardingCreate
from ..services.background import enqueue
from ..services.entitlements import can_create_offboarding, limits_for_user
from ..worker import send_exit_survey_invitation
from .survey_tokens import create_or_reuse_token_use_case

logger = logging.getLogger(__name__)

# Template department -> role of the user who receives the task.
DEPARTMENT_ROLE_MAP = {
    "IT": "it_manager",
    "HR": "hr_manager",
    "Finance": "admin",
    "Manager": "manager",
}


@dataclass
class FinalizeResult:
    offboarding: Offboarding
    survey_token: SurveyToken | None
    warning: str | None = None


def _require_organization(current_user: User) -> UUID:
    org_id = user_organization_id(current_user)
    if org_id is None:
        raise ValidationError(code="NO_ORGANIZATION", message="User has no organization")
    return org_id


def _month_start(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _assignee_for_department(department: str | None, org_users: list[User]) -> UUID | None:
    target_role = DEPARTMENT_ROLE_MAP.get(department or "")
    if target_role is None:
        return None
    for user in org_users:
        if user.role == target_role:
            return user.id
    return None


def create_offboarding_use_case(
    *,
    db: Session,
    data: OffboardingCreate,
    current_user: User,
    now: datetime | None = None,
) -> Offboarding:
    """Create an offboarding and materialize its checklist from the template."""
    now = now or datetime.now(timezone.utc)
    org_id = _require_organization(current_user)

    created_this_month = db.query(func.count(Offboarding.id)).filter(
        Offboarding.organization_id == org_id,
        Offboarding.created_at >= _month_start(now),
    ).scalar() or 0
    if not can_create_offboarding(created_this_month, current_user.subscription_plan, current_user.subscription_status):
        limit = limits_for_user(current_user).max_offboardings_per_month
        raise DomainError(
            code="PLAN_LIMIT_REACHED",
            http_status=403,
            message=f"Your plan allows {limit} offboardings per month",
            details={"limit": limit, "used": created_this_month},
        )

    template = db.query(Template).filter(
        Template.id == data.template_id,
        Template.is_active == True,  # noqa: E712
        or_(Template.organization_id.is_(None), Template.organization_id == org_id),
    ).first()
    if not template:
        raise NotFoundError(code="TEMPLATE_NOT_FOUND", message="Template not found")

    template_tasks = db.query(TemplateTask).filter(
        TemplateTask.template_id == template.id,
    ).order_by(TemplateTask.order_index).all()
    if not template_tasks:
        raise ValidationError(code="TEMPLATE_HAS_NO_TASKS", message="Template has no tasks")

    org_users = db.query(User).filter(
        User.organization_id == org_id,
        User.is_active == True,  # noqa: E712
    ).order_by(User.created_at).all()

    offboarding = Offboarding(
        id=uuid.uuid4(),
        organization_id=org_id,
        employee_name=data.employee_name,
        employee_email=data.employee_email,
        department=data.department,
        role=data.role,
        last_working_day=data.last_working_day,
        manager_name=data.manager_name,
        manager_email=data.manager_email,
        reason_for_departure=data.reason_for_departure,
        template_id=template.id,
        status="in_progress",
        created_by=current_user.id,
    )
    db.add(offboarding)

    for template_task in template_tasks:
        db.add(
            Task(
                id=uuid.uuid4(),
                offboarding_id=offboarding.id,
                task_name=template_task.task_name,
                description=template_task.description,
                assigned_department=template_task.assigned_department,
                assigned_to=_assignee_for_department(template_task.assigned_department, org_users),
                due_date=data.last_working_day + timedelta(days=template_task.due_date_offset or 0),
                priority=template_task.priority or "Medium",
                order_index=template_task.order_index,
                completed=False,
            )
        )

    db.commit()
    db.refresh(offboarding)
    logger.info(
        "Offboarding %s created from template %s with %s tasks",
        offboarding.id,
        template.id,
        len(template_tasks),
    )
    return offboarding


def list_offboardings_use_case(*, db: Session, current_user: User) -> list[Offboarding]:
    org_id = _require_organization(current_user)
    return db.query(Offboarding).filter(
        Offboarding.organization_id == org_id,
    ).order_by(Offboarding.created_at.desc()).all()


def finalize_offboarding_use_case(
    *,
    db: Session,
    offboarding_id: UUID,
    current_user: User,
    now: datetime | None = None,
) -> FinalizeResult:
    """Complete the offboarding, then issue the exit survey.

    The status change is committed on its own. Token issuance and the
    invitation email run afterwards and only degrade to a warning.
    """
    now = now or datetime.now(timezone.utc)
    row = db.query(Offboarding, Organization.name).join(
        Organization,
        Offboarding.organization_id == Organization.id,
    ).filter(
        Offboarding.id == offboarding_id,
        Offboarding.organization_id == user_organization_id(current_user),
    ).first()
    if not row:
        raise NotFoundError(code="OFFBOARDING_NOT_FOUND", message="Offboarding not found")
    offboarding, organization_name = row

    try:
        offboarding.status = "completed"
        if offboarding.completed_at is None:
            offboarding.completed_at = now
        db.commit()
    except StaleDataError:
        db.rollback()
        raise concurrent_modification("Offboarding")
    logger.info("Offboarding %s finalized by %s", offboarding.id, current_user.id)

    try:
        issued = create_or_reuse_token_use_case(
            db=db,
            offboarding_id=offboarding.id,
            organization_id=offboarding.organization_id,
            employee_email=offboarding.employee_email,
            employee_name=offboarding.employee_name,
            now=now,
        )
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Survey token issuance failed for offboarding %s", offboarding.id)
        return FinalizeResult(
            offboarding=offboarding,
            survey_token=None,
            warning="Offboarding completed but survey token creation failed",
        )

    if issued.survey_completed:
        logger.info("Exit survey already submitted for offboarding %s, no invitation sent", offboarding.id)
        return FinalizeResult(offboarding=offboarding, survey_token=issued.survey_token)

    if not enqueue(send_exit_survey_invitation, str(issued.survey_token.id), organization_name):
        logger.warning("Exit survey invitation not queued for offboarding %s", offboarding.id)
        return FinalizeResult(
            offboarding=offboarding,
            survey_token=issued.survey_token,
            warning="Offboarding completed but email failed to send",
        )

    return FinalizeResult(offboarding=offboarding, survey_token=issued.survey_token)
