"""Checklist template listing and creation."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..auth import user_organization_id
from ..domain_errors import DomainError, ValidationError
from ..models import Template, TemplateTask, User
from ..schemas import TemplateCreate
from ..services.entitlements import can_create_template, limits_for_user

logger = logging.getLogger(__name__)


@dataclass
class TemplateSummary:
    template: Template
    task_count: int


def list_templates_use_case(*, db: Session, current_user: User) -> list[TemplateSummary]:
    """Active global templates plus the organization's own, newest first."""
    org_id = user_organization_id(current_user)
    scope = Template.organization_id.is_(None)
    if org_id is not None:
        scope = or_(scope, Template.organization_id == org_id)

    templates = db.query(Template).filter(
        scope,
        Template.is_active == True,  # noqa: E712
    ).order_by(Template.created_at.desc()).all()
    if not templates:
        return []

    counts = dict(
        db.query(TemplateTask.template_id, func.count(TemplateTask.id)).filter(
            TemplateTask.template_id.in_([t.id for t in templates]),
        ).group_by(TemplateTask.template_id).all()
    )
    return [TemplateSummary(template=t, task_count=counts.get(t.id, 0)) for t in templates]


def create_template_use_case(*, db: Session, data: TemplateCreate, current_user: User) -> TemplateSummary:
    org_id = user_organization_id(current_user)
    if org_id is None:
        raise ValidationError(code="NO_ORGANIZATION", message="User has no organization")

    template_count = db.query(func.count(Template.id)).filter(
        Template.organization_id == org_id,
        Template.is_active == True,  # noqa: E712
    ).scalar() or 0
    if not can_create_template(template_count, current_user.subscription_plan, current_user.subscription_status):
        limit = limits_for_user(current_user).max_templates
        raise DomainError(
            code="PLAN_LIMIT_REACHED",
            http_status=403,
            message=f"Your plan allows {limit} custom templates",
            details={"limit": limit, "used": template_count},
        )

    template = Template(
        id=uuid.uuid4(),
        name=data.name,
        description=data.description,
        organization_id=org_id,
        is_active=True,
        created_by=current_user.id,
    )
    db.add(template)
    for index, task in enumerate(data.tasks):
        db.add(
            TemplateTask(
                template_id=template.id,
                task_name=task.task_name,
                description=task.description,
                assigned_department=task.assigned_department,
                due_date_offset=task.due_date_offset,
                priority=task.priority,
                order_index=task.order_index if task.order_index is not None else index,
            )
        )
    db.commit()
    db.refresh(template)

    logger.info("Template %s created in org %s with %s tasks", template.id, org_id, len(data.tasks))
    return TemplateSummary(template=template, task_count=len(data.tasks))
