"""Checklist template endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import PermissionChecker, get_current_user
from ..database import get_db
from ..models import User
from ..schemas import TemplateCreate, TemplateListResponse, TemplateResponse
from ..use_cases.templates import TemplateSummary, create_template_use_case, list_templates_use_case

router = APIRouter(prefix="/templates", tags=["templates"])


def _template_to_response(summary: TemplateSummary) -> TemplateResponse:
    template = summary.template
    return TemplateResponse(
        id=template.id,
        name=template.name,
        description=template.description,
        organization_id=template.organization_id,
        is_active=template.is_active,
        created_at=template.created_at,
        task_count=summary.task_count,
    )


@router.get("", response_model=TemplateListResponse)
def list_templates(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    summaries = list_templates_use_case(db=db, current_user=current_user)
    return TemplateListResponse(templates=[_template_to_response(s) for s in summaries])


@router.post("", response_model=TemplateResponse)
def create_template(
    payload: TemplateCreate,
    current_user: User = Depends(PermissionChecker("canManageTemplates")),
    db: Session = Depends(get_db),
):
    """Create an organization template with its ordered tasks."""
    summary = create_template_use_case(db=db, data=payload, current_user=current_user)
    return _template_to_response(summary)
