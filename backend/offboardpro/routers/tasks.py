"""Task endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import User
from ..schemas import TaskCompleteRequest, TaskCompleteResponse, TaskResponse
from ..use_cases.task_completion import complete_task_use_case

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.post("/{task_id}/complete", response_model=TaskCompleteResponse)
def complete_task(
    task_id: UUID,
    payload: Optional[TaskCompleteRequest] = Body(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Complete a checklist task; the last open task completes the offboarding."""
    result = complete_task_use_case(
        db=db,
        task_id=task_id,
        current_user=current_user,
        notes=payload.notes if payload else None,
    )
    return TaskCompleteResponse(
        task=TaskResponse.model_validate(result.task),
        offboarding_completed=result.offboarding_completed,
    )
