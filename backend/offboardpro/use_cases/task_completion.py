"""Task completion use-case, cascading the parent offboarding to completed."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..auth import user_organization_id
from ..domain_errors import NotFoundError, concurrent_modification
from ..models import Notification, Offboarding, Task, User
from ..services.background import enqueue
from ..worker import send_offboarding_completed_email

logger = logging.getLogger(__name__)


@dataclass
class TaskCompletionResult:
    task: Task
    all_complete: bool
    offboarding_completed: bool


def _get_task_in_org(*, db: Session, task_id: UUID, org_id: UUID | None) -> Task:
    task = db.query(Task).join(
        Offboarding,
        Task.offboarding_id == Offboarding.id,
    ).filter(
        Task.id == task_id,
        Offboarding.organization_id == org_id,
    ).first()
    if not task:
        raise NotFoundError(code="TASK_NOT_FOUND", message="Task not found")
    return task


def _cascade_offboarding(*, db: Session, offboarding_id: UUID, now: datetime) -> bool:
    """Complete the offboarding unless it already left in_progress. True if this call did it."""
    updated = db.query(Offboarding).filter(
        Offboarding.id == offboarding_id,
        Offboarding.status == "in_progress",
    ).update(
        {
            "status": "completed",
            "completed_at": now,
            "version": Offboarding.version + 1,
        },
        synchronize_session=False,
    )
    return updated == 1


def _notify_creator(*, db: Session, task: Task, offboarding: Offboarding | None) -> None:
    if offboarding is None or offboarding.created_by is None:
        return
    try:
        with db.begin_nested():
            db.add(
                Notification(
                    user_id=offboarding.created_by,
                    message=f'Task "{task.task_name}" completed for {offboarding.employee_name}',
                    type="task_completed",
                    related_task_id=task.id,
                    related_offboarding_id=task.offboarding_id,
                    read=False,
                )
            )
    except SQLAlchemyError:
        logger.exception("Failed to create completion notification for task %s", task.id)


def complete_task_use_case(
    *,
    db: Session,
    task_id: UUID,
    current_user: User,
    notes: str | None = None,
    now: datetime | None = None,
) -> TaskCompletionResult:
    """Mark a task completed; the last open task completes its offboarding."""
    now = now or datetime.now(timezone.utc)
    task = _get_task_in_org(db=db, task_id=task_id, org_id=user_organization_id(current_user))

    try:
        task.completed = True
        task.completed_at = now
        task.completed_by = current_user.id
        task.notes = notes or None

        # Autoflush makes the write above visible to this read.
        siblings = db.query(Task).filter(Task.offboarding_id == task.offboarding_id).all()
        all_complete = all(sibling.completed for sibling in siblings)

        offboarding_completed = False
        if all_complete:
            offboarding_completed = _cascade_offboarding(db=db, offboarding_id=task.offboarding_id, now=now)

        offboarding = db.query(Offboarding).filter(Offboarding.id == task.offboarding_id).first()
        _notify_creator(db=db, task=task, offboarding=offboarding)

        db.commit()
    except StaleDataError:
        db.rollback()
        raise concurrent_modification("Task")

    if offboarding_completed:
        logger.info("Offboarding %s completed by last task %s", task.offboarding_id, task.id)
        enqueue(send_offboarding_completed_email, str(task.offboarding_id))

    return TaskCompletionResult(
        task=task,
        all_complete=all_complete,
        offboarding_completed=offboarding_completed,
    )
