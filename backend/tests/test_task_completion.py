from __future__ import annotations

from contextlib import nullcontext
from datetime import datetime, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from offboardpro.domain_errors import DomainError
from offboardpro.models import Notification, Offboarding, Task
from offboardpro.use_cases import task_completion
from offboardpro.use_cases.task_completion import complete_task_use_case

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class _QueryStub:
    def __init__(self, *, first_result=None, all_result=None, update_result=0):
        self._first_result = first_result
        self._all_result = all_result or []
        self._update_result = update_result
        self.update_calls = []

    def join(self, *_args, **_kwargs):
        return self

    def filter(self, *_args, **_kwargs):
        return self

    def first(self):
        return self._first_result

    def all(self):
        return self._all_result

    def update(self, values, synchronize_session=None):
        self.update_calls.append(values)
        return self._update_result


class _SessionStub:
    def __init__(self, *, task, siblings, offboarding, cascade_rows=1, commit_error=None, nested_error=None):
        self.task_query = _QueryStub(first_result=task, all_result=siblings)
        self.offboarding_query = _QueryStub(first_result=offboarding, update_result=cascade_rows)
        self._commit_error = commit_error
        self._nested_error = nested_error
        self.added = []
        self.commit_calls = 0
        self.rollback_calls = 0

    def query(self, model):
        if model is Task:
            return self.task_query
        if model is Offboarding:
            return self.offboarding_query
        raise AssertionError(f"Unexpected query model: {model}")

    def begin_nested(self):
        if self._nested_error:
            raise self._nested_error
        return nullcontext()

    def add(self, obj):
        self.added.append(obj)

    def commit(self):
        self.commit_calls += 1
        if self._commit_error:
            raise self._commit_error

    def rollback(self):
        self.rollback_calls += 1


def _user(org_id):
    return SimpleNamespace(id=uuid4(), organization_id=org_id, current_organization_id=None, role="it_manager")


def _task(offboarding_id, *, completed=False):
    return SimpleNamespace(
        id=uuid4(),
        offboarding_id=offboarding_id,
        task_name="Collect laptop",
        completed=completed,
        completed_at=None,
        completed_by=None,
        notes=None,
    )


def _offboarding(org_id, *, status="in_progress"):
    return SimpleNamespace(
        id=uuid4(),
        organization_id=org_id,
        created_by=uuid4(),
        employee_name="Dana Scully",
        status=status,
    )


@pytest.fixture
def enqueued(monkeypatch):
    calls = []
    monkeypatch.setattr(task_completion, "enqueue", lambda job, *args: calls.append((job.name, args)) or True)
    return calls


def test_completing_one_of_several_tasks_does_not_cascade(enqueued) -> None:
    org_id = uuid4()
    offboarding = _offboarding(org_id)
    task = _task(offboarding.id)
    other = _task(offboarding.id, completed=False)
    db = _SessionStub(task=task, siblings=[task, other], offboarding=offboarding)
    user = _user(org_id)

    result = complete_task_use_case(db=db, task_id=task.id, current_user=user, notes="  ", now=NOW)

    assert result.task is task
    assert task.completed is True
    assert task.completed_at == NOW
    assert task.completed_by == user.id
    assert result.all_complete is False
    assert result.offboarding_completed is False
    assert db.offboarding_query.update_calls == []
    assert db.commit_calls == 1
    assert enqueued == []


def test_last_task_cascades_offboarding_and_queues_email(enqueued) -> None:
    org_id = uuid4()
    offboarding = _offboarding(org_id)
    task = _task(offboarding.id)
    done = _task(offboarding.id, completed=True)
    db = _SessionStub(task=task, siblings=[done, task], offboarding=offboarding, cascade_rows=1)

    result = complete_task_use_case(
        db=db, task_id=task.id, current_user=_user(org_id), notes="Returned to IT", now=NOW
    )

    assert result.all_complete is True
    assert result.offboarding_completed is True
    assert task.notes == "Returned to IT"
    [values] = db.offboarding_query.update_calls
    assert values["status"] == "completed"
    assert values["completed_at"] == NOW
    assert enqueued == [("send_offboarding_completed_email", (str(offboarding.id),))]

    notifications = [obj for obj in db.added if isinstance(obj, Notification)]
    assert len(notifications) == 1
    assert notifications[0].user_id == offboarding.created_by
    assert notifications[0].related_task_id == task.id
    assert notifications[0].type == "task_completed"


def test_cascade_fires_once_when_offboarding_already_completed(enqueued) -> None:
    org_id = uuid4()
    offboarding = _offboarding(org_id, status="completed")
    task = _task(offboarding.id, completed=True)
    db = _SessionStub(task=task, siblings=[task], offboarding=offboarding, cascade_rows=0)

    result = complete_task_use_case(db=db, task_id=task.id, current_user=_user(org_id), now=NOW)

    assert result.all_complete is True
    assert result.offboarding_completed is False
    assert enqueued == []
    assert db.commit_calls == 1


def test_unknown_task_is_not_found() -> None:
    db = _SessionStub(task=None, siblings=[], offboarding=None)

    with pytest.raises(DomainError, match="Task not found") as exc:
        complete_task_use_case(db=db, task_id=uuid4(), current_user=_user(uuid4()), now=NOW)

    assert exc.value.code == "TASK_NOT_FOUND"
    assert exc.value.http_status == 404
    assert db.commit_calls == 0


def test_stale_task_version_is_reported_as_conflict(enqueued) -> None:
    org_id = uuid4()
    offboarding = _offboarding(org_id)
    task = _task(offboarding.id)
    db = _SessionStub(
        task=task,
        siblings=[task],
        offboarding=offboarding,
        commit_error=StaleDataError("version mismatch"),
    )

    with pytest.raises(DomainError) as exc:
        complete_task_use_case(db=db, task_id=task.id, current_user=_user(org_id), now=NOW)

    assert exc.value.code == "CONCURRENT_MODIFICATION"
    assert exc.value.http_status == 409
    assert db.rollback_calls == 1
    assert enqueued == []


def test_notification_failure_does_not_fail_completion(enqueued) -> None:
    org_id = uuid4()
    offboarding = _offboarding(org_id)
    task = _task(offboarding.id)
    db = _SessionStub(
        task=task,
        siblings=[task],
        offboarding=offboarding,
        nested_error=SQLAlchemyError("notifications table locked"),
    )

    result = complete_task_use_case(db=db, task_id=task.id, current_user=_user(org_id), now=NOW)

    assert result.offboarding_completed is True
    assert db.commit_calls == 1
    assert not any(isinstance(obj, Notification) for obj in db.added)
