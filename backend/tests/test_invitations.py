from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from offboardpro.auth import decode_token
from offboardpro.config import settings
from offboardpro.domain_errors import DomainError
from offboardpro.models import Invitation, User
from offboardpro.use_cases import invitations
from offboardpro.use_cases.invitations import (
    accept_invitation_use_case,
    get_invitation_use_case,
    invite_member_use_case,
    signup_with_invitation_use_case,
)

NOW = datetime(2026, 7, 1, 12, 0, tzinfo=timezone.utc)


class _QueryStub:
    def __init__(self, *, first_result=None, scalar_result=None, update_result=0):
        self._first_result = first_result
        self._scalar_result = scalar_result
        self._update_result = update_result
        self.update_calls = []
        self.delete_calls = 0

    def filter(self, *_args, **_kwargs):
        return self

    def first(self):
        return self._first_result

    def scalar(self):
        return self._scalar_result

    def update(self, values, synchronize_session=None):
        self.update_calls.append(values)
        return self._update_result

    def delete(self, synchronize_session=None):
        self.delete_calls += 1
        return 0


class _SessionStub:
    def __init__(self, *, user=None, invitation=None, consumed=1, scalars=(), commit_error=None):
        self.user_query = _QueryStub(first_result=user)
        self.invitation_query = _QueryStub(first_result=invitation, update_result=consumed)
        # Count and single-column queries, answered in call order.
        self._scalars = list(scalars)
        self._commit_error = commit_error
        self.added = []
        self.commit_calls = 0
        self.rollback_calls = 0

    def query(self, entity, *_more):
        if entity is User:
            return self.user_query
        if entity is Invitation:
            return self.invitation_query
        return _QueryStub(scalar_result=self._scalars.pop(0))

    def add(self, obj):
        self.added.append(obj)

    def commit(self):
        self.commit_calls += 1
        if self._commit_error:
            raise self._commit_error

    def rollback(self):
        self.rollback_calls += 1

    def refresh(self, _obj):
        pass


def _admin(*, plan="starter", status="active"):
    return SimpleNamespace(
        id=uuid4(),
        email="admin@acme.io",
        name="Ada Admin",
        role="admin",
        organization_id=uuid4(),
        current_organization_id=None,
        subscription_plan=plan,
        subscription_status=status,
    )


def _invitation(*, status="pending", expires_in=timedelta(days=3), email="new@acme.io"):
    return SimpleNamespace(
        id=uuid4(),
        organization_id=uuid4(),
        email=email,
        role="it_manager",
        token="inv_" + uuid4().hex,
        status=status,
        expires_at=NOW + expires_in,
    )


@pytest.fixture
def enqueued(monkeypatch):
    calls = []
    monkeypatch.setattr(invitations, "enqueue", lambda job, *args: calls.append((job.name, args)) or True)
    return calls


def test_invite_creates_pending_invitation_and_queues_email(enqueued) -> None:
    admin = _admin()
    db = _SessionStub(scalars=[3, 1])

    result = invite_member_use_case(db=db, email=" New@Acme.io ", role="manager", current_user=admin, now=NOW)

    invitation = result.invitation
    assert isinstance(invitation, Invitation)
    assert invitation.email == "new@acme.io"
    assert invitation.role == "manager"
    assert invitation.status == "pending"
    assert invitation.organization_id == admin.organization_id
    assert invitation.invited_by == admin.id
    assert invitation.expires_at == NOW + timedelta(days=settings.INVITATION_TTL_DAYS)
    assert len(invitation.token) >= 32
    assert db.invitation_query.delete_calls == 1
    assert db.commit_calls == 1
    assert result.email_queued is True
    assert enqueued == [("send_team_invitation", (str(invitation.id), "Ada Admin"))]


def test_invite_is_refused_when_seats_are_full(enqueued) -> None:
    # 20 members plus 5 open invitations fill a 25-seat starter plan.
    db = _SessionStub(scalars=[20, 5])

    with pytest.raises(DomainError) as exc:
        invite_member_use_case(db=db, email="new@acme.io", role="user", current_user=_admin(), now=NOW)

    assert exc.value.code == "PLAN_LIMIT_REACHED"
    assert exc.value.http_status == 403
    assert exc.value.details == {"limit": 25, "used": 25}
    assert db.added == []
    assert enqueued == []


def test_enterprise_invites_without_cap(enqueued) -> None:
    db = _SessionStub(scalars=[500, 40])

    result = invite_member_use_case(
        db=db, email="new@acme.io", role="user", current_user=_admin(plan="enterprise"), now=NOW
    )

    assert result.invitation.status == "pending"


def test_existing_member_cannot_be_invited(enqueued) -> None:
    db = _SessionStub(user=SimpleNamespace(id=uuid4()))

    with pytest.raises(DomainError) as exc:
        invite_member_use_case(db=db, email="member@acme.io", role="user", current_user=_admin(), now=NOW)

    assert exc.value.code == "ALREADY_MEMBER"
    assert exc.value.http_status == 409


@pytest.mark.parametrize(
    ("email", "role", "code"),
    [("not-an-email", "user", "INVALID_EMAIL"), ("x@acme.io", "owner", "INVALID_ROLE")],
)
def test_invite_input_is_validated(enqueued, email, role, code) -> None:
    with pytest.raises(DomainError) as exc:
        invite_member_use_case(db=_SessionStub(), email=email, role=role, current_user=_admin(), now=NOW)

    assert exc.value.code == code
    assert exc.value.http_status == 400


def test_concurrent_invite_for_same_address_conflicts(enqueued) -> None:
    db = _SessionStub(scalars=[1, 0], commit_error=IntegrityError("INSERT", {}, Exception("uq_invitations_pending_email")))

    with pytest.raises(DomainError) as exc:
        invite_member_use_case(db=db, email="new@acme.io", role="user", current_user=_admin(), now=NOW)

    assert exc.value.code == "INVITATION_ALREADY_PENDING"
    assert db.rollback_calls == 1
    assert enqueued == []


def test_invitation_preview_includes_organization_name() -> None:
    invitation = _invitation()
    db = _SessionStub(invitation=invitation, scalars=["Acme Corp"])

    preview = get_invitation_use_case(db=db, token=invitation.token, now=NOW)

    assert preview.invitation is invitation
    assert preview.organization_name == "Acme Corp"


@pytest.mark.parametrize(
    ("invitation", "code"),
    [
        (None, "INVITATION_NOT_FOUND"),
        (_invitation(status="accepted"), "INVITATION_NOT_FOUND"),
        (_invitation(expires_in=timedelta(minutes=-1)), "INVITATION_EXPIRED"),
    ],
)
def test_unusable_invitations_are_rejected(invitation, code) -> None:
    with pytest.raises(DomainError) as exc:
        get_invitation_use_case(db=_SessionStub(invitation=invitation), token="whatever", now=NOW)

    assert exc.value.code == code


def test_accept_moves_user_into_organization() -> None:
    invitation = _invitation()
    user = SimpleNamespace(
        id=uuid4(),
        email="NEW@acme.io",
        role="admin",
        organization_id=uuid4(),
        current_organization_id=None,
        is_active=True,
    )
    db = _SessionStub(invitation=invitation)

    accepted = accept_invitation_use_case(db=db, token=invitation.token, current_user=user, now=NOW)

    assert accepted is invitation
    assert user.organization_id == invitation.organization_id
    assert user.current_organization_id == invitation.organization_id
    assert user.role == "it_manager"
    assert db.invitation_query.update_calls == [{"status": "accepted", "accepted_at": NOW}]
    assert db.commit_calls == 1


def test_accept_requires_matching_email() -> None:
    invitation = _invitation()
    user = SimpleNamespace(id=uuid4(), email="other@acme.io", organization_id=None)
    db = _SessionStub(invitation=invitation)

    with pytest.raises(DomainError) as exc:
        accept_invitation_use_case(db=db, token=invitation.token, current_user=user, now=NOW)

    assert exc.value.code == "INVITATION_EMAIL_MISMATCH"
    assert exc.value.http_status == 403
    assert user.organization_id is None
    assert db.invitation_query.update_calls == []


def test_invitation_is_accepted_only_once() -> None:
    invitation = _invitation()
    user = SimpleNamespace(id=uuid4(), email="new@acme.io", organization_id=None)
    db = _SessionStub(invitation=invitation, consumed=0)

    with pytest.raises(DomainError) as exc:
        accept_invitation_use_case(db=db, token=invitation.token, current_user=user, now=NOW)

    assert exc.value.code == "INVITATION_NOT_FOUND"
    assert db.rollback_calls == 1
    assert db.commit_calls == 0
    assert user.organization_id is None


def test_signup_creates_member_with_organization_plan(monkeypatch) -> None:
    monkeypatch.setattr(invitations, "get_password_hash", lambda password: f"hashed:{password}")
    invitation = _invitation()
    db = _SessionStub(invitation=invitation, scalars=["professional"])

    session = signup_with_invitation_use_case(
        db=db, token=invitation.token, name=" Nia New ", password="s3cretpass", now=NOW
    )

    user = session.user
    assert isinstance(user, User)
    assert user.email == "new@acme.io"
    assert user.name == "Nia New"
    assert user.role == "it_manager"
    assert user.organization_id == invitation.organization_id
    assert user.subscription_plan == "professional"
    assert user.password_hash == "hashed:s3cretpass"
    assert decode_token(session.access_token)["sub"] == str(user.id)
    assert db.commit_calls == 1


def test_signup_with_registered_email_asks_for_login(monkeypatch) -> None:
    monkeypatch.setattr(invitations, "get_password_hash", lambda password: "hashed")
    invitation = _invitation()
    db = _SessionStub(invitation=invitation, user=SimpleNamespace(id=uuid4()))

    with pytest.raises(DomainError) as exc:
        signup_with_invitation_use_case(db=db, token=invitation.token, name="Nia", password="s3cretpass", now=NOW)

    assert exc.value.code == "EMAIL_ALREADY_REGISTERED"
    assert db.invitation_query.update_calls == []


@pytest.mark.parametrize(("name", "password", "code"), [("  ", "s3cretpass", "NAME_REQUIRED"), ("Nia", "short", "PASSWORD_TOO_SHORT")])
def test_signup_input_is_validated(name, password, code) -> None:
    with pytest.raises(DomainError) as exc:
        signup_with_invitation_use_case(db=_SessionStub(), token="t", name=name, password=password, now=NOW)

    assert exc.value.code == code
