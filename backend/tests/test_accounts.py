from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from offboardpro.auth import decode_token
from offboardpro.config import settings
from offboardpro.domain_errors import DomainError
from offboardpro.models import Organization, User
from offboardpro.schemas import LoginRequest, SignupRequest
from offboardpro.use_cases import accounts
from offboardpro.use_cases.accounts import login_use_case, signup_use_case

NOW = datetime(2026, 2, 1, 9, 0, tzinfo=timezone.utc)


class _QueryStub:
    def __init__(self, first_result=None):
        self._first_result = first_result

    def filter(self, *_args, **_kwargs):
        return self

    def first(self):
        return self._first_result


class _SessionStub:
    def __init__(self, *, existing_user=None, commit_error=None):
        self._existing_user = existing_user
        self._commit_error = commit_error
        self.added = []
        self.commit_calls = 0
        self.rollback_calls = 0

    def query(self, _model):
        return _QueryStub(self._existing_user)

    def add(self, obj):
        self.added.append(obj)

    def flush(self):
        pass

    def commit(self):
        self.commit_calls += 1
        if self._commit_error:
            raise self._commit_error

    def rollback(self):
        self.rollback_calls += 1

    def refresh(self, _obj):
        pass


@pytest.fixture(autouse=True)
def _fast_hashing(monkeypatch):
    monkeypatch.setattr(accounts, "get_password_hash", lambda password: f"hashed:{password}")


def _signup(**overrides) -> SignupRequest:
    payload = {
        "organizationName": "Acme Corp",
        "name": "Ada Admin",
        "email": "Ada@Acme.io",
        "password": "s3cure-password",
    }
    payload.update(overrides)
    return SignupRequest(**payload)


def test_signup_creates_org_and_trialing_admin() -> None:
    db = _SessionStub()

    session = signup_use_case(db=db, data=_signup(), now=NOW)

    organization = next(obj for obj in db.added if isinstance(obj, Organization))
    user = next(obj for obj in db.added if isinstance(obj, User))
    assert session.user is user
    assert user.email == "ada@acme.io"
    assert user.role == "admin"
    assert user.password_hash == "hashed:s3cure-password"
    assert user.subscription_status == "trialing"
    assert user.trial_ends_at == NOW + timedelta(days=settings.TRIAL_DURATION_DAYS)
    assert organization.name == "Acme Corp"
    assert organization.trial_ends_at == user.trial_ends_at
    assert db.commit_calls == 1
    assert decode_token(session.access_token)["type"] == "access"


@pytest.mark.parametrize(
    ("overrides", "code"),
    [
        ({"organizationName": "  "}, "FIELDS_REQUIRED"),
        ({"password": "short"}, "PASSWORD_TOO_SHORT"),
        ({"email": "x@mailinator.com"}, "DISPOSABLE_EMAIL"),
    ],
)
def test_signup_validation(overrides, code) -> None:
    db = _SessionStub()

    with pytest.raises(DomainError) as exc:
        signup_use_case(db=db, data=_signup(**overrides), now=NOW)

    assert exc.value.code == code
    assert exc.value.http_status == 400
    assert db.added == []


def test_signup_with_registered_email_is_rejected() -> None:
    db = _SessionStub(existing_user=SimpleNamespace(id=uuid4()))

    with pytest.raises(DomainError) as exc:
        signup_use_case(db=db, data=_signup(), now=NOW)

    assert exc.value.code == "EMAIL_ALREADY_REGISTERED"
    assert exc.value.http_status == 400


def test_signup_race_on_unique_email_maps_to_duplicate() -> None:
    db = _SessionStub(commit_error=IntegrityError("INSERT", {}, Exception("users_email_key")))

    with pytest.raises(DomainError) as exc:
        signup_use_case(db=db, data=_signup(), now=NOW)

    assert exc.value.code == "EMAIL_ALREADY_REGISTERED"
    assert db.rollback_calls == 1


def test_login_requires_both_fields() -> None:
    with pytest.raises(DomainError) as exc:
        login_use_case(db=_SessionStub(), data=LoginRequest(email="ada@acme.io"))

    assert exc.value.code == "CREDENTIALS_REQUIRED"
    assert exc.value.http_status == 400


def test_login_with_bad_credentials_is_unauthorized(monkeypatch) -> None:
    monkeypatch.setattr(accounts, "authenticate_user", lambda db, *, email, password: None)

    with pytest.raises(DomainError, match="Invalid email or password") as exc:
        login_use_case(db=_SessionStub(), data=LoginRequest(email="ada@acme.io", password="nope"))

    assert exc.value.code == "INVALID_CREDENTIALS"
    assert exc.value.http_status == 401


def test_login_issues_token_for_user(monkeypatch) -> None:
    user = SimpleNamespace(id=uuid4())
    monkeypatch.setattr(accounts, "authenticate_user", lambda db, *, email, password: user)

    session = login_use_case(db=_SessionStub(), data=LoginRequest(email="ada@acme.io", password="s3cure-password"))

    assert session.user is user
    assert decode_token(session.access_token)["sub"] == str(user.id)
