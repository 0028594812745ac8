from __future__ import annotations

import time
from datetime import timedelta
from types import SimpleNamespace
from uuid import uuid4

import pytest
from fastapi import HTTPException
from jose import jwt

from offboardpro.auth import (
    PermissionChecker,
    ROLE_PERMISSIONS,
    check_permission,
    create_access_token,
    decode_token,
    user_organization_id,
)
from offboardpro.config import settings

PERMISSION_KEYS = {
    "canManageOffboardings",
    "canManageTemplates",
    "canRevokeAccess",
    "canViewInsights",
    "canManageTeam",
}


@pytest.mark.parametrize(
    ("role", "granted"),
    [
        ("admin", PERMISSION_KEYS),
        ("hr_manager", {"canManageOffboardings", "canManageTemplates", "canViewInsights", "canManageTeam"}),
        ("it_manager", {"canRevokeAccess"}),
        ("manager", {"canViewInsights"}),
        ("user", set()),
    ],
)
def test_role_permissions_matrix_is_stable(role: str, granted: set[str]) -> None:
    assert set(ROLE_PERMISSIONS[role]) == PERMISSION_KEYS
    assert {key for key, allowed in ROLE_PERMISSIONS[role].items() if allowed} == granted


def test_unknown_role_and_unknown_permission_are_denied() -> None:
    assert check_permission(SimpleNamespace(role="contractor"), "canViewInsights") is False
    assert check_permission(SimpleNamespace(role="admin"), "canDeleteEverything") is False


def test_permission_checker_raises_forbidden() -> None:
    checker = PermissionChecker("canRevokeAccess")
    hr = SimpleNamespace(role="hr_manager")

    with pytest.raises(HTTPException) as exc:
        checker(current_user=hr)

    assert exc.value.status_code == 403
    it = SimpleNamespace(role="it_manager")
    assert checker(current_user=it) is it


def test_current_organization_takes_precedence() -> None:
    home, switched = uuid4(), uuid4()

    assert user_organization_id(SimpleNamespace(organization_id=home, current_organization_id=None)) == home
    assert user_organization_id(SimpleNamespace(organization_id=home, current_organization_id=switched)) == switched


def test_access_token_round_trip_carries_subject_and_type() -> None:
    subject = str(uuid4())

    payload = decode_token(create_access_token({"sub": subject}))

    assert payload["sub"] == subject
    assert payload["type"] == "access"
    assert payload["exp"] - payload["iat"] == settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60


def test_expired_token_is_rejected_after_leeway() -> None:
    token = create_access_token({"sub": str(uuid4())}, expires_delta=timedelta(seconds=-(settings.JWT_LEEWAY_SECONDS + 5)))

    with pytest.raises(HTTPException) as exc:
        decode_token(token)

    assert exc.value.status_code == 401
    assert exc.value.detail == "Token expired"


def test_token_issued_in_the_future_is_rejected() -> None:
    now = int(time.time())
    token = jwt.encode(
        {"sub": str(uuid4()), "type": "access", "iat": now + 3600, "exp": now + 7200},
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )

    with pytest.raises(HTTPException) as exc:
        decode_token(token)

    assert exc.value.status_code == 401


def test_token_signed_with_other_key_is_rejected() -> None:
    token = jwt.encode({"sub": "x", "exp": int(time.time()) + 60}, "not-the-key", algorithm="HS256")

    with pytest.raises(HTTPException):
        decode_token(token)
