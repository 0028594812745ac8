from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest

from offboardpro.domain_errors import DomainError
from offboardpro.models import OAuthConnection, OAuthScan, Offboarding
from offboardpro.use_cases.app_scans import record_app_scan_use_case

NOW = datetime(2026, 6, 1, 8, 0, tzinfo=timezone.utc)


class _QueryStub:
    def __init__(self, *, first_result=None, all_result=None):
        self._first_result = first_result
        self._all_result = all_result or []

    def filter(self, *_args, **_kwargs):
        return self

    def first(self):
        return self._first_result

    def all(self):
        return self._all_result


class _SessionStub:
    def __init__(self, *, offboarding=None, active_apps=()):
        self.offboarding_query = _QueryStub(first_result=offboarding)
        self.active_query = _QueryStub(all_result=[(name,) for name in active_apps])
        self.added = []
        self.commit_calls = 0

    def query(self, entity, *_more):
        if entity is Offboarding:
            return self.offboarding_query
        return self.active_query

    def add(self, obj):
        self.added.append(obj)

    def commit(self):
        self.commit_calls += 1


def _user(*, plan="professional", status="active"):
    return SimpleNamespace(
        id=uuid4(),
        organization_id=uuid4(),
        current_organization_id=None,
        subscription_plan=plan,
        subscription_status=status,
    )


def _offboarding(user):
    return SimpleNamespace(id=uuid4(), organization_id=user.organization_id, employee_email="dana@example.com")


def test_scan_records_one_active_connection_per_app() -> None:
    user = _user()
    offboarding = _offboarding(user)
    db = _SessionStub(offboarding=offboarding)

    result = record_app_scan_use_case(
        db=db,
        offboarding_id=offboarding.id,
        app_names=["GitHub", " Slack ", "GitHub", "Internal Wiki"],
        current_user=user,
        now=NOW,
    )

    scan = result.scan
    assert isinstance(scan, OAuthScan)
    assert scan.total_apps_found == 3
    assert scan.scan_type == "manual"
    assert scan.initiated_by == user.id
    assert scan.completed_at == NOW
    assert [(c.app_name, c.app_type, c.risk_level) for c in result.connections] == [
        ("GitHub", "development", "critical"),
        ("Slack", "communication", "high"),
        ("Internal Wiki", "other", None),
    ]
    assert all(isinstance(c, OAuthConnection) for c in result.connections)
    assert all(c.status == "active" and c.scan_id == scan.id for c in result.connections)
    assert all(c.organization_id == user.organization_id for c in result.connections)
    assert all(c.employee_email == "dana@example.com" for c in result.connections)
    assert db.commit_calls == 1


def test_rescan_does_not_duplicate_active_connections() -> None:
    user = _user()
    offboarding = _offboarding(user)
    db = _SessionStub(offboarding=offboarding, active_apps=["GitHub"])

    result = record_app_scan_use_case(
        db=db,
        offboarding_id=offboarding.id,
        app_names=["GitHub", "Zoom"],
        current_user=user,
        now=NOW,
    )

    assert result.scan.total_apps_found == 2
    assert [c.app_name for c in result.connections] == ["Zoom"]


def test_trialing_starter_can_scan() -> None:
    user = _user(plan="starter", status="trialing")
    offboarding = _offboarding(user)

    result = record_app_scan_use_case(
        db=_SessionStub(offboarding=offboarding),
        offboarding_id=offboarding.id,
        app_names=["Jira"],
        current_user=user,
        now=NOW,
    )

    assert len(result.connections) == 1


@pytest.mark.parametrize(
    ("user", "apps", "offboarding_found", "code", "status"),
    [
        (_user(plan="starter"), ["GitHub"], True, "FEATURE_NOT_AVAILABLE", 403),
        (_user(), ["  ", ""], True, "NO_APPS_SELECTED", 400),
        (_user(), ["GitHub"], False, "OFFBOARDING_NOT_FOUND", 404),
        (SimpleNamespace(organization_id=None, current_organization_id=None), ["GitHub"], True, "NO_ORGANIZATION", 400),
    ],
)
def test_scan_rejections(user, apps, offboarding_found, code, status) -> None:
    db = _SessionStub(offboarding=SimpleNamespace(id=uuid4(), employee_email=None) if offboarding_found else None)

    with pytest.raises(DomainError) as exc:
        record_app_scan_use_case(db=db, offboarding_id=uuid4(), app_names=apps, current_user=user, now=NOW)

    assert exc.value.code == code
    assert exc.value.http_status == status
    assert db.added == []
    assert db.commit_calls == 0
