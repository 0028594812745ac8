from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest

from offboardpro.config import settings
from offboardpro.use_cases.trials import (
    DowngradedTrial,
    downgrade_expired_trials_use_case,
    is_disposable_email,
    start_trial,
    trial_days_remaining,
)

NOW = datetime(2026, 8, 10, 2, 0, tzinfo=timezone.utc)


class _QueryStub:
    def __init__(self, *, all_result=None):
        self._all_result = all_result or []
        self.update_calls = []

    def filter(self, *_args, **_kwargs):
        return self

    def all(self):
        return self._all_result

    def update(self, values, synchronize_session=None):
        self.update_calls.append(values)
        return len(self._all_result)


class _SessionStub:
    def __init__(self, expired):
        self.user_query = _QueryStub(all_result=expired)
        self.commit_calls = 0

    def query(self, _model):
        return self.user_query

    def commit(self):
        self.commit_calls += 1


@pytest.mark.parametrize(
    ("email", "expected"),
    [
        ("someone@mailinator.com", True),
        ("Someone@YOPMAIL.com ", True),
        ("ceo@acme.io", False),
        ("weird@sub.tempmail.com", False),
    ],
)
def test_disposable_email_detection(email, expected) -> None:
    assert is_disposable_email(email) is expected


def test_start_trial_sets_plan_and_window() -> None:
    user = SimpleNamespace(subscription_plan=None, subscription_status=None, trial_started_at=None, trial_ends_at=None)

    start_trial(user, now=NOW)

    assert user.subscription_plan == settings.TRIAL_PLAN
    assert user.subscription_status == "trialing"
    assert user.trial_started_at == NOW
    assert user.trial_ends_at == NOW + timedelta(days=settings.TRIAL_DURATION_DAYS)


@pytest.mark.parametrize(
    ("status", "ends_in", "expected"),
    [
        ("trialing", timedelta(days=3), 3),
        ("trialing", timedelta(days=2, hours=1), 3),
        ("trialing", timedelta(minutes=5), 1),
        ("trialing", timedelta(hours=-1), 0),
        ("active", timedelta(days=5), 0),
    ],
)
def test_trial_days_remaining(status, ends_in, expected) -> None:
    user = SimpleNamespace(subscription_status=status, trial_ends_at=NOW + ends_in)

    assert trial_days_remaining(user, now=NOW) == expected


def test_trial_days_remaining_accepts_naive_timestamps() -> None:
    user = SimpleNamespace(subscription_status="trialing", trial_ends_at=datetime(2026, 8, 12, 2, 0))

    assert trial_days_remaining(user, now=NOW) == 2


def test_no_expired_trials_is_a_noop() -> None:
    db = _SessionStub(expired=[])

    assert downgrade_expired_trials_use_case(db=db, now=NOW) == []
    assert db.user_query.update_calls == []
    assert db.commit_calls == 0


def test_expired_trials_are_downgraded_in_one_update() -> None:
    expired = [
        SimpleNamespace(id=uuid4(), email="a@acme.io", name="Ann"),
        SimpleNamespace(id=uuid4(), email="b@acme.io", name=None),
    ]
    db = _SessionStub(expired=expired)

    downgraded = downgrade_expired_trials_use_case(db=db, now=NOW)

    assert downgraded == [DowngradedTrial("a@acme.io", "Ann"), DowngradedTrial("b@acme.io", None)]
    assert db.user_query.update_calls == [
        {"subscription_status": "trial_ended", "subscription_plan": None, "trial_ended_at": NOW}
    ]
    assert db.commit_calls == 1
