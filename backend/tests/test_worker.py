from __future__ import annotations

from types import SimpleNamespace

import pytest

from offboardpro import worker
from offboardpro.services.background import enqueue
from offboardpro.services.email import EmailDeliveryError
from offboardpro.use_cases.trials import DowngradedTrial


@pytest.mark.parametrize("error", ["RATE_LIMIT", "EXCEPTION: reset", "HTTP_502: bad gateway"])
def test_transient_email_failures_are_retried(error) -> None:
    with pytest.raises(EmailDeliveryError):
        worker._check_delivery(False, error, "test email")


@pytest.mark.parametrize("error", ["BREVO_API_KEY not configured", "HTTP_400: bad sender", None])
def test_permanent_email_failures_are_not_retried(error) -> None:
    assert worker._check_delivery(False, error, "test email") is False


def test_successful_delivery() -> None:
    assert worker._check_delivery(True, None, "test email") is True


def test_security_alert_task_sends_to_actor(monkeypatch) -> None:
    sent = []

    def fake_alert(**kwargs):
        sent.append(kwargs)
        return True, None

    monkeypatch.setattr(worker.email_service, "send_security_alert_email", fake_alert)

    assert worker.send_security_alert("it@acme.io", "bulk_revocation", 4, "it@acme.io") is True
    assert sent == [
        {"to": ["it@acme.io"], "alert_type": "bulk_revocation", "revoked_count": 4, "performed_by": "it@acme.io"}
    ]


def test_notify_trial_ended_counts_queued_emails(monkeypatch) -> None:
    queued = []

    def fake_enqueue(job, *args):
        queued.append((job.name, args))
        return args[0] != "broken@acme.io"

    monkeypatch.setattr(worker, "enqueue", fake_enqueue)

    count = worker.notify_trial_ended(
        [
            DowngradedTrial("a@acme.io", "Ann"),
            DowngradedTrial("broken@acme.io", "Bo"),
            DowngradedTrial("c@acme.io", None),
        ]
    )

    assert count == 2
    assert queued[2] == ("send_trial_ended_email", ("c@acme.io", "there"))


def test_enqueue_reports_broker_failure() -> None:
    def delay(*_args):
        raise ConnectionError("broker unreachable")

    job = SimpleNamespace(name="send_security_alert", delay=delay)

    assert enqueue(job, "x") is False


def test_enqueue_passes_arguments() -> None:
    calls = []
    job = SimpleNamespace(name="analyze_exit_surveys", delay=lambda *args: calls.append(args))

    assert enqueue(job, "org-id") is True
    assert calls == [("org-id",)]


def test_trial_downgrade_is_scheduled_daily() -> None:
    entry = worker.celery_app.conf.beat_schedule["downgrade-expired-trials-daily"]

    assert entry["task"] == "downgrade_expired_trials"
    assert entry["schedule"].hour == {2}
    assert entry["schedule"].minute == {0}


class _TaskSession:
    def __init__(self, rows):
        self._rows = rows
        self.closed = False

    def query(self, entity):
        return SimpleNamespace(filter=lambda *_a: SimpleNamespace(first=lambda: self._rows.get(entity)))

    def close(self):
        self.closed = True


def test_team_invitation_email_links_to_accept_page(monkeypatch) -> None:
    invitation = SimpleNamespace(
        id="inv-1",
        email="new@acme.io",
        role="hr_manager",
        token="tok123",
        status="pending",
        organization_id="org-1",
    )
    session = _TaskSession({worker.Invitation: invitation, worker.Organization: SimpleNamespace(name="Acme Corp")})
    monkeypatch.setattr(worker, "SessionLocal", lambda: session)
    sent = []
    monkeypatch.setattr(worker.email_service, "send_team_invitation_email", lambda **kw: sent.append(kw) or (True, None))

    assert worker.send_team_invitation("6f1c0a52-8d55-4c1e-9a57-0f6f3e0b5d11", "Ada Admin") is True
    [email] = sent
    assert email["to"] == ["new@acme.io"]
    assert email["organization_name"] == "Acme Corp"
    assert email["role"] == "Hr Manager"
    assert email["invite_link"].endswith("/accept-invite/tok123")
    assert session.closed is True


def test_accepted_invitation_is_not_emailed(monkeypatch) -> None:
    invitation = SimpleNamespace(status="accepted")
    monkeypatch.setattr(worker, "SessionLocal", lambda: _TaskSession({worker.Invitation: invitation}))
    monkeypatch.setattr(worker.email_service, "send_team_invitation_email", lambda **kw: pytest.fail("must not send"))

    assert worker.send_team_invitation("6f1c0a52-8d55-4c1e-9a57-0f6f3e0b5d11", "Ada Admin") is False
