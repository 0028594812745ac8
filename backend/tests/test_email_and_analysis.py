from __future__ import annotations

import json
from types import SimpleNamespace

import pytest
import requests

from offboardpro.config import settings
from offboardpro.services import email as email_service
from offboardpro.services import exit_analysis
from offboardpro.services.exit_analysis import ExitAnalysisError, analyze_exit_data


def _response(status_code, payload=None, text=""):
    return SimpleNamespace(status_code=status_code, text=text, json=lambda: payload)


@pytest.fixture
def brevo(monkeypatch):
    calls = []
    monkeypatch.setattr(settings, "BREVO_API_KEY", "xkeysib-test")

    def install(result):
        def fake_post(url, *, json, headers, timeout):
            calls.append({"url": url, "json": json, "headers": headers})
            if isinstance(result, Exception):
                raise result
            return result

        monkeypatch.setattr(email_service.requests, "post", fake_post)
        return calls

    return install


def test_send_email_without_api_key_is_not_attempted(monkeypatch) -> None:
    monkeypatch.setattr(settings, "BREVO_API_KEY", None)
    monkeypatch.setattr(email_service.requests, "post", lambda *a, **kw: pytest.fail("must not call Brevo"))

    assert email_service.send_email(["a@acme.io"], "Hi", "<p>x</p>") == (False, "BREVO_API_KEY not configured")


def test_send_email_posts_brevo_payload(brevo) -> None:
    calls = brevo(_response(201))

    ok, error = email_service.send_email(["a@acme.io", "b@acme.io"], "Subject", "<p>Body</p>")

    assert (ok, error) == (True, None)
    [call] = calls
    assert call["headers"]["api-key"] == "xkeysib-test"
    assert call["json"]["to"] == [{"email": "a@acme.io"}, {"email": "b@acme.io"}]
    assert call["json"]["htmlContent"] == "<p>Body</p>"


@pytest.mark.parametrize(
    ("result", "prefix"),
    [
        (_response(429), "RATE_LIMIT"),
        (_response(503, text="unavailable"), "HTTP_503"),
        (_response(400, text="bad sender"), "HTTP_400"),
        (requests.ConnectionError("reset"), "EXCEPTION"),
    ],
)
def test_send_email_reports_failures(brevo, result, prefix) -> None:
    brevo(result)

    ok, error = email_service.send_email(["a@acme.io"], "Subject", "<p>Body</p>")

    assert ok is False
    assert error.startswith(prefix)


def test_invitation_escapes_names_and_links(brevo) -> None:
    calls = brevo(_response(200))

    email_service.send_exit_survey_invitation_email(
        to=["dana@example.com"],
        employee_name="<Dana>",
        organization_name="Acme & Co",
        survey_link="https://app.example.com/exit-survey/abc",
        expires_in_days=30,
    )

    body = calls[0]["json"]["htmlContent"]
    assert "&lt;Dana&gt;" in body
    assert "Acme &amp; Co" in body
    assert "https://app.example.com/exit-survey/abc" in body
    assert "30 days" in body


@pytest.fixture
def groq(monkeypatch):
    monkeypatch.setattr(settings, "GROQ_API_KEY", "gsk_test")

    def install(result):
        def fake_post(url, *, json, headers, timeout):
            if isinstance(result, Exception):
                raise result
            return result

        monkeypatch.setattr(exit_analysis.requests, "post", fake_post)

    return install


SURVEYS = [{"departure_reason": "Compensation", "likelihood_to_recommend": 4, "department": "Sales"}]


def test_analysis_of_empty_data_is_none(groq) -> None:
    groq(AssertionError("must not call Groq"))

    assert analyze_exit_data([]) is None


def test_analysis_parses_completion_json(groq) -> None:
    analysis = {"patterns": ["pay"], "churn_risks": [], "key_metrics": {"avg_nps": 4}}
    groq(_response(200, {"choices": [{"message": {"content": json.dumps(analysis)}}]}))

    assert analyze_exit_data(SURVEYS) == analysis


@pytest.mark.parametrize(
    "result",
    [
        _response(500, text="overloaded"),
        _response(200, {"choices": []}),
        _response(200, {"choices": [{"message": {"content": "not json"}}]}),
        _response(200, {"choices": [{"message": {"content": "[1, 2]"}}]}),
        requests.Timeout("slow"),
    ],
)
def test_analysis_failures_raise(groq, result) -> None:
    groq(result)

    with pytest.raises(ExitAnalysisError):
        analyze_exit_data(SURVEYS)


def test_analysis_without_api_key_raises(monkeypatch) -> None:
    monkeypatch.setattr(settings, "GROQ_API_KEY", None)

    with pytest.raises(ExitAnalysisError, match="GROQ_API_KEY"):
        analyze_exit_data(SURVEYS)
