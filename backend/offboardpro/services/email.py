"""Transactional email via the Brevo HTTP API."""
from __future__ import annotations

import html
import logging

import requests

from ..config import settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Raised by background jobs so Celery can retry the send."""


def send_email(to: list[str], subject: str, html_body: str) -> tuple[bool, str | None]:
    """Send one email. Returns (ok, error) and never raises."""
    if not settings.BREVO_API_KEY:
        return False, "BREVO_API_KEY not configured"
    if not to:
        return False, "No recipients"

    payload = {
        "sender": {"name": settings.EMAIL_FROM_NAME, "email": settings.EMAIL_FROM_ADDRESS},
        "to": [{"email": address} for address in to],
        "subject": subject,
        "htmlContent": html_body,
    }
    try:
        response = requests.post(
            settings.BREVO_API_URL,
            json=payload,
            headers={
                "api-key": settings.BREVO_API_KEY,
                "accept": "application/json",
                "content-type": "application/json",
            },
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        return False, f"EXCEPTION: {e}"

    if response.status_code in (200, 201, 202):
        return True, None
    if response.status_code == 429:
        return False, "RATE_LIMIT"
    return False, f"HTTP_{response.status_code}: {response.text[:200]}"


def _layout(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html><html><body style=\"font-family: Arial, sans-serif; color: #1f2937;\">"
        f"<h2>{title}</h2>{body}"
        "<p style=\"color: #6b7280; font-size: 12px;\">Sent by OffboardPro</p>"
        "</body></html>"
    )


def _button(url: str, label: str) -> str:
    return (
        f"<p><a href=\"{html.escape(url, quote=True)}\" "
        "style=\"background: #7c3aed; color: #ffffff; padding: 12px 24px; "
        f"border-radius: 6px; text-decoration: none;\">{html.escape(label)}</a></p>"
    )


def send_exit_survey_invitation_email(
    *,
    to: list[str],
    employee_name: str,
    organization_name: str,
    survey_link: str,
    expires_in_days: int,
) -> tuple[bool, str | None]:
    body = (
        f"<p>Hi {html.escape(employee_name)},</p>"
        f"<p>Thank you for your time at {html.escape(organization_name)}. "
        "We'd appreciate a few minutes of honest feedback about your experience.</p>"
        f"{_button(survey_link, 'Take the exit survey')}"
        f"<p>The link is valid for {expires_in_days} days and can be used once.</p>"
    )
    return send_email(to, "We'd Love Your Feedback - Exit Survey", _layout("Exit survey", body))


def send_security_alert_email(
    *,
    to: list[str],
    alert_type: str,
    revoked_count: int,
    performed_by: str,
) -> tuple[bool, str | None]:
    body = (
        f"<p>A security action was performed on your organization: <strong>{html.escape(alert_type)}</strong>.</p>"
        f"<p>{revoked_count} app connection(s) were revoked by {html.escape(performed_by)}.</p>"
        "<p>If you did not expect this, review the revocation log in your dashboard.</p>"
    )
    return send_email(to, "Security Alert: App Access Revoked", _layout("Security alert", body))


def send_offboarding_completed_email(
    *,
    to: list[str],
    employee_name: str,
    completed_tasks: int,
    dashboard_link: str,
) -> tuple[bool, str | None]:
    body = (
        f"<p>All {completed_tasks} checklist task(s) for {html.escape(employee_name)} are complete.</p>"
        f"{_button(dashboard_link, 'View offboarding')}"
    )
    return send_email(to, f"Offboarding Completed: {employee_name}", _layout("Offboarding completed", body))


def send_trial_ended_email(*, to: list[str], user_name: str, upgrade_link: str) -> tuple[bool, str | None]:
    body = (
        f"<p>Hi {html.escape(user_name)},</p>"
        "<p>Your OffboardPro trial has ended and your account was moved to the Starter plan.</p>"
        f"{_button(upgrade_link, 'Upgrade now')}"
    )
    return send_email(to, "Your OffboardPro Trial Has Ended", _layout("Trial ended", body))


def send_team_invitation_email(
    *,
    to: list[str],
    inviter_name: str,
    organization_name: str,
    role: str,
    invite_link: str,
    expires_in_days: int,
) -> tuple[bool, str | None]:
    body = (
        f"<p>{html.escape(inviter_name)} invited you to join {html.escape(organization_name)} "
        f"on OffboardPro as <strong>{html.escape(role)}</strong>.</p>"
        f"{_button(invite_link, 'Accept invitation')}"
        f"<p>This invitation expires in {expires_in_days} days.</p>"
    )
    return send_email(to, f"You're invited to join {organization_name} on OffboardPro", _layout("Team invitation", body))
