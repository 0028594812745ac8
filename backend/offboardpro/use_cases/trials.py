"""Professional trial lifecycle: eligibility, start and expiry downgrade."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from ..config import settings
from ..models import User

logger = logging.getLogger(__name__)

DISPOSABLE_EMAIL_DOMAINS = frozenset({
    "tempmail.com",
    "guerrillamail.com",
    "10minutemail.com",
    "throwaway.email",
    "temp-mail.org",
    "fakeinbox.com",
    "mailinator.com",
    "maildrop.cc",
    "trashmail.com",
    "yopmail.com",
    "getnada.com",
    "emailondeck.com",
})


@dataclass(frozen=True)
class DowngradedTrial:
    email: str
    name: str | None


def extract_email_domain(email: str) -> str:
    _, _, domain = email.strip().rpartition("@")
    return domain.lower()


def is_disposable_email(email: str) -> bool:
    return extract_email_domain(email) in DISPOSABLE_EMAIL_DOMAINS


def start_trial(user: User, now: datetime | None = None) -> None:
    """Put a fresh account on the trial plan. The caller commits."""
    now = now or datetime.now(timezone.utc)
    user.subscription_plan = settings.TRIAL_PLAN
    user.subscription_status = "trialing"
    user.trial_started_at = now
    user.trial_ends_at = now + timedelta(days=settings.TRIAL_DURATION_DAYS)


def trial_days_remaining(user: User, now: datetime | None = None) -> int:
    if user.subscription_status != "trialing" or user.trial_ends_at is None:
        return 0
    now = now or datetime.now(timezone.utc)
    ends_at = user.trial_ends_at
    if ends_at.tzinfo is None:
        ends_at = ends_at.replace(tzinfo=timezone.utc)
    remaining = ends_at - now
    if remaining <= timedelta(0):
        return 0
    # Partial days count as a full day left.
    return remaining.days + (1 if remaining.seconds or remaining.microseconds else 0)


def downgrade_expired_trials_use_case(*, db: Session, now: datetime | None = None) -> list[DowngradedTrial]:
    """Move every expired trial to ``trial_ended`` and return who was affected."""
    now = now or datetime.now(timezone.utc)
    expired = db.query(User).filter(
        User.subscription_status == "trialing",
        User.trial_ends_at.isnot(None),
        User.trial_ends_at < now,
    ).all()
    if not expired:
        return []

    downgraded = [DowngradedTrial(email=user.email, name=user.name) for user in expired]
    db.query(User).filter(
        User.id.in_([user.id for user in expired]),
        User.subscription_status == "trialing",
    ).update(
        {
            "subscription_status": "trial_ended",
            "subscription_plan": None,
            "trial_ended_at": now,
        },
        synchronize_session=False,
    )
    db.commit()

    logger.info("Downgraded %s expired trials", len(downgraded))
    return downgraded
