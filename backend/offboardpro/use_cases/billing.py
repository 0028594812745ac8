"""Paddle billing event reconciliation onto User subscription fields."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import User

logger = logging.getLogger(__name__)


def _parse_timestamp(value: Any) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _custom_data(data: dict[str, Any]) -> dict[str, Any]:
    custom = data.get("custom_data")
    return custom if isinstance(custom, dict) else {}


def _update_by_subscription(
    db: Session,
    subscription_id: str | None,
    values: dict[str, Any],
    occurred_at: datetime | None,
) -> int:
    if not subscription_id:
        logger.error("Paddle event without subscription id")
        return 0

    query = db.query(User).filter(User.paddle_subscription_id == subscription_id)
    if occurred_at is not None:
        # Older events than the last one applied are dropped.
        query = query.filter(
            or_(User.subscription_event_at.is_(None), User.subscription_event_at <= occurred_at)
        )
        values = {**values, "subscription_event_at": occurred_at}
    updated = query.update(values, synchronize_session=False)
    if updated == 0:
        logger.info("Paddle event for subscription %s matched no user or was stale", subscription_id)
    return updated


def handle_subscription_created(db: Session, data: dict[str, Any], occurred_at: datetime | None, now: datetime) -> None:
    custom = _custom_data(data)
    user_id = custom.get("userId")
    if not user_id:
        logger.error("subscription.created %s without custom_data.userId", data.get("id"))
        return
    try:
        user_uuid = UUID(str(user_id))
    except ValueError:
        logger.error("subscription.created %s with malformed userId %r", data.get("id"), user_id)
        return

    trial_dates = data.get("trial_dates") if isinstance(data.get("trial_dates"), dict) else None
    status = data.get("status") or ("trialing" if trial_dates else "active")
    values: dict[str, Any] = {
        "subscription_status": status,
        "subscription_plan": custom.get("planName"),
        "paddle_subscription_id": data.get("id"),
        "paddle_customer_id": data.get("customer_id"),
        "subscription_start_date": _parse_timestamp(data.get("started_at")) or now,
        "trial_ends_at": _parse_timestamp(trial_dates.get("ends_at")) if trial_dates else None,
    }
    if occurred_at is not None:
        values["subscription_event_at"] = occurred_at

    updated = db.query(User).filter(User.id == user_uuid).update(values, synchronize_session=False)
    if updated:
        logger.info("User %s subscription created with status %s", user_uuid, status)
    else:
        logger.warning("subscription.created for unknown user %s", user_uuid)


def handle_subscription_updated(db: Session, data: dict[str, Any], occurred_at: datetime | None, now: datetime) -> None:
    values: dict[str, Any] = {"subscription_status": data.get("status")}
    plan_name = _custom_data(data).get("planName")
    if plan_name:
        values["subscription_plan"] = plan_name
    _update_by_subscription(db, data.get("id"), values, occurred_at)


def handle_subscription_activated(db: Session, data: dict[str, Any], occurred_at: datetime | None, now: datetime) -> None:
    _update_by_subscription(db, data.get("id"), {"subscription_status": "active"}, occurred_at)


def handle_subscription_canceled(db: Session, data: dict[str, Any], occurred_at: datetime | None, now: datetime) -> None:
    _update_by_subscription(
        db,
        data.get("id"),
        {"subscription_status": "canceled", "subscription_canceled_at": now},
        occurred_at,
    )


def handle_subscription_past_due(db: Session, data: dict[str, Any], occurred_at: datetime | None, now: datetime) -> None:
    _update_by_subscription(db, data.get("id"), {"subscription_status": "past_due"}, occurred_at)


def handle_transaction_completed(db: Session, data: dict[str, Any], occurred_at: datetime | None, now: datetime) -> None:
    logger.info("Paddle transaction completed: %s", data.get("id"))


EventHandler = Callable[[Session, dict, Optional[datetime], datetime], None]

EVENT_HANDLERS: dict[str, EventHandler] = {
    "subscription.created": handle_subscription_created,
    "subscription.updated": handle_subscription_updated,
    "subscription.activated": handle_subscription_activated,
    "subscription.canceled": handle_subscription_canceled,
    "subscription.past_due": handle_subscription_past_due,
    "transaction.completed": handle_transaction_completed,
}


def handle_paddle_event_use_case(
    *,
    db: Session,
    event: dict[str, Any],
    now: datetime | None = None,
) -> bool:
    """Apply one webhook event. Returns False for unhandled types and failed handlers.

    Handler failures are rolled back and logged, never raised: the webhook
    acknowledges every parsed event.
    """
    event_type = event.get("event_type")
    handler = EVENT_HANDLERS.get(event_type) if isinstance(event_type, str) else None
    if handler is None:
        logger.info("Unhandled Paddle event type: %s", event_type)
        return False

    data = event.get("data") if isinstance(event.get("data"), dict) else {}
    occurred_at = _parse_timestamp(event.get("occurred_at"))
    logger.info("Paddle webhook received: %s (%s)", event_type, data.get("id"))

    try:
        handler(db, data, occurred_at, now or datetime.now(timezone.utc))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Paddle %s handler failed for %s", event_type, data.get("id"))
        return False
    return True
