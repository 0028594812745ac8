"""Paddle billing webhook."""
import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..domain_errors import DownstreamError
from ..schemas import WebhookAck
from ..services.paddle_signature import verify_webhook_signature
from ..use_cases.billing import handle_paddle_event_use_case

router = APIRouter(prefix="/paddle", tags=["billing"])
logger = logging.getLogger(__name__)


@router.post("/webhook", response_model=WebhookAck)
async def paddle_webhook(request: Request, db: Session = Depends(get_db)):
    """Acknowledge every parsed event; handler failures are only logged."""
    body = await request.body()

    if settings.PADDLE_WEBHOOK_SECRET:
        if not verify_webhook_signature(
            body,
            request.headers.get("paddle-signature"),
            secret=settings.PADDLE_WEBHOOK_SECRET,
            max_age_seconds=settings.PADDLE_SIGNATURE_MAX_AGE_SECONDS,
        ):
            logger.warning("Rejected Paddle webhook with invalid signature")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")

    try:
        event = json.loads(body)
    except ValueError:
        event = None
    if not isinstance(event, dict):
        logger.error("Paddle webhook body is not a JSON object")
        raise DownstreamError(code="WEBHOOK_PAYLOAD_INVALID", message="Webhook handler failed")

    handle_paddle_event_use_case(db=db, event=event)
    return WebhookAck()
