"""Scheduler-triggered endpoints, authenticated with a shared bearer secret."""
import hmac
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..schemas import CheckTrialsResponse
from ..use_cases.trials import downgrade_expired_trials_use_case
from ..worker import notify_trial_ended

router = APIRouter(prefix="/cron", tags=["cron"])
logger = logging.getLogger(__name__)


def require_cron_secret(authorization: str | None = Header(default=None)) -> None:
    # No configured secret means the endpoint is closed.
    expected = f"Bearer {settings.CRON_SECRET}" if settings.CRON_SECRET else None
    if not expected or not authorization:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    # Header values may carry any latin-1 text; compare as bytes.
    if not hmac.compare_digest(authorization.encode("utf-8", "surrogateescape"), expected.encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


@router.get("/check-trials", response_model=CheckTrialsResponse, dependencies=[Depends(require_cron_secret)])
def check_trials(db: Session = Depends(get_db)):
    """Downgrade expired trials and queue one trial-ended email per user."""
    downgraded = downgrade_expired_trials_use_case(db=db)
    emails_sent = notify_trial_ended(downgraded)
    logger.info("Trial check: %s downgraded, %s emails queued", len(downgraded), emails_sent)
    return CheckTrialsResponse(
        downgraded=len(downgraded),
        emails_sent=emails_sent,
        timestamp=datetime.now(timezone.utc),
    )
