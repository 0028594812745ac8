"""AI exit insight endpoints."""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import PermissionChecker
from ..database import get_db
from ..models import User
from ..schemas import AnalyzeExitsResponse, ExitInsightResponse, InsightResponse
from ..services.background import enqueue
from ..use_cases.exit_insights import latest_insight_use_case, require_insights_access
from ..worker import analyze_exit_surveys

router = APIRouter(tags=["insights"])
logger = logging.getLogger(__name__)


@router.post("/analyze-exits", response_model=AnalyzeExitsResponse)
def analyze_exits(current_user: User = Depends(PermissionChecker("canViewInsights"))):
    """Queue an AI analysis of the organization's recent exit surveys."""
    org_id = require_insights_access(current_user)
    if not enqueue(analyze_exit_surveys, str(org_id)):
        return AnalyzeExitsResponse(queued=False, message="Analysis could not be scheduled, try again later")
    return AnalyzeExitsResponse(queued=True, message="Exit analysis scheduled")


@router.get("/insights", response_model=InsightResponse)
def get_latest_insight(
    current_user: User = Depends(PermissionChecker("canViewInsights")),
    db: Session = Depends(get_db),
):
    insight = latest_insight_use_case(db=db, current_user=current_user)
    return InsightResponse(insight=ExitInsightResponse.model_validate(insight) if insight else None)
