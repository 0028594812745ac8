"""AI analysis runs over an organization's recent exit surveys."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..auth import user_organization_id
from ..domain_errors import DomainError, ValidationError
from ..models import ExitInsight, ExitSurvey, Offboarding, User
from ..services.entitlements import has_feature_access, upgrade_message
from ..services.exit_analysis import analyze_exit_data

logger = logging.getLogger(__name__)

ANALYSIS_WINDOW_DAYS = 90
MIN_SURVEYS_FOR_ANALYSIS = 3

Analyzer = Callable[[list], Optional[dict]]


def require_insights_access(current_user: User) -> UUID:
    """Organization of a user whose plan includes AI insights."""
    org_id = user_organization_id(current_user)
    if org_id is None:
        raise ValidationError(code="NO_ORGANIZATION", message="User has no organization")
    if not has_feature_access("ai", current_user.subscription_plan, current_user.subscription_status):
        raise DomainError(
            code="FEATURE_NOT_AVAILABLE",
            http_status=403,
            message=upgrade_message("ai"),
            details={"feature": "ai"},
        )
    return org_id


def collect_survey_rows(*, db: Session, organization_id: UUID, since: datetime) -> list[dict[str, Any]]:
    """Survey answers with department and role. Employee identity is not included."""
    rows = db.query(ExitSurvey, Offboarding.department, Offboarding.role).join(
        Offboarding,
        ExitSurvey.offboarding_id == Offboarding.id,
    ).filter(
        ExitSurvey.organization_id == organization_id,
        ExitSurvey.created_at >= since,
    ).order_by(ExitSurvey.created_at.desc()).all()

    return [
        {
            "departure_reason": survey.departure_reason,
            "likelihood_to_recommend": survey.likelihood_to_recommend,
            "would_return": survey.would_return,
            "would_return_reason": survey.would_return_reason,
            "suggestions_for_improvement": survey.suggestions_for_improvement,
            "department": department,
            "role": role,
            "submitted_at": survey.created_at.isoformat() if survey.created_at else None,
        }
        for survey, department, role in rows
    ]


def insight_priority(analysis: dict[str, Any]) -> str:
    metrics = analysis.get("key_metrics") or {}
    churn_risks = analysis.get("churn_risks") or []
    avg_nps = metrics.get("avg_nps")
    if (isinstance(avg_nps, (int, float)) and avg_nps < 6) or metrics.get("sentiment") == "negative":
        return "critical"
    if len(churn_risks) >= 3:
        return "high"
    if churn_risks:
        return "medium"
    return "low"


def confidence_for_sample(sample_size: int) -> float:
    if sample_size >= 20:
        return 0.95
    if sample_size >= 10:
        return 0.80
    if sample_size >= 5:
        return 0.65
    return 0.50


def analyze_exit_surveys_use_case(
    *,
    db: Session,
    organization_id: UUID,
    analyzer: Analyzer = analyze_exit_data,
    now: datetime | None = None,
) -> ExitInsight | None:
    """Run one analysis and store it. None when there is too little data.

    Provider failures propagate as ExitAnalysisError so the job can retry.
    """
    now = now or datetime.now(timezone.utc)
    rows = collect_survey_rows(
        db=db,
        organization_id=organization_id,
        since=now - timedelta(days=ANALYSIS_WINDOW_DAYS),
    )
    if len(rows) < MIN_SURVEYS_FOR_ANALYSIS:
        logger.info(
            "Skipping exit analysis for org %s: %s surveys, need %s",
            organization_id,
            len(rows),
            MIN_SURVEYS_FOR_ANALYSIS,
        )
        return None

    analysis = analyzer(rows)
    if not analysis:
        return None

    insight = ExitInsight(
        organization_id=organization_id,
        survey_count=len(rows),
        time_period_days=ANALYSIS_WINDOW_DAYS,
        priority_level=insight_priority(analysis),
        confidence_score=confidence_for_sample(len(rows)),
        affected_departments=sorted({row["department"] for row in rows if row["department"]}),
        analysis=analysis,
    )
    db.add(insight)
    db.commit()
    logger.info(
        "Stored exit insight for org %s from %s surveys (priority %s)",
        organization_id,
        len(rows),
        insight.priority_level,
    )
    return insight


def latest_insight_use_case(*, db: Session, current_user: User) -> ExitInsight | None:
    org_id = require_insights_access(current_user)
    return db.query(ExitInsight).filter(
        ExitInsight.organization_id == org_id,
    ).order_by(ExitInsight.created_at.desc()).first()
