"""Subscription plan limits and feature access.

Plans are resolved from free-form plan names stored by the billing webhook.
Unknown or missing plan names fall back to ``starter``; a subscription in
``trialing`` status gets the trial plan regardless of the stored name.

Feature lookup is closed-world: a feature name that is not in
``FEATURE_FLAGS`` is denied.
"""
from __future__ import annotations

from dataclasses import dataclass

DEFAULT_PLAN = "starter"
TRIAL_PLAN = "professional"


@dataclass(frozen=True)
class PlanLimits:
    """Numeric caps (None = unlimited) and feature flags of one plan."""

    name: str
    max_team_members: int | None
    max_offboardings_per_month: int | None
    max_templates: int | None
    has_ai: bool
    has_security_scanner: bool
    has_exit_surveys: bool
    has_api: bool
    has_priority_support: bool
    has_custom_branding: bool


PLAN_LIMITS: dict[str, PlanLimits] = {
    "starter": PlanLimits(
        name="Starter",
        max_team_members=25,
        max_offboardings_per_month=10,
        max_templates=5,
        has_ai=False,
        has_security_scanner=False,
        has_exit_surveys=False,
        has_api=False,
        has_priority_support=False,
        has_custom_branding=False,
    ),
    "professional": PlanLimits(
        name="Professional",
        max_team_members=100,
        max_offboardings_per_month=50,
        max_templates=20,
        has_ai=True,
        has_security_scanner=True,
        has_exit_surveys=True,
        has_api=False,
        has_priority_support=True,
        has_custom_branding=False,
    ),
    "enterprise": PlanLimits(
        name="Enterprise",
        max_team_members=None,
        max_offboardings_per_month=None,
        max_templates=None,
        has_ai=True,
        has_security_scanner=True,
        has_exit_surveys=True,
        has_api=True,
        has_priority_support=True,
        has_custom_branding=True,
    ),
}

# Accepted feature names -> PlanLimits attribute.
FEATURE_FLAGS: dict[str, str] = {
    "ai": "has_ai",
    "ai_insights": "has_ai",
    "security": "has_security_scanner",
    "security_scanner": "has_security_scanner",
    "surveys": "has_exit_surveys",
    "exit_surveys": "has_exit_surveys",
    "api": "has_api",
    "priority_support": "has_priority_support",
    "custom_branding": "has_custom_branding",
}

FEATURE_DISPLAY_NAMES: dict[str, str] = {
    "has_ai": "AI Insights",
    "has_security_scanner": "Security Scanner",
    "has_exit_surveys": "Exit Surveys",
    "has_api": "API Access",
    "has_priority_support": "Priority Support",
    "has_custom_branding": "Custom Branding",
}


def normalize_plan_name(plan: str | None) -> str:
    if not plan:
        return DEFAULT_PLAN
    normalized = plan.strip().lower()
    if normalized not in PLAN_LIMITS:
        return DEFAULT_PLAN
    return normalized


def get_plan_limits(plan: str | None, subscription_status: str | None = None) -> PlanLimits:
    """Resolve the limits that apply to a plan name and subscription status."""
    if subscription_status == "trialing":
        return PLAN_LIMITS[TRIAL_PLAN]
    return PLAN_LIMITS[normalize_plan_name(plan)]


def limits_for_user(user) -> PlanLimits:
    return get_plan_limits(user.subscription_plan, user.subscription_status)


def has_feature_access(feature: str, plan: str | None, subscription_status: str | None = None) -> bool:
    flag = FEATURE_FLAGS.get(feature.strip().lower())
    if flag is None:
        return False
    return bool(getattr(get_plan_limits(plan, subscription_status), flag))


def _under_cap(current_count: int, cap: int | None) -> bool:
    return cap is None or current_count < cap


def can_invite_more_members(current_count: int, plan: str | None, subscription_status: str | None = None) -> bool:
    return _under_cap(current_count, get_plan_limits(plan, subscription_status).max_team_members)


def can_create_offboarding(created_this_month: int, plan: str | None, subscription_status: str | None = None) -> bool:
    return _under_cap(created_this_month, get_plan_limits(plan, subscription_status).max_offboardings_per_month)


def can_create_template(template_count: int, plan: str | None, subscription_status: str | None = None) -> bool:
    return _under_cap(template_count, get_plan_limits(plan, subscription_status).max_templates)


def feature_display_name(feature: str) -> str:
    flag = FEATURE_FLAGS.get(feature.strip().lower())
    if flag is None:
        return feature
    return FEATURE_DISPLAY_NAMES[flag]


def upgrade_message(feature: str) -> str:
    return f"{feature_display_name(feature)} is not included in your current plan"
