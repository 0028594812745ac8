"""Pydantic schemas for API."""
from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Literal, Optional
from datetime import date, datetime
from uuid import UUID


# User schemas
class UserResponse(BaseModel):
    id: UUID
    email: str
    name: Optional[str] = None
    role: str
    organization_id: Optional[UUID] = None
    current_organization_id: Optional[UUID] = None
    subscription_status: Optional[str] = None
    subscription_plan: Optional[str] = None
    trial_ends_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# Auth schemas
class LoginRequest(BaseModel):
    # Optional so that a missing field is reported as CREDENTIALS_REQUIRED.
    email: Optional[str] = None
    password: Optional[str] = None


class SignupRequest(BaseModel):
    organization_name: str = Field(alias="organizationName")
    name: str
    email: str
    password: str
    model_config = ConfigDict(populate_by_name=True)


class LoginResponse(BaseModel):
    success: bool = True
    user: UserResponse
    access_token: str
    token_type: str = "bearer"


# Organization schemas
class OrganizationCreateRequest(BaseModel):
    organization_name: str = Field(alias="organizationName")
    user_id: UUID = Field(alias="userId")
    model_config = ConfigDict(populate_by_name=True)


class OrganizationBrief(BaseModel):
    id: UUID
    name: str
    model_config = ConfigDict(from_attributes=True)


class OrganizationCreateResponse(BaseModel):
    success: bool = True
    organization: OrganizationBrief


# Template schemas
class TemplateTaskCreate(BaseModel):
    task_name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    assigned_department: Optional[str] = None
    due_date_offset: int = 0
    priority: Literal["High", "Medium", "Low"] = "Medium"
    order_index: Optional[int] = None


class TemplateCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    tasks: list[TemplateTaskCreate] = Field(min_length=1)


class TemplateResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    organization_id: Optional[UUID] = None
    is_active: bool
    created_at: Optional[datetime] = None
    task_count: int = 0
    model_config = ConfigDict(from_attributes=True)


class TemplateListResponse(BaseModel):
    templates: list[TemplateResponse]


# Offboarding schemas
class OffboardingCreate(BaseModel):
    employee_name: str = Field(min_length=1, max_length=255)
    employee_email: str = Field(min_length=3, max_length=255)
    department: Optional[str] = None
    role: Optional[str] = None
    last_working_day: date
    manager_name: Optional[str] = None
    manager_email: Optional[str] = None
    reason_for_departure: Optional[str] = None
    template_id: UUID


class OffboardingResponse(BaseModel):
    id: UUID
    organization_id: UUID
    employee_name: str
    employee_email: str
    department: Optional[str] = None
    role: Optional[str] = None
    last_working_day: date
    manager_name: Optional[str] = None
    manager_email: Optional[str] = None
    reason_for_departure: Optional[str] = None
    template_id: Optional[UUID] = None
    status: str
    created_by: UUID
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class OffboardingCreateResponse(BaseModel):
    success: bool = True
    offboarding: OffboardingResponse


class OffboardingListResponse(BaseModel):
    offboardings: list[OffboardingResponse]


class FinalizeResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    warning: Optional[str] = None


# Task schemas
class TaskCompleteRequest(BaseModel):
    notes: Optional[str] = None


class TaskResponse(BaseModel):
    id: UUID
    offboarding_id: UUID
    task_name: str
    description: Optional[str] = None
    assigned_department: Optional[str] = None
    assigned_to: Optional[UUID] = None
    due_date: Optional[date] = None
    priority: str
    order_index: int
    completed: bool
    completed_at: Optional[datetime] = None
    completed_by: Optional[UUID] = None
    notes: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class TaskCompleteResponse(BaseModel):
    success: bool = True
    task: TaskResponse
    offboarding_completed: bool = False


# Exit survey schemas
class CreateSurveyTokenRequest(BaseModel):
    offboarding_id: UUID = Field(alias="offboardingId")
    organization_id: UUID = Field(alias="organizationId")
    employee_email: Optional[str] = Field(default=None, alias="employeeEmail")
    employee_name: Optional[str] = Field(default=None, alias="employeeName")
    model_config = ConfigDict(populate_by_name=True)


class CreateSurveyTokenResponse(BaseModel):
    success: bool = True
    token: str
    expires_at: datetime = Field(serialization_alias="expiresAt")
    already_exists: bool = Field(default=False, serialization_alias="alreadyExists")


class ValidateTokenRequest(BaseModel):
    token: str = Field(min_length=1)


class SurveyTokenPublic(BaseModel):
    id: UUID
    offboarding_id: UUID
    organization_id: UUID
    employee_name: Optional[str] = None
    employee_email: Optional[str] = None
    status: str
    expires_at: datetime
    model_config = ConfigDict(from_attributes=True)


class OffboardingSnapshot(BaseModel):
    employee_name: str
    department: Optional[str] = None
    role: Optional[str] = None
    last_working_day: date
    model_config = ConfigDict(from_attributes=True)


class ValidateTokenResponse(BaseModel):
    valid: bool
    survey_token: Optional[SurveyTokenPublic] = Field(default=None, serialization_alias="surveyToken")
    offboarding: Optional[OffboardingSnapshot] = None
    reason: Optional[str] = None
    error: Optional[str] = None


class ExitSurveySubmission(BaseModel):
    token: str = Field(min_length=1)
    departure_reason: str = Field(min_length=1, max_length=255)
    likelihood_to_recommend: int = Field(ge=0, le=10)
    would_return: bool
    would_return_reason: Optional[str] = None
    suggestions_for_improvement: Optional[str] = None


class SuccessResponse(BaseModel):
    success: bool = True
    message: str


# Security schemas
class RevokeAllResponse(BaseModel):
    success: bool = True
    revoked_count: int = Field(serialization_alias="revokedCount")
    message: str


class AppScanRequest(BaseModel):
    app_names: list[str] = Field(alias="appNames", min_length=1)
    model_config = ConfigDict(populate_by_name=True)


class OAuthConnectionResponse(BaseModel):
    app_name: str
    app_type: str
    risk_level: Optional[str] = None
    status: str
    model_config = ConfigDict(from_attributes=True)


class AppScanResponse(BaseModel):
    success: bool = True
    scan_id: UUID = Field(serialization_alias="scanId")
    total_apps_found: int = Field(serialization_alias="totalAppsFound")
    connections: list[OAuthConnectionResponse]


# Team schemas
class InviteMemberRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    role: Literal["admin", "hr_manager", "it_manager", "manager", "user"] = "user"


class InvitationResponse(BaseModel):
    id: UUID
    email: str
    role: str
    status: str
    expires_at: datetime
    model_config = ConfigDict(from_attributes=True)


class InviteMemberResponse(BaseModel):
    success: bool = True
    invitation: InvitationResponse
    email_sent: bool = Field(serialization_alias="emailSent")


class InvitationPreviewResponse(BaseModel):
    valid: bool = True
    invitation: InvitationResponse
    organization_name: Optional[str] = Field(default=None, serialization_alias="organizationName")


class AcceptInvitationResponse(BaseModel):
    success: bool = True
    organization_id: UUID = Field(serialization_alias="organizationId")
    role: str


class InvitationSignupRequest(BaseModel):
    name: str
    password: str


# Billing / cron schemas
class WebhookAck(BaseModel):
    received: bool = True


class CheckTrialsResponse(BaseModel):
    success: bool = True
    downgraded: int
    emails_sent: int
    timestamp: datetime


# Insight schemas
class ExitInsightResponse(BaseModel):
    id: UUID
    organization_id: UUID
    survey_count: int
    time_period_days: int
    priority_level: str
    confidence_score: float
    affected_departments: list[str] = []
    analysis: dict[str, Any]
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class InsightResponse(BaseModel):
    insight: Optional[ExitInsightResponse] = None


class AnalyzeExitsResponse(BaseModel):
    success: bool = True
    queued: bool
    message: str


# Notification schemas
class NotificationResponse(BaseModel):
    id: UUID
    message: str
    type: str
    read: bool
    related_task_id: Optional[UUID] = None
    related_offboarding_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
