"""FastAPI application."""
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from .config import settings
from .domain_errors import DomainError, ValidationError
from .problem_details import build_http_problem_response, build_problem_details_response
from .routers import (
    auth,
    cron,
    exit_survey,
    insights,
    notifications,
    offboardings,
    organization,
    paddle,
    security,
    tasks,
    team,
    templates,
)

# Create app
app = FastAPI(
    title="OffboardPro",
    version="1.0.0",
    description="Backend API for employee offboarding, exit surveys and access revocation"
)

# Production safety checks (fail closed on insecure config).
if settings.is_production and settings.JWT_SECRET_KEY == "change-me":
    raise RuntimeError("JWT_SECRET_KEY must be set in production.")
if settings.is_production and not settings.cors_origins:
    raise RuntimeError("ALLOWED_ORIGINS must be set in production (explicit frontend origin required).")
if settings.is_production and any(origin.strip() == "*" for origin in settings.cors_origins):
    raise RuntimeError("ALLOWED_ORIGINS must be explicit in production (no wildcard when using credentials).")
if settings.is_production and any(
    origin.startswith("http://localhost") or origin.startswith("http://127.0.0.1") for origin in settings.cors_origins
):
    raise RuntimeError("ALLOWED_ORIGINS contains localhost in production; set it to your real frontend origin.")

# CORS
cors_methods = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
# If you add new custom headers, whitelist them explicitly.
cors_headers = ["Authorization", "Content-Type"]
if not settings.is_production:
    cors_headers = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=cors_methods,
    allow_headers=cors_headers,
)


@app.exception_handler(DomainError)
def handle_domain_error(request: Request, exc: DomainError):
    return build_problem_details_response(exc, instance=request.url.path)


@app.exception_handler(StarletteHTTPException)
def handle_http_exception(request: Request, exc: StarletteHTTPException):
    return build_http_problem_response(exc, instance=request.url.path)


@app.exception_handler(RequestValidationError)
def handle_request_validation_error(request: Request, exc: RequestValidationError):
    return build_problem_details_response(
        ValidationError(
            code="VALIDATION_ERROR",
            message="Request body is missing or malformed",
            details={"errors": jsonable_encoder(exc.errors())},
        ),
        instance=request.url.path,
    )


# Include routers
app.include_router(auth.router, prefix="/api")
app.include_router(organization.router, prefix="/api")
app.include_router(templates.router, prefix="/api")
app.include_router(offboardings.router, prefix="/api")
app.include_router(tasks.router, prefix="/api")
app.include_router(exit_survey.router, prefix="/api")
app.include_router(security.router, prefix="/api")
app.include_router(paddle.router, prefix="/api")
app.include_router(cron.router, prefix="/api")
app.include_router(insights.router, prefix="/api")
app.include_router(notifications.router, prefix="/api")
app.include_router(team.router, prefix="/api")


@app.get("/api/system/health")
def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": "1.0.0",
    }


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": "OffboardPro API",
        "version": "1.0.0",
        "docs": "/docs"
    }
