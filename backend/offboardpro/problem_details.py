"""RFC 7807 problem responses for domain errors and framework HTTP errors."""
from __future__ import annotations

from http import HTTPStatus
from typing import Any, Mapping

from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .domain_errors import DomainError

PROBLEM_MEDIA_TYPE = "application/problem+json"
PROBLEM_TYPE_BASE = "https://api.offboardpro.com/problems"

# Stable codes for HTTPExceptions raised by dependencies (session, permissions,
# cron secret, webhook signature, login throttling) and by routing itself.
HTTP_STATUS_CODES: dict[int, str] = {
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    429: "RATE_LIMITED",
}


def _title(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Domain Error"


def _problem_response(
    *,
    status_code: int,
    code: str,
    detail: str,
    details: dict[str, Any] | None = None,
    instance: str | None = None,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    payload: dict[str, object] = {
        "type": f"{PROBLEM_TYPE_BASE}/{code.lower()}",
        "title": _title(status_code),
        "status": status_code,
        "detail": detail,
        "code": code,
    }
    if details is not None:
        payload["details"] = details
    if instance:
        payload["instance"] = instance

    return JSONResponse(
        status_code=status_code,
        content=payload,
        media_type=PROBLEM_MEDIA_TYPE,
        headers=dict(headers) if headers else None,
    )


def build_problem_details_response(exc: DomainError, instance: str | None = None) -> JSONResponse:
    """Render DomainError as RFC 7807 payload with stable domain code."""
    return _problem_response(
        status_code=exc.http_status,
        code=exc.code,
        detail=exc.message,
        details=exc.details,
        instance=instance,
    )


def build_http_problem_response(exc: StarletteHTTPException, instance: str | None = None) -> JSONResponse:
    """Render an HTTPException the same way, keeping its headers (WWW-Authenticate, Retry-After)."""
    detail = exc.detail if isinstance(exc.detail, str) else _title(exc.status_code)
    return _problem_response(
        status_code=exc.status_code,
        code=HTTP_STATUS_CODES.get(exc.status_code, "HTTP_ERROR"),
        detail=detail,
        instance=instance,
        headers=getattr(exc, "headers", None),
    )
