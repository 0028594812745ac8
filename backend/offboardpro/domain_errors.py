"""Domain-level exception primitives with stable machine-readable codes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(eq=False)
class DomainError(Exception):
    """Use-case level error with stable code and HTTP mapping."""

    code: str
    http_status: int
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


class ValidationError(DomainError):
    """Missing or malformed input."""

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(code=code, http_status=400, message=message, details=details)


class AuthError(DomainError):
    """Missing or invalid credentials."""

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(code=code, http_status=401, message=message, details=details)


class NotFoundError(DomainError):
    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(code=code, http_status=404, message=message, details=details)


class StateConflictError(DomainError):
    """Entity is in a state that forbids the operation (expired, completed, raced)."""

    def __init__(
        self,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
        http_status: int = 400,
    ) -> None:
        super().__init__(code=code, http_status=http_status, message=message, details=details)


class DownstreamError(DomainError):
    """Store or provider call failed."""

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(code=code, http_status=500, message=message, details=details)


def concurrent_modification(entity: str) -> StateConflictError:
    return StateConflictError(
        code="CONCURRENT_MODIFICATION",
        message=f"{entity} was modified concurrently, retry the request",
        http_status=409,
    )
