"""Application-level exception types.

Domain errors shared by routes and dependencies, so error handling, logging
and API responses stay consistent.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional; keep shapes consistent across the codebase.
    """

    code: str
    message: str
    hint: str
    field: str
    max_length: int
    actual_length: int
    http_status: int
    retry_after: int
    limit: int
    reset_at: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request input fails domain validation."""


class RateLimitedAppError(AppError):
    """Raised by route-level limiters that cannot short-circuit with a response.

    ``details`` carries ``limit``, ``reset_at`` and ``retry_after`` so the
    handler can emit rate limit headers.
    """
