"""Rate limiter interfaces.

The HTTP layer depends on this abstraction (not the concrete implementation)
so the per-process store can later be replaced by a shared one without
touching middleware or routes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single admission decision.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Requests still available in the trailing window (0 when blocked).
        reset_at: UNIX epoch seconds at which another request would be admitted.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def admit(self, key: str, now: float | None = None) -> RateLimitResult:
        """Record a request for ``key`` and decide whether it may proceed.

        Args:
            key: Unique identifier (e.g., client address plus path).
            now: Request time in milliseconds since the epoch; defaults to the
                limiter's clock.

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def remaining(self, key: str, now: float | None = None) -> int:
        """Return how many more requests ``key`` may make right now."""
        raise NotImplementedError
