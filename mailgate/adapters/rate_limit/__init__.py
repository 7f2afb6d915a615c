"""Rate limiting adapters.

A small abstraction layer so the service can run an in-process sliding-window
limiter today and move to a shared store later without changing the HTTP layer.
"""

from mailgate.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from mailgate.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter

__all__ = ["AbstractRateLimiter", "InMemorySlidingWindowRateLimiter", "RateLimitResult"]
