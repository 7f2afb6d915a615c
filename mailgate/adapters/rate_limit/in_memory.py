"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around the read-prune-append-write sequence.
- Buckets are pruned lazily on access; empty buckets are only evicted when
  sweeping is enabled.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Callable

from mailgate.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult

logger = logging.getLogger(__name__)


def wall_clock_ms() -> float:
    """Current UNIX time in milliseconds."""
    return time.time() * 1000


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting requests per key in a trailing time window.

    Each key owns a bucket of request timestamps (milliseconds). On every
    admission the bucket is pruned of timestamps at least ``window_ms`` old,
    the new timestamp is appended, and the request is rejected when the bucket
    then holds more than ``max_requests`` entries. The request that brings the
    count to exactly ``max_requests`` is still admitted.

    By default a rejected request's timestamp is withdrawn after the decision,
    so hammering a saturated key does not push its reset further out. Pass
    ``record_rejected=True`` to keep rejected hits in the window as well.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        *,
        window_ms: int = 60000,
        max_requests: int = 60,
        record_rejected: bool = False,
        sweep_interval_ms: int = 0,
        clock: Callable[[], float] = wall_clock_ms,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            window_ms: Length of the sliding window in milliseconds.
            max_requests: Maximum number of admitted requests per window.
            record_rejected: Keep rejected requests in the bucket.
            sweep_interval_ms: Minimum interval between empty-bucket sweeps
                triggered from ``admit``; 0 disables sweeping.
            clock: Time source returning UNIX time in milliseconds.

        Raises:
            ValueError: If any numeric argument is out of range.
        """
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if sweep_interval_ms < 0:
            raise ValueError("sweep_interval_ms must be >= 0")

        self._window_ms = window_ms
        self._max = max_requests
        self._record_rejected = record_rejected
        self._sweep_interval_ms = sweep_interval_ms
        self._clock = clock
        self._lock = threading.RLock()
        self._buckets: dict[str, list[float]] = {}
        self._last_sweep: float | None = None

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"InMemorySlidingWindowRateLimiter(window_ms={self._window_ms}, "
            f"max_requests={self._max}, keys={len(self._buckets)})"
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)

    @property
    def window_ms(self) -> int:
        return self._window_ms

    @property
    def max_requests(self) -> int:
        return self._max

    def _prune(self, bucket: list[float], now: float) -> list[float]:
        return [ts for ts in bucket if now - ts < self._window_ms]

    def _reset_at_ms(self, bucket: list[float]) -> float | None:
        """Time at which the bucket next has room for one more request.

        The next request fits once at most ``max - 1`` tracked hits remain in
        the window, i.e. after the ``len - max``-th oldest hit expires.
        """
        if not bucket:
            return None
        ordered = sorted(bucket)
        index = max(0, len(ordered) - self._max)
        return ordered[index] + self._window_ms

    def _build_allowed_result(self, *, bucket: list[float], now: float) -> RateLimitResult:
        reset_ms = self._reset_at_ms(bucket) or now
        return RateLimitResult(
            allowed=True,
            limit=self._max,
            remaining=max(0, self._max - len(bucket)),
            reset_at=int(math.ceil(reset_ms / 1000)),
            retry_after_seconds=None,
        )

    def _build_blocked_result(self, *, bucket: list[float], now: float) -> RateLimitResult:
        reset_ms = self._reset_at_ms(bucket) or now
        retry_after = max(0, int(math.ceil((reset_ms - now) / 1000)))
        return RateLimitResult(
            allowed=False,
            limit=self._max,
            remaining=0,
            reset_at=int(math.ceil(reset_ms / 1000)),
            retry_after_seconds=retry_after,
        )

    def _maybe_sweep(self, now: float) -> None:
        if not self._sweep_interval_ms:
            return
        if self._last_sweep is None:
            self._last_sweep = now
            return
        if now - self._last_sweep >= self._sweep_interval_ms:
            self.sweep(now)

    def admit(self, key: str, now: float | None = None) -> RateLimitResult:
        """Record a request for ``key`` and decide whether it is admitted.

        Args:
            key: Bucket key, typically client address plus request path.
            now: Request time in milliseconds; defaults to the clock.

        Returns:
            RateLimitResult with the decision and header metadata.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        if now is None:
            now = self._clock()

        with self._lock:
            self._maybe_sweep(now)

            bucket = self._prune(self._buckets.get(key, []), now)
            bucket.append(now)
            self._buckets[key] = bucket

            if len(bucket) <= self._max:
                return self._build_allowed_result(bucket=bucket, now=now)

            if not self._record_rejected:
                bucket.pop()
            return self._build_blocked_result(bucket=bucket, now=now)

    def remaining(self, key: str, now: float | None = None) -> int:
        """Return how many further requests ``key`` may make at ``now``.

        Read-only: the pruned bucket is not written back.
        """
        if now is None:
            now = self._clock()

        with self._lock:
            bucket = self._prune(self._buckets.get(key, []), now)
            return max(0, self._max - len(bucket))

    def sweep(self, now: float | None = None) -> int:
        """Prune every bucket and drop the ones left empty.

        Args:
            now: Reference time in milliseconds; defaults to the clock.

        Returns:
            Number of evicted keys.
        """
        if now is None:
            now = self._clock()

        with self._lock:
            evicted = 0
            for key in list(self._buckets):
                bucket = self._prune(self._buckets[key], now)
                if bucket:
                    self._buckets[key] = bucket
                else:
                    del self._buckets[key]
                    evicted += 1
            self._last_sweep = now
            tracked = len(self._buckets)

        if evicted:
            logger.debug(
                "rate_limit.swept",
                extra={"evicted": evicted, "tracked_keys": tracked},
            )
        return evicted
