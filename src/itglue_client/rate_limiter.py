"""
Sliding-window rate limiter and retry with exponential backoff.

IT Glue enforces a request budget over a trailing time window, so the limiter
keeps a log of request timestamps instead of a token bucket. It starts
slowing callers down before the hard limit is reached.
"""

import asyncio
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from itglue_client.config import RateLimitConfig
from itglue_client.models import RateLimitStatus

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class RateLimiterStats:
    """Statistics for monitoring rate limiter behavior."""
    requests_recorded: int = 0
    requests_throttled: int = 0
    total_wait_time: float = 0.0


class SlidingWindowRateLimiter:
    """
    Rate limiter over a sliding window of request timestamps.

    - ``record_request()`` appends the current instant to the log
    - Entries older than ``window_seconds`` are pruned whenever the log is read
    - Above ``throttle_threshold`` of the budget, ``get_delay()`` ramps up
      linearly toward ``retry_after_seconds``
    - At the budget, ``get_delay()`` is the time until the oldest entry
      leaves the window

    Example:
        limiter = SlidingWindowRateLimiter(RateLimitConfig())

        await limiter.wait_if_needed()
        limiter.record_request()
        await send()
    """

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        self.config = config or RateLimitConfig()
        self._clock = clock
        self._sleep = sleep

        self._timestamps: deque[float] = deque()
        # Never held across an await
        self._lock = threading.Lock()

        self.stats = RateLimiterStats()

    def _prune(self, now: float) -> None:
        """Drop entries that left the window. Must hold lock."""
        cutoff = now - self.config.window_seconds
        while self._timestamps and self._timestamps[0] < cutoff:
            self._timestamps.popleft()

    def record_request(self) -> None:
        if not self.config.enabled:
            return
        with self._lock:
            now = self._clock()
            self._prune(now)
            self._timestamps.append(now)
            self.stats.requests_recorded += 1

    @property
    def current_count(self) -> int:
        """Requests inside the current window."""
        if not self.config.enabled:
            return 0
        with self._lock:
            self._prune(self._clock())
            return len(self._timestamps)

    @property
    def remaining(self) -> int:
        return max(0, self.config.max_requests - self.current_count)

    @property
    def _throttle_count(self) -> float:
        # Rounded so 0.7 * 100 counts as 70, not 70.00000000000001
        return round(self.config.max_requests * self.config.throttle_threshold, 9)

    @property
    def is_throttling(self) -> bool:
        return self.config.enabled and self.current_count >= self._throttle_count

    @property
    def is_limited(self) -> bool:
        return self.config.enabled and self.current_count >= self.config.max_requests

    def get_delay(self) -> float:
        """Seconds to wait before the next request."""
        if not self.config.enabled:
            return 0.0

        with self._lock:
            now = self._clock()
            self._prune(now)
            count = len(self._timestamps)
            oldest = self._timestamps[0] if self._timestamps else now

        max_requests = self.config.max_requests
        threshold = self._throttle_count

        if count < threshold:
            return 0.0

        if count >= max_requests:
            window = self.config.window_seconds
            return min(window, max(0.0, oldest + window - now))

        # Linear ramp: 0 at the threshold, retry_after_seconds at the limit
        ratio = (count - threshold) / (max_requests - threshold)
        return self.config.retry_after_seconds * ratio

    async def wait_if_needed(self) -> float:
        """Suspend the caller for ``get_delay()`` seconds. Returns the delay."""
        delay = self.get_delay()
        if delay <= 0:
            return 0.0

        self.stats.requests_throttled += 1
        self.stats.total_wait_time += delay
        logger.info(
            "Throttling request",
            delay_seconds=round(delay, 3),
            current_count=self.current_count,
            max_requests=self.config.max_requests,
        )
        await self._sleep(delay)
        return delay

    def reset(self) -> None:
        with self._lock:
            self._timestamps.clear()

    def get_status(self) -> RateLimitStatus:
        """Snapshot for monitoring. Only prunes, never records."""
        count = self.current_count
        return RateLimitStatus(
            enabled=self.config.enabled,
            current_count=count,
            max_requests=self.config.max_requests,
            remaining=max(0, self.config.max_requests - count),
            window_seconds=self.config.window_seconds,
            is_throttling=self.config.enabled and count >= self._throttle_count,
            is_limited=self.config.enabled and count >= self.config.max_requests,
        )

    def get_stats(self) -> dict:
        """Get rate limiter statistics for monitoring."""
        return {
            "requests_recorded": self.stats.requests_recorded,
            "requests_throttled": self.stats.requests_throttled,
            "total_wait_time_seconds": round(self.stats.total_wait_time, 2),
            "current_count": self.current_count,
            "remaining": self.remaining,
        }


# ---------------------------------------------------------------------------
# Retry
# ---------------------------------------------------------------------------

def _log_before_sleep(retry_state: RetryCallState) -> None:
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    logger.info(
        "Retrying after failure",
        attempt=retry_state.attempt_number,
        wait_seconds=round(retry_state.next_action.sleep, 3) if retry_state.next_action else None,
        error=repr(exception),
    )


async def retry_with_backoff(
    attempt: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    jitter: float | None = None,
    should_retry: Callable[[BaseException], bool] | None = None,
    sleep: Sleep | None = None,
) -> T:
    """
    Run ``attempt`` with bounded exponential backoff.

    At most ``max_retries + 1`` attempts are made. The wait before retry ``i``
    (0-based) is ``min(max_delay, base_delay * 2**i + U(0, jitter))``. Errors
    rejected by ``should_retry`` and the last error after exhaustion are
    re-raised unchanged. There is no internal timeout; wrap the call in
    ``asyncio.wait_for`` to bound it.
    """
    predicate = should_retry or (lambda exc: True)
    if jitter is None:
        jitter = base_delay / 2

    options: dict[str, Any] = {}
    if sleep is not None:
        options["sleep"] = sleep

    async for retry_attempt in AsyncRetrying(
        # Cancellation and other BaseExceptions always propagate
        retry=retry_if_exception(
            lambda exc: isinstance(exc, Exception) and predicate(exc)
        ),
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential_jitter(initial=base_delay, max=max_delay, jitter=jitter),
        before_sleep=_log_before_sleep,
        reraise=True,
        **options,
    ):
        with retry_attempt:
            return await attempt()
    raise AssertionError("unreachable")
