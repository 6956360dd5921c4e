"""
Rate limiting for API clients.

Per-client sliding window kept in memory. The limiter is owned by
RateLimitMiddleware, so each application instance counts on its own.
"""
import logging
import time
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    In-memory rate limiter using a sliding window.

    Allows at most ``max_requests`` per client within the last
    ``window_seconds``.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: int = 900,
        cleanup_interval: int = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the rate limiter.

        Args:
            max_requests: Maximum number of requests allowed within the window.
            window_seconds: Size of the sliding window in seconds.
            cleanup_interval: Seconds between purges of idle clients.
            clock: Time source, replaceable in tests.
        """
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.cleanup_interval = cleanup_interval
        self._clock = clock

        # client key -> request timestamps inside the window, oldest first
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._last_cleanup = self._clock()

    def _cleanup_old_entries(self, now: float) -> None:
        """Drop clients with no request inside the window."""
        if now - self._last_cleanup < self.cleanup_interval:
            return

        cutoff = now - self.window_seconds
        stale = [key for key, stamps in self._requests.items() if not stamps or stamps[-1] <= cutoff]
        for key in stale:
            del self._requests[key]

        self._last_cleanup = now
        logger.debug(f"Rate limiter cleanup: removed {len(stale)} inactive clients")

    def is_allowed(self, key: str) -> Tuple[bool, Optional[float]]:
        """
        Check and record a request from ``key``.

        Returns:
            Tuple of (is_allowed, retry_after_seconds). retry_after is None
            when the request is allowed.
        """
        now = self._clock()
        self._cleanup_old_entries(now)

        cutoff = now - self.window_seconds
        recent = [ts for ts in self._requests[key] if ts > cutoff]

        if len(recent) >= self.max_requests:
            self._requests[key] = recent
            retry_after = (recent[0] + self.window_seconds) - now
            return False, max(1.0, retry_after)

        recent.append(now)
        self._requests[key] = recent
        return True, None

    def get_remaining(self, key: str) -> int:
        """Get the number of requests ``key`` may still make in the current window."""
        cutoff = self._clock() - self.window_seconds
        recent_count = sum(1 for ts in self._requests.get(key, []) if ts > cutoff)
        return max(0, self.max_requests - recent_count)
