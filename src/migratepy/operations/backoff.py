"""Cooldown policy for WorkOS rate limiting.

When a request is throttled the scheduler pauses admission of new work for
the cooldown computed here:
- the service's Retry-After hint when it sent one
- a fixed default otherwise
- plus a small safety margin in both cases
"""

import threading
from dataclasses import dataclass

from ..core.config import DEFAULT_RETRY_AFTER, RETRY_SAFETY_MARGIN
from ..core.exceptions import RateLimitError


@dataclass
class BackoffState:
    """Throttle statistics for one migration run.

    Attributes:
        throttle_count: Number of rate limit errors seen
        hinted_count: How many of them carried a Retry-After hint
        total_cooldown: Sum of all cooldowns requested, in seconds
        last_cooldown: Most recent cooldown, in seconds
    """

    throttle_count: int = 0
    hinted_count: int = 0
    total_cooldown: float = 0.0
    last_cooldown: float = 0.0


class ThrottleBackoff:
    """Turns rate limit errors into cooldown durations.

    Thread-safe: worker threads report throttles concurrently.
    """

    def __init__(
        self,
        default_retry_after: float = DEFAULT_RETRY_AFTER,
        safety_margin: float = RETRY_SAFETY_MARGIN,
    ):
        """Initialize the policy.

        Args:
            default_retry_after: Cooldown when the service gives no hint
            safety_margin: Seconds added to every cooldown
        """
        if default_retry_after < 0 or safety_margin < 0:
            raise ValueError("Backoff durations must not be negative")
        self.default_retry_after = default_retry_after
        self.safety_margin = safety_margin
        self.state = BackoffState()
        self._lock = threading.Lock()

    def cooldown_for(self, error: RateLimitError) -> float:
        """Record a throttle and return how long admissions should pause.

        Args:
            error: The rate limit error raised by the API client

        Returns:
            float: Cooldown in seconds
        """
        hinted = error.retry_after is not None
        base = error.retry_after if hinted else self.default_retry_after
        cooldown = max(0.0, base) + self.safety_margin

        with self._lock:
            self.state.throttle_count += 1
            if hinted:
                self.state.hinted_count += 1
            self.state.total_cooldown += cooldown
            self.state.last_cooldown = cooldown

        return cooldown

    def get_status_summary(self) -> str:
        """Get a human-readable status summary."""
        with self._lock:
            if self.state.throttle_count == 0:
                return "Rate limit status: never throttled"
            return (
                f"Rate limited {self.state.throttle_count} time(s), "
                f"{self.state.total_cooldown:.1f}s total cooldown"
            )
