"""
Fixed-window rate limiting keyed by an identifier string.

The table lives in process memory, so limits apply per instance only.
Increments are not locked; concurrent requests for the same key may
overshoot slightly.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from .models import RateLimitConfig, RateLimitResult, WindowState

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

DEFAULT_MAX_ENTRIES = 10_000


class FixedWindowRateLimiter:
    """
    Fixed-window counter per key.

    The first check for a key (or the first after its window expired)
    opens a new window with a count of one. Further checks increment the
    count until it reaches the policy maximum; after that checks are
    denied until the window resets.
    """

    def __init__(
        self,
        clock: Clock = time.monotonic,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ):
        self._clock = clock
        self._max_entries = max_entries
        self._windows: dict[str, WindowState] = {}

    def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        """Record a request for `key` and decide whether it may proceed."""
        now = self._clock()
        entry = self._windows.get(key)

        if entry is None or now > entry.reset_at:
            if entry is None and len(self._windows) >= self._max_entries:
                self.purge_expired()
            reset_at = now + config.window_seconds
            self._windows[key] = WindowState(count=1, reset_at=reset_at)
            return RateLimitResult(
                allowed=True,
                remaining=config.max_requests - 1,
                reset_at=reset_at,
            )

        if entry.count >= config.max_requests:
            logger.info(f"Rate limit exceeded for key '{key}'")
            return RateLimitResult(allowed=False, remaining=0, reset_at=entry.reset_at)

        entry.count += 1
        return RateLimitResult(
            allowed=True,
            remaining=config.max_requests - entry.count,
            reset_at=entry.reset_at,
        )

    def purge_expired(self) -> int:
        """Drop every window that has already reset. Returns the number removed."""
        now = self._clock()
        expired = [key for key, entry in self._windows.items() if now > entry.reset_at]
        for key in expired:
            del self._windows[key]
        return len(expired)

    def reset(self, key: str | None = None) -> None:
        """Forget one key, or the whole table."""
        if key is None:
            self._windows.clear()
        else:
            self._windows.pop(key, None)

    def now(self) -> float:
        return self._clock()

    def get_statistics(self) -> dict[str, int]:
        now = self._clock()
        active = sum(1 for entry in self._windows.values() if now <= entry.reset_at)
        return {
            'tracked_keys': len(self._windows),
            'active_windows': active,
        }


class RateLimitRegistry:
    """Named policies sharing one limiter table."""

    def __init__(
        self,
        policies: dict[str, RateLimitConfig],
        limiter: FixedWindowRateLimiter | None = None,
    ):
        if "default" not in policies:
            raise ValueError("rate limit policies must include 'default'")
        self.policies = policies
        self.limiter = limiter or FixedWindowRateLimiter()

    def check(self, policy: str, key: str) -> RateLimitResult:
        config = self.policies.get(policy, self.policies["default"])
        return self.limiter.check(f"{policy}:{key}", config)
