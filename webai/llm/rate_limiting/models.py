"""
Rate limiting models and dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RateLimitConfig:
    """Fixed-window policy: at most `max_requests` per `window_seconds`."""
    window_seconds: float = 60.0
    max_requests: int = 30

    def __post_init__(self) -> None:
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if self.max_requests < 1:
            raise ValueError("max_requests must be at least 1")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RateLimitConfig:
        return cls(
            window_seconds=float(data["window_seconds"]),
            max_requests=int(data["max_requests"]),
        )


@dataclass
class WindowState:
    """Counter for one key within its current window."""
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check."""
    allowed: bool
    remaining: int
    reset_at: float

    def retry_after(self, now: float) -> float:
        """Seconds until the window resets (0 when allowed)."""
        if self.allowed:
            return 0.0
        return max(0.0, self.reset_at - now)
