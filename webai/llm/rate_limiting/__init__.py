"""
Rate limiting for expensive operations.
"""

from .limiter import FixedWindowRateLimiter, RateLimitRegistry
from .models import RateLimitConfig, RateLimitResult

__all__ = [
    "FixedWindowRateLimiter",
    "RateLimitConfig",
    "RateLimitRegistry",
    "RateLimitResult",
]
