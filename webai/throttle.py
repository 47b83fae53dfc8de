"""Turns rate limit decisions into HTTP 429 errors."""

from __future__ import annotations

from webai.errors import RateLimited
from webai.llm.rate_limiting import RateLimitRegistry

TOO_MANY_REQUESTS = "Too many requests. Please try again later."


def enforce(
    registry: RateLimitRegistry,
    policy: str,
    key: str,
    message: str = TOO_MANY_REQUESTS,
) -> None:
    """
    Count a request against `policy` for `key`.

    Raises:
        RateLimited: If the key has used up its window.
    """
    result = registry.check(policy, key)
    if not result.allowed:
        raise RateLimited(message, retry_after=result.retry_after(registry.limiter.now()))
