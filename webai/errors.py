"""Request-scoped errors surfaced to API callers as `{"error": message}`."""

from __future__ import annotations


class WebAIError(Exception):
    """Base error with an HTTP status for the API layer."""

    status_code = 500

    def __init__(self, message: str, *, headers: dict[str, str] | None = None):
        super().__init__(message)
        self.message = message
        self.headers = headers or {}


class ValidationFailed(WebAIError):
    status_code = 400


class Forbidden(WebAIError):
    status_code = 403


class NotFound(WebAIError):
    status_code = 404


class Conflict(WebAIError):
    status_code = 409


class RateLimited(WebAIError):
    status_code = 429

    def __init__(self, message: str, retry_after: float):
        super().__init__(
            message, headers={"Retry-After": str(max(1, round(retry_after)))}
        )
        self.retry_after = retry_after


class UpstreamFailure(WebAIError):
    """A third-party API (GitHub, Solana RPC, launch API) failed."""
    status_code = 502


class ServiceUnavailable(WebAIError):
    """A feature is not configured on this deployment."""
    status_code = 503
