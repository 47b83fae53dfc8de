"""
LLM integration for WebAI.

This package provides the provider client and its supporting pieces:
- Type-safe dataclass models
- Streaming SSE parsing with chunk accumulation
- Fixed-window rate limiting
"""

from __future__ import annotations

from .client import LLMClient
from .exceptions import LLMError, ProviderError, RateLimitError, StreamingError
from .models import (
    CompletionSettings,
    LLMMessage,
    LLMRequest,
    LLMResponse,
    MessageRole,
    ProviderConfig,
    ProviderType,
    TokenUsage,
)

__all__ = [
    "CompletionSettings",
    # Client
    "LLMClient",
    # Exceptions
    "LLMError",
    "LLMMessage",
    "LLMRequest",
    "LLMResponse",
    "MessageRole",
    "ProviderConfig",
    "ProviderError",
    "ProviderType",
    "RateLimitError",
    "StreamingError",
    "TokenUsage",
]
