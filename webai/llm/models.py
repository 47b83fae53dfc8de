"""
Core LLM dataclasses.

This module provides the dataclasses shared by the LLM client:
- Provider configuration
- Message structures
- Per-purpose completion settings
- Token usage tracking
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ProviderType(Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    OPENROUTER = "openrouter"
    GROQ = "groq"


class MessageRole(Enum):
    """OpenAI-compatible message roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class LLMMessage:
    """OpenAI-compatible message structure."""
    role: MessageRole
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def system(cls, content: str) -> LLMMessage:
        return cls(MessageRole.SYSTEM, content)

    @classmethod
    def user(cls, content: str) -> LLMMessage:
        return cls(MessageRole.USER, content)

    @classmethod
    def assistant(cls, content: str) -> LLMMessage:
        return cls(MessageRole.ASSISTANT, content)


@dataclass(frozen=True)
class TokenUsage:
    """Token usage statistics."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass(frozen=True)
class CompletionSettings:
    """Model parameters for one kind of completion (generation, chat, ...)."""
    model: str
    max_tokens: int
    temperature: float = 0.7
    top_p: float = 1.0
    json_mode: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CompletionSettings:
        return cls(
            model=data["model"],
            max_tokens=int(data["max_tokens"]),
            temperature=float(data.get("temperature", 0.7)),
            top_p=float(data.get("top_p", 1.0)),
            json_mode=bool(data.get("json_mode", False)),
        )


@dataclass
class LLMRequest:
    """Complete LLM request structure."""
    settings: CompletionSettings
    messages: list[LLMMessage]
    stream: bool = False

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.settings.model,
            "messages": [m.to_dict() for m in self.messages],
            "temperature": self.settings.temperature,
            "max_tokens": self.settings.max_tokens,
            "top_p": self.settings.top_p,
        }
        if self.settings.json_mode:
            payload["response_format"] = {"type": "json_object"}
        if self.stream:
            payload["stream"] = True
        return payload


@dataclass(frozen=True)
class LLMResponse:
    """Non-streaming completion result."""
    content: str
    model: str
    finish_reason: str | None = None
    usage: TokenUsage = field(default_factory=TokenUsage)


@dataclass(frozen=True)
class ProviderConfig:
    """Provider connection configuration."""
    provider: ProviderType
    base_url: str
    api_key: str

    connect_timeout: float = 10.0
    read_timeout: float = 120.0
    write_timeout: float = 10.0
    pool_timeout: float = 10.0
    max_connections: int = 20
    max_keepalive: int = 10
