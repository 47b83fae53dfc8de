"""
Chat Service for WebAI

This module handles the model-facing business logic that is not code
generation:
- Streaming test chats against an unsaved system prompt
- Streaming chats with published bots (and counting their messages)
- Drafting a system prompt from a short description
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncGenerator, Sequence
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from webai.errors import NotFound, UpstreamFailure
from webai.generation.events import ContentEvent, ErrorEvent, StreamEvent
from webai.generation.prompts import build_prompt_generator_messages
from webai.generation.relay import BackgroundStreams
from webai.llm.exceptions import LLMError
from webai.llm.models import CompletionSettings, LLMMessage
from webai.slugs import normalize_slug

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 20


class ChatTurn(BaseModel):
    """One message of a client-held conversation."""
    role: Literal["user", "assistant"]
    content: str


class ChatService:
    """
    Streams chat replies as `{"content": ...}` events followed by `[DONE]`.
    """

    class ChatServiceConfig(BaseModel):
        model_config = ConfigDict(arbitrary_types_allowed=True)

        llm_client: Any  # LLMClient
        repo: Any  # WebAIRepository
        chat_settings: CompletionSettings
        prompt_settings: CompletionSettings
        history_limit: int = Field(default=DEFAULT_HISTORY_LIMIT, ge=1)
        background: BackgroundStreams = Field(default_factory=BackgroundStreams)

    def __init__(self, service_config: ChatService.ChatServiceConfig):
        self.llm_client = service_config.llm_client
        self.repo = service_config.repo
        self.chat_settings = service_config.chat_settings
        self.prompt_settings = service_config.prompt_settings
        self.history_limit = service_config.history_limit
        self.background = service_config.background

    def build_messages(
        self, system_prompt: str, history: Sequence[ChatTurn]
    ) -> list[LLMMessage]:
        """System prompt plus the most recent `history_limit` turns."""
        recent = list(history)[-self.history_limit:]
        return [
            LLMMessage.system(system_prompt),
            *(
                LLMMessage.user(turn.content)
                if turn.role == "user"
                else LLMMessage.assistant(turn.content)
                for turn in recent
            ),
        ]

    async def reply_events(
        self, system_prompt: str, history: Sequence[ChatTurn]
    ) -> AsyncGenerator[StreamEvent]:
        messages = self.build_messages(system_prompt, history)
        try:
            async for fragment in self.llm_client.stream_text(
                messages, self.chat_settings
            ):
                if fragment:
                    yield ContentEvent(fragment)
        except LLMError as e:
            logger.warning(f"Chat stream failed: {e.message}")
            yield ErrorEvent(e.message)

    def test_chat(
        self, system_prompt: str, history: Sequence[ChatTurn]
    ) -> AsyncGenerator[str]:
        """Chat with a bot that has not been published yet."""
        return self.background.open(self.reply_events(system_prompt, history))

    async def published_chat(
        self, slug: str, history: Sequence[ChatTurn]
    ) -> AsyncGenerator[str]:
        """
        Chat with a published bot.

        Raises:
            NotFound: If no bot is published under `slug`.
        """
        bot = await self.repo.get_bot_by_slug(slug)
        if bot is None:
            raise NotFound("Bot not found")

        await self.repo.increment_message_count(slug)
        return self.background.open(self.reply_events(bot.system_prompt, history))

    async def generate_prompt(
        self, description: str | None, template: str | None
    ) -> dict[str, str]:
        """
        Draft a bot's name, system prompt, description and slug.

        Raises:
            UpstreamFailure: If the model fails or returns unusable JSON.
        """
        messages = build_prompt_generator_messages(description, template)
        try:
            response = await self.llm_client.complete(messages, self.prompt_settings)
        except LLMError as e:
            logger.error(f"Prompt generation failed: {e}")
            raise UpstreamFailure("Failed to generate prompt") from e

        try:
            data = json.loads(response.content)
        except json.JSONDecodeError as e:
            logger.error(f"Prompt generation returned invalid JSON: {e}")
            raise UpstreamFailure("Failed to generate prompt") from e
        if not isinstance(data, dict):
            raise UpstreamFailure("Failed to generate prompt")

        name = str(data.get("name") or "")
        return {
            "name": name,
            "system_prompt": str(data.get("system_prompt") or ""),
            "description": str(data.get("description") or ""),
            "suggested_slug": normalize_slug(
                str(data.get("suggested_slug") or name)
            ),
        }
