"""
Request bodies for the HTTP API.

Clients send camelCase keys. Missing or empty required fields are reported
with one readable message, which the error handler returns as
`{"error": message}` with status 400.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from webai.chat_service import ChatTurn
from webai.storage.models import SiteTheme, TemplateId, TokenDraft

SUBDOMAIN_PATTERN = r"^[a-z0-9][a-z0-9-]*[a-z0-9]$"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --------------------------------------------------------------------------- #
# Bots                                                                        #
# --------------------------------------------------------------------------- #


class GenerateCodeRequest(CamelModel):
    description: str | None = None
    template: str | None = None

    @model_validator(mode="after")
    def _description_or_template(self) -> GenerateCodeRequest:
        if not (self.description or "").strip() and not self.template:
            raise ValueError("Description or template is required")
        return self


class GeneratePromptRequest(CamelModel):
    description: str | None = None
    template: str | None = None

    @model_validator(mode="after")
    def _description_or_template(self) -> GeneratePromptRequest:
        if not (self.description or "").strip() and not self.template:
            raise ValueError("Description or template required")
        return self


class RefineCodeRequest(CamelModel):
    files: list[dict[str, Any]] | None = None
    instruction: str | None = None
    bot_name: str | None = None
    bot_description: str | None = None

    @model_validator(mode="after")
    def _files_and_instruction(self) -> RefineCodeRequest:
        if not self.files:
            raise ValueError("Files are required")
        if not (self.instruction or "").strip():
            raise ValueError("Instruction is required")
        return self


class BotUpsertRequest(CamelModel):
    slug: str | None = None
    name: str | None = None
    description: str | None = None
    system_prompt: str | None = None
    template: str | None = None
    avatar: str | None = None
    wallet_address: str | None = None

    @model_validator(mode="after")
    def _required(self) -> BotUpsertRequest:
        if not (self.slug and self.name and self.system_prompt):
            raise ValueError("slug, name, and systemPrompt are required")
        return self


class BotDeleteRequest(CamelModel):
    id: str | None = None
    wallet: str | None = None

    @model_validator(mode="after")
    def _required(self) -> BotDeleteRequest:
        if not (self.id and self.wallet):
            raise ValueError("id and wallet required")
        return self


class ChatRequest(CamelModel):
    messages: list[ChatTurn] | None = None

    @model_validator(mode="after")
    def _required(self) -> ChatRequest:
        if self.messages is None:
            raise ValueError("messages array required")
        return self


class DraftChatRequest(CamelModel):
    system_prompt: str | None = None
    messages: list[ChatTurn] | None = None

    @model_validator(mode="after")
    def _required(self) -> DraftChatRequest:
        if not self.system_prompt or self.messages is None:
            raise ValueError("systemPrompt and messages required")
        return self


class GitHubPushRequest(CamelModel):
    repo_name: str | None = None
    description: str = ""
    files: list[dict[str, Any]] | None = None

    @model_validator(mode="after")
    def _required(self) -> GitHubPushRequest:
        if not self.repo_name:
            raise ValueError("repoName is required")
        if not self.files:
            raise ValueError("Files are required")
        for file in self.files:
            if not isinstance(file.get("path"), str) or not isinstance(
                file.get("content"), str
            ):
                raise ValueError("Each file needs a path and content")
        return self


# --------------------------------------------------------------------------- #
# User bookmarks and raw sites                                                #
# --------------------------------------------------------------------------- #


class UserBotCreateRequest(BaseModel):
    """Bookmarks keep the snake_case keys the browser stores them with."""
    browser_id: str | None = None
    name: str | None = None
    description: str = ""
    type: Literal["github", "webai"] | None = None
    url: str | None = None
    repo_name: str | None = None
    slug: str | None = None

    @model_validator(mode="after")
    def _required(self) -> UserBotCreateRequest:
        if not (self.browser_id and self.name and self.type and self.url):
            raise ValueError("browser_id, name, type, and url are required")
        return self


class UserBotDeleteRequest(BaseModel):
    id: str | None = None
    browser_id: str | None = None

    @model_validator(mode="after")
    def _required(self) -> UserBotDeleteRequest:
        if not (self.id and self.browser_id):
            raise ValueError("id and browser_id are required")
        return self


class PublishSiteRequest(CamelModel):
    slug: str | None = None
    html: str | None = None
    site_name: str | None = None
    template: str | None = None
    description: str | None = None
    wallet_address: str | None = None

    @model_validator(mode="after")
    def _required(self) -> PublishSiteRequest:
        if not (self.slug and self.html):
            raise ValueError("slug and html are required")
        return self


# --------------------------------------------------------------------------- #
# Token projects                                                              #
# --------------------------------------------------------------------------- #


class SiteRequest(CamelModel):
    subdomain: str = Field(min_length=3, max_length=32, pattern=SUBDOMAIN_PATTERN)
    template_id: TemplateId = "modern"
    theme: SiteTheme | None = None


class ProjectCreateRequest(CamelModel):
    wallet_address: str
    token: TokenDraft
    site: SiteRequest

    @model_validator(mode="before")
    @classmethod
    def _wallet_first(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        wallet = data.get("walletAddress", data.get("wallet_address"))
        if not wallet or not isinstance(wallet, str):
            raise ValueError("walletAddress is required")
        return data


class PublishToggleRequest(CamelModel):
    publish: bool = True


class LaunchRequest(CamelModel):
    action: str | None = None
    wallet_address: str | None = None
    attempt_id: str | None = None
    tx_signature: str | None = None
