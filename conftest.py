"""Shared fixtures: a scripted LLM, in-memory services and an ASGI client."""

import json
from collections.abc import Callable

import httpx
import pytest

from webai.api import Services
from webai.chat_service import ChatService
from webai.generation.relay import BackgroundStreams, GenerationRelay
from webai.github_publisher import GitHubPublisher
from webai.launch.pumpfun import PumpFunGateway
from webai.llm.exceptions import ProviderError
from webai.llm.models import CompletionSettings, LLMResponse
from webai.llm.rate_limiting import (
    FixedWindowRateLimiter,
    RateLimitConfig,
    RateLimitRegistry,
)
from webai.projects import ProjectService
from webai.server import create_app
from webai.sites.generator import SiteContentGenerator
from webai.storage.repositories.sql_repo import AsyncSqlRepo
from webai.uploads import AssetStore

TRIVIA_PATHS = [
    "app.py",
    "config.py",
    "bot/__init__.py",
    "bot/routes.py",
    "bot/engine.py",
    "bot/models.py",
    "bot/knowledge.py",
    "bot/responses.py",
    "bot/utils.py",
    "static/css/style.css",
    "static/js/app.js",
    "templates/index.html",
    "tests/test_engine.py",
    "requirements.txt",
    "README.md",
]


class FakeLLM:
    """Streams scripted fragments and answers completions from a queue."""

    def __init__(
        self,
        chunks: list[str] | None = None,
        fail_after: int | None = None,
        completions: list[str] | None = None,
    ):
        self.chunks = chunks or []
        self.fail_after = fail_after
        self.completions = list(completions or [])
        self.stream_calls: list[list] = []
        self.complete_calls: list[list] = []
        self.closed = False

    async def stream_text(self, messages, settings):
        self.stream_calls.append(messages)
        for index, chunk in enumerate(self.chunks):
            if self.fail_after is not None and index == self.fail_after:
                raise ProviderError("API error 500: upstream down", "openai", settings.model)
            yield chunk
        if self.fail_after is not None and self.fail_after >= len(self.chunks):
            raise ProviderError("API error 500: upstream down", "openai", settings.model)

    async def complete(self, messages, settings):
        self.complete_calls.append(messages)
        if not self.completions:
            raise ProviderError("API error 503: unavailable", "openai", settings.model)
        return LLMResponse(content=self.completions.pop(0), model=settings.model)

    async def close(self):
        self.closed = True


def split_text(text: str, size: int) -> list[str]:
    return [text[i:i + size] for i in range(0, len(text), size)]


def trivia_project() -> dict:
    return {
        "name": "Trivia Master",
        "description": "A trivia quiz bot with categories and scoring",
        "system_prompt": "You are Trivia Master, a quiz host.",
        "suggested_slug": "trivia-master",
        "files": [
            {"path": path, "content": f"# {path}\n"} for path in TRIVIA_PATHS
        ],
    }


@pytest.fixture
def settings():
    return CompletionSettings(model="test-model", max_tokens=1000)


@pytest.fixture
def trivia_document():
    return json.dumps(trivia_project())


@pytest.fixture
def policies():
    return {
        "default": RateLimitConfig(window_seconds=60, max_requests=100),
        "ai_generation": RateLimitConfig(window_seconds=300, max_requests=5),
        "launch": RateLimitConfig(window_seconds=600, max_requests=3),
        "upload": RateLimitConfig(window_seconds=60, max_requests=10),
    }


@pytest.fixture
async def make_services(tmp_path, settings, policies) -> Callable[..., Services]:
    """Build a `Services` container around fakes and an in-memory database."""
    created: list[Services] = []

    def factory(
        llm: FakeLLM | None = None,
        github_transport: httpx.AsyncBaseTransport | None = None,
        launch_transport: httpx.AsyncBaseTransport | None = None,
        github_token: str = "",
        launch_api_key: str = "",
        clock: Callable[[], float] | None = None,
    ) -> Services:
        llm = llm or FakeLLM()
        repo = AsyncSqlRepo(":memory:")
        background = BackgroundStreams()
        limiter = FixedWindowRateLimiter(clock=clock) if clock else FixedWindowRateLimiter()
        rate_limits = RateLimitRegistry(policies, limiter)
        gateway = PumpFunGateway(
            {
                "rpc_url": "https://rpc.test",
                "api_url": "https://launch.test/api/trade",
                "api_key": launch_api_key,
            },
            transport=launch_transport,
        )
        assets = AssetStore(
            str(tmp_path / "uploads"), 5 * 1024 * 1024, ["image/png", "image/jpeg"]
        )
        services = Services(
            repo=repo,
            llm_client=llm,
            relay=GenerationRelay(llm, settings, background),
            chat=ChatService(ChatService.ChatServiceConfig(
                llm_client=llm,
                repo=repo,
                chat_settings=settings,
                prompt_settings=settings,
                history_limit=20,
                background=background,
            )),
            github=GitHubPublisher(
                {
                    "api_url": "https://api.github.test",
                    "owner": "webaibot",
                    "owner_type": "org",
                    "token": github_token,
                },
                transport=github_transport,
                retry_delay=0,
            ),
            gateway=gateway,
            projects=ProjectService(
                repo, SiteContentGenerator(llm, settings), gateway, assets, rate_limits
            ),
            assets=assets,
            rate_limits=rate_limits,
            background=background,
        )
        created.append(services)
        return services

    yield factory

    for services in created:
        await services.close()


@pytest.fixture
async def make_client():
    """ASGI-backed httpx client for an app built around `services`."""
    clients: list[httpx.AsyncClient] = []

    def factory(services: Services) -> httpx.AsyncClient:
        client = httpx.AsyncClient(
            transport=httpx.ASGITransport(app=create_app(services)),
            base_url="http://test",
        )
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.aclose()
