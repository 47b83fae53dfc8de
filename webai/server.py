"""
FastAPI application for WebAI.

`build_services` wires clients, the repository and the domain services from
a `Configuration`; `create_app` mounts the routers around an existing
`Services` container so tests can inject fakes.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Awaitable, Callable, Sequence
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError

from webai.api import ROUTERS, Services
from webai.chat_service import ChatService
from webai.config import Configuration
from webai.errors import WebAIError
from webai.generation.relay import BackgroundStreams, GenerationRelay
from webai.github_publisher import GitHubPublisher
from webai.launch.pumpfun import PumpFunGateway
from webai.llm.client import LLMClient
from webai.llm.rate_limiting import FixedWindowRateLimiter, RateLimitRegistry
from webai.logging_utils import ContextualLogger, ErrorHandler
from webai.projects import ProjectService
from webai.sites.generator import SiteContentGenerator
from webai.storage.repositories.sql_repo import AsyncSqlRepo
from webai.uploads import AssetStore

logger = logging.getLogger(__name__)
http_logger = ContextualLogger({"component": "http"})

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}
INTERNAL_ERROR = "Internal server error"


def build_services(config: Configuration) -> Services:
    """Create every long-lived client and service from configuration."""
    settings = config.get_completion_settings()
    llm_client = LLMClient(config.get_provider_config())
    background = BackgroundStreams()
    repo = AsyncSqlRepo(config.get_database_config()["path"])
    rate_limits = RateLimitRegistry(
        config.get_rate_limit_policies(),
        FixedWindowRateLimiter(max_entries=config.get_rate_limit_max_entries()),
    )
    gateway = PumpFunGateway(config.get_launch_config())
    assets = AssetStore(**config.get_upload_config())

    chat = ChatService(ChatService.ChatServiceConfig(
        llm_client=llm_client,
        repo=repo,
        chat_settings=settings["chat"],
        prompt_settings=settings["prompt"],
        history_limit=config.get_chat_history_limit(),
        background=background,
    ))
    projects = ProjectService(
        repo,
        SiteContentGenerator(llm_client, settings["site"]),
        gateway,
        assets,
        rate_limits,
    )
    return Services(
        repo=repo,
        llm_client=llm_client,
        relay=GenerationRelay(llm_client, settings["generation"], background),
        chat=chat,
        github=GitHubPublisher(config.get_github_config()),
        gateway=gateway,
        projects=projects,
        assets=assets,
        rate_limits=rate_limits,
        background=background,
    )


def _first_error_message(exc: RequestValidationError | ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid input"
    first = errors[0]
    # Messages raised by our own validators go out as written
    if first.get("type") == "value_error" and "error" in first.get("ctx", {}):
        return str(first["ctx"]["error"])
    location = ".".join(
        str(part) for part in first.get("loc", ()) if part not in ("body", "query")
    )
    message = first.get("msg", "Invalid input")
    return f"{location}: {message}" if location else message


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(WebAIError)
    async def webai_error(request: Request, exc: WebAIError) -> JSONResponse:
        if exc.status_code >= 500:
            ErrorHandler.log_error(exc, request.url.path)
        return JSONResponse(
            {"error": exc.message}, status_code=exc.status_code, headers=exc.headers
        )

    @app.exception_handler(RequestValidationError)
    async def request_invalid(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse({"error": _first_error_message(exc)}, status_code=400)

    @app.exception_handler(ValidationError)
    async def model_invalid(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse({"error": _first_error_message(exc)}, status_code=400)

    @app.exception_handler(Exception)
    async def unexpected(request: Request, exc: Exception) -> JSONResponse:
        ErrorHandler.log_error(exc, request.url.path, {"method": request.method})
        return JSONResponse({"error": INTERNAL_ERROR}, status_code=500)


def create_app(
    services: Services,
    cors_origins: Sequence[str] = ("*",),
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        http_logger.info("WebAI API starting")
        yield
        http_logger.info(
            "WebAI API stopping", active_streams=services.background.active
        )
        await services.close()

    app = FastAPI(title="WebAI", lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cors_origins),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def security_headers(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    _register_exception_handlers(app)
    for router in ROUTERS:
        app.include_router(router)

    @app.get("/health")
    async def health() -> dict[str, object]:
        return {"status": "ok", "active_streams": services.background.active}

    app.mount(
        "/uploads",
        StaticFiles(directory=services.assets.directory, check_dir=False),
        name="uploads",
    )
    return app


def create_app_from_config(config: Configuration | None = None) -> FastAPI:
    config = config or Configuration()
    server_config = config.get_server_config()
    return create_app(build_services(config), server_config["cors_origins"])
