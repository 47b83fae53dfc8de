"""
Async client for the WebAI HTTP API.

Drives a `WizardSession` through generation, refinement, test chats and
deployment the way the create page does in a browser.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from webai.client.consumer import INCOMPLETE_STREAM, StreamConsumer
from webai.client.wizard import WizardSession
from webai.generation.events import ErrorEvent

logger = logging.getLogger(__name__)


class APIError(Exception):
    """A non-streaming call returned an error status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return f"HTTP {response.status_code}"


class WebAIClient:
    def __init__(
        self,
        base_url: str,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 300.0,
    ):
        self.client = httpx.AsyncClient(
            base_url=base_url, transport=transport, timeout=timeout
        )

    # ------------------------------------------------------------------ #
    # Streaming                                                          #
    # ------------------------------------------------------------------ #

    async def _run_stream(
        self, session: WizardSession, token: int, path: str, body: dict[str, Any]
    ) -> None:
        """
        Feed one SSE response into the session under `token`.

        Transport failures fail the session back to its previous state and
        are re-raised.
        """
        consumer = StreamConsumer()
        try:
            async with self.client.stream("POST", path, json=body) as response:
                if response.status_code != 200:
                    await response.aread()
                    session.fail(token, _error_message(response))
                    return

                async for event in consumer.events(response.aiter_text()):
                    if not session.is_current(token):
                        logger.debug("Dropping events of a superseded request")
                        break
                    session.apply_event(token, event)
        except httpx.HTTPError as e:
            session.fail(token, str(e) or INCOMPLETE_STREAM)
            raise

        if session.is_current(token):
            # Stream exhausted without a terminal event
            session.fail(token, INCOMPLETE_STREAM)

    async def generate(
        self,
        session: WizardSession,
        description: str | None = None,
        template: str | None = None,
    ) -> WizardSession:
        token = session.begin_generation()
        await self._run_stream(session, token, "/api/bots/generate-code", {
            "description": description,
            "template": template,
        })
        return session

    async def refine(self, session: WizardSession, instruction: str) -> WizardSession:
        token = session.begin_refinement(instruction)
        await self._run_stream(session, token, "/api/bots/refine-code", {
            "files": session.files,
            "instruction": instruction,
            "botName": session.draft.name,
            "botDescription": session.draft.description,
        })
        return session

    async def test_chat(
        self, system_prompt: str, messages: Sequence[dict[str, str]]
    ) -> str:
        """Send a test chat and return the whole reply."""
        async with self.client.stream("POST", "/api/test-chat", json={
            "systemPrompt": system_prompt,
            "messages": list(messages),
        }) as response:
            if response.status_code != 200:
                await response.aread()
                raise APIError(response.status_code, _error_message(response))
            result = await StreamConsumer().consume(response.aiter_text())

        if isinstance(result.terminal, ErrorEvent):
            raise APIError(502, result.terminal.error)
        return result.text

    # ------------------------------------------------------------------ #
    # JSON endpoints                                                     #
    # ------------------------------------------------------------------ #

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        response = await self.client.post(path, json=body)
        if response.status_code >= 400:
            raise APIError(response.status_code, _error_message(response))
        return response.json()

    async def generate_prompt(
        self, description: str | None = None, template: str | None = None
    ) -> dict[str, Any]:
        return await self._post("/api/bots/generate-prompt", {
            "description": description, "template": template,
        })

    async def publish_bot(
        self,
        session: WizardSession,
        slug: str | None = None,
        wallet_address: str | None = None,
        template: str | None = None,
    ) -> dict[str, Any]:
        """Publish the session's bot as a hosted chat endpoint."""
        session.begin_deploy()
        try:
            result = await self._post("/api/bots", {
                "slug": slug or session.draft.suggested_slug,
                "name": session.draft.name,
                "description": session.draft.description,
                "systemPrompt": session.draft.system_prompt,
                "template": template,
                "walletAddress": wallet_address,
            })
        except (APIError, httpx.HTTPError) as e:
            session.finish_deploy(error=str(e))
            raise
        session.finish_deploy(url=f"/b/{result['slug']}")
        return result

    async def push_to_github(
        self, session: WizardSession, repo_name: str | None = None
    ) -> dict[str, Any]:
        """Push the session's files to a new GitHub repository."""
        session.begin_deploy()
        try:
            result = await self._post("/api/github/push", {
                "repoName": repo_name or session.draft.suggested_slug,
                "description": session.draft.description,
                "files": session.files,
            })
        except (APIError, httpx.HTTPError) as e:
            session.finish_deploy(error=str(e))
            raise
        session.finish_deploy(url=result["repoUrl"])
        return result

    async def close(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> WebAIClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
