"""
Publishes a generated bot project to a new GitHub repository.

All files land in a single commit made through the git data API:
create the repository (auto-initialised), build a tree from the files,
commit it on top of the initial commit and move the branch ref.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

import httpx

from webai.errors import Conflict, ServiceUnavailable, UpstreamFailure, ValidationFailed
from webai.logging_utils import log_operation
from webai.slugs import sanitize_repo_name

logger = logging.getLogger(__name__)

GITHUB_ACCEPT = "application/vnd.github+json"
FILE_MODE = "100644"
REF_RETRIES = 3
REF_RETRY_DELAY = 1.0


class GitHubPublisher:
    """Creates repositories under the configured owner and pushes files to them."""

    def __init__(
        self,
        config: dict[str, Any],
        transport: httpx.AsyncBaseTransport | None = None,
        retry_delay: float = REF_RETRY_DELAY,
    ):
        self.owner = config["owner"]
        self.owner_type = config.get("owner_type", "org")
        self.private = bool(config.get("private", False))
        self.default_branch = config.get("default_branch", "main")
        self.token = config.get("token", "")
        self.retry_delay = retry_delay
        self.client = httpx.AsyncClient(
            base_url=config["api_url"],
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": GITHUB_ACCEPT,
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout=httpx.Timeout(30.0),
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return bool(self.token)

    @log_operation("github_push")
    async def push(
        self,
        repo_name: str,
        files: Sequence[dict[str, Any]],
        description: str = "",
        commit_message: str = "Initial bot project",
    ) -> dict[str, str]:
        """
        Create `repo_name` and commit `files` to it.

        Returns:
            {"repoUrl": ..., "repoName": ...}

        Raises:
            ServiceUnavailable: If no GitHub token is configured.
            ValidationFailed: If the name or the file list is unusable.
            Conflict: If the repository already exists.
            UpstreamFailure: If any GitHub call fails.
        """
        if not self.configured:
            raise ServiceUnavailable("GitHub publishing is not configured")
        if not files:
            raise ValidationFailed("Files are required")

        name = sanitize_repo_name(repo_name)
        repo = await self._create_repo(name, description)
        full_name = repo["full_name"]

        base_sha = await self._branch_head(full_name)
        tree = await self._request("POST", f"/repos/{full_name}/git/trees", json={
            "tree": [
                {
                    "path": file["path"],
                    "mode": FILE_MODE,
                    "type": "blob",
                    "content": file["content"],
                }
                for file in files
            ],
        })
        commit = await self._request("POST", f"/repos/{full_name}/git/commits", json={
            "message": commit_message,
            "tree": tree["sha"],
            "parents": [base_sha],
        })
        await self._request(
            "PATCH",
            f"/repos/{full_name}/git/refs/heads/{self.default_branch}",
            json={"sha": commit["sha"], "force": True},
        )

        logger.info(f"Pushed {len(files)} files to {full_name}")
        return {"repoUrl": repo["html_url"], "repoName": repo["name"]}

    async def _create_repo(self, name: str, description: str) -> dict[str, Any]:
        path = f"/orgs/{self.owner}/repos" if self.owner_type == "org" else "/user/repos"
        body = {
            "name": name,
            "description": description[:350],
            "private": self.private,
            "auto_init": True,
        }
        try:
            response = await self.client.post(path, json=body)
        except httpx.HTTPError as e:
            raise UpstreamFailure(f"GitHub request failed: {e}") from e

        if response.status_code == 422:
            raise Conflict(f"Repository '{name}' already exists")
        if response.status_code != 201:
            raise UpstreamFailure(
                f"GitHub repository creation failed ({response.status_code})"
            )
        return response.json()

    async def _branch_head(self, full_name: str) -> str:
        """SHA of the auto-init commit; the ref can lag behind repo creation."""
        path = f"/repos/{full_name}/git/ref/heads/{self.default_branch}"
        for attempt in range(1, REF_RETRIES + 1):
            try:
                response = await self.client.get(path)
            except httpx.HTTPError as e:
                raise UpstreamFailure(f"GitHub request failed: {e}") from e
            if response.status_code == 200:
                return response.json()["object"]["sha"]
            if response.status_code not in (404, 409) or attempt == REF_RETRIES:
                break
            logger.debug(f"Branch not ready for {full_name}, retry {attempt}")
            await asyncio.sleep(self.retry_delay * attempt)
        raise UpstreamFailure(f"Branch '{self.default_branch}' not found in {full_name}")

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise UpstreamFailure(f"GitHub request failed: {e}") from e
        if response.status_code >= 300:
            logger.error(f"GitHub {method} {path} failed: {response.status_code}")
            raise UpstreamFailure(f"GitHub API error ({response.status_code})")
        return response.json()

    async def close(self) -> None:
        await self.client.aclose()
