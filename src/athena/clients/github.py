"""GitHub REST and Git data API client for the service identity."""

from __future__ import annotations

import base64
from typing import Any

import httpx

from athena.errors import (
    BlobCreationFailed,
    BranchLookupFailed,
    CommitCreationFailed,
    RefUpdateFailed,
    TreeCreationFailed,
    UpstreamError,
)
from athena.logging_config import get_logger

logger = get_logger(__name__)

type TreeEntry = dict[str, str | None]


class GitHubClient:
    """Thin async wrapper; every non-2xx becomes a typed ``UpstreamError``."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = "https://api.github.com",
        timeout_seconds: float = 30.0,
    ) -> None:
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "Athena-AI-Platform",
        }

    async def get_branch_head(self, owner: str, repo: str, branch: str) -> str:
        response = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/branches/{branch}",
            action="get branch info",
            error_cls=BranchLookupFailed,
        )
        return str(response.json()["commit"]["sha"])

    async def find_file_sha(self, owner: str, repo: str, path: str, ref: str) -> str | None:
        """Blob sha of ``path`` at ``ref``, or ``None`` when it does not exist."""
        response = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/contents/{path}",
            params={"ref": ref},
            action="look up file",
            allow_not_found=True,
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        data = response.json()
        if isinstance(data, dict) and data.get("type", "file") == "file":
            return str(data["sha"])
        return None

    async def create_blob(self, owner: str, repo: str, content: str) -> str:
        response = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/git/blobs",
            json={"content": content, "encoding": "utf-8"},
            action="create blob",
            error_cls=BlobCreationFailed,
        )
        return str(response.json()["sha"])

    async def create_tree(
        self, owner: str, repo: str, base_tree: str, entries: list[TreeEntry]
    ) -> str:
        response = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/git/trees",
            json={"base_tree": base_tree, "tree": entries},
            action="create tree",
            error_cls=TreeCreationFailed,
        )
        return str(response.json()["sha"])

    async def create_commit(
        self, owner: str, repo: str, *, message: str, tree: str, parents: list[str]
    ) -> str:
        response = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/git/commits",
            json={"message": message, "tree": tree, "parents": parents},
            action="create commit",
            error_cls=CommitCreationFailed,
        )
        return str(response.json()["sha"])

    async def update_ref(self, owner: str, repo: str, branch: str, sha: str) -> None:
        await self._request(
            "PATCH",
            f"/repos/{owner}/{repo}/git/refs/heads/{branch}",
            json={"sha": sha, "force": False},
            action="update branch ref",
            error_cls=RefUpdateFailed,
        )

    async def list_tree(self, owner: str, repo: str, ref: str) -> list[dict[str, Any]]:
        response = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/git/trees/{ref}",
            params={"recursive": "1"},
            action="fetch repository tree",
        )
        tree = response.json().get("tree")
        if not isinstance(tree, list):
            msg = "Malformed tree response"
            raise UpstreamError(msg, status=response.status_code, body=response.text)
        return tree

    async def get_blob_text(self, owner: str, repo: str, sha: str) -> str:
        response = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/git/blobs/{sha}",
            action="fetch blob",
        )
        data = response.json()
        if data.get("encoding") == "base64":
            return base64.b64decode(data.get("content", "")).decode("utf-8", errors="replace")
        return str(data.get("content", ""))

    async def create_repository(self, name: str, description: str) -> dict[str, Any]:
        response = await self._request(
            "POST",
            "/user/repos",
            json={
                "name": name,
                "description": description[:350],
                "private": False,
                "auto_init": False,
            },
            action="create repository",
        )
        data = response.json()
        logger.info("github_repo_created", name=name, repo_url=data.get("html_url"))
        return data

    async def delete_repository(self, owner: str, repo: str) -> bool:
        """Delete a repository; ``False`` when it was already gone."""
        response = await self._request(
            "DELETE",
            f"/repos/{owner}/{repo}",
            action="delete repository",
            allow_not_found=True,
        )
        deleted = response.status_code != httpx.codes.NOT_FOUND
        logger.info("github_repo_deleted", owner=owner, repo=repo, existed=deleted)
        return deleted

    async def _request(
        self,
        method: str,
        path: str,
        *,
        action: str,
        error_cls: type[UpstreamError] = UpstreamError,
        json: Any = None,
        params: dict[str, str] | None = None,
        allow_not_found: bool = False,
    ) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url, headers=self.headers, timeout=self._timeout
            ) as client:
                response = await client.request(method, path, json=json, params=params)
        except httpx.HTTPError as exc:
            msg = f"Failed to {action}: {exc}"
            raise error_cls(msg, body=str(exc)) from exc

        if response.is_success:
            return response
        if allow_not_found and response.status_code == httpx.codes.NOT_FOUND:
            return response
        msg = f"Failed to {action}: {response.status_code} {response.text}"
        raise error_cls(msg, status=response.status_code, body=response.text)
