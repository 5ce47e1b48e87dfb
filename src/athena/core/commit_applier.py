"""Atomic multi-file commits through the Git data API."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Protocol

from athena.clients.github import TreeEntry
from athena.errors import InvalidRepoUrl
from athena.logging_config import get_logger
from athena.models.changes import FileChange

logger = get_logger(__name__)

_REPO_URL = re.compile(
    r"^(?:https?://)?[^/\s]+/(?P<owner>[^/\s]+)/(?P<repo>[^/\s]+?)(?:\.git)?/?$"
)
_BLOB_MODE = "100644"


@dataclass(slots=True, frozen=True)
class RepoRef:
    owner: str
    repo: str


class GitDataApi(Protocol):
    async def get_branch_head(self, owner: str, repo: str, branch: str) -> str: ...

    async def find_file_sha(self, owner: str, repo: str, path: str, ref: str) -> str | None: ...

    async def create_blob(self, owner: str, repo: str, content: str) -> str: ...

    async def create_tree(
        self, owner: str, repo: str, base_tree: str, entries: list[TreeEntry]
    ) -> str: ...

    async def create_commit(
        self, owner: str, repo: str, *, message: str, tree: str, parents: list[str]
    ) -> str: ...

    async def update_ref(self, owner: str, repo: str, branch: str, sha: str) -> None: ...


def parse_repo_url(repo_url: str) -> RepoRef:
    """Split ``host/owner/repo[.git]`` into owner and repository name."""
    match = _REPO_URL.match(repo_url.strip())
    if match is None:
        msg = f"Invalid repository URL: {repo_url}"
        raise InvalidRepoUrl(msg, details=["repoUrl must look like host/owner/repo[.git]"])
    return RepoRef(owner=match.group("owner"), repo=match.group("repo"))


class GitCommitApplier:
    """Land a list of ``FileChange`` as exactly one commit, or as none.

    The branch ref is only moved in the final step, so any earlier failure
    leaves it on the previous head. Blobs created before a failure stay
    unreferenced in the object store.
    """

    def __init__(self, api: GitDataApi) -> None:
        self._api = api

    async def apply_changes(
        self,
        repo_url: str,
        changes: list[FileChange],
        commit_message: str,
        *,
        branch: str = "main",
    ) -> str:
        ref = parse_repo_url(repo_url)
        head_sha = await self._api.get_branch_head(ref.owner, ref.repo, branch)

        entries: list[TreeEntry] = []
        for change in changes:
            entry = await self._tree_entry(ref, change, branch)
            if entry is not None:
                entries.append(entry)

        tree_sha = await self._api.create_tree(ref.owner, ref.repo, head_sha, entries)
        commit_sha = await self._api.create_commit(
            ref.owner,
            ref.repo,
            message=commit_message,
            tree=tree_sha,
            parents=[head_sha],
        )
        await self._api.update_ref(ref.owner, ref.repo, branch, commit_sha)
        logger.info(
            "commit_applied",
            owner=ref.owner,
            repo=ref.repo,
            branch=branch,
            commit_sha=commit_sha,
            entries=len(entries),
        )
        return commit_sha

    async def _tree_entry(self, ref: RepoRef, change: FileChange, branch: str) -> TreeEntry | None:
        if change.remove:
            existing = await self._api.find_file_sha(ref.owner, ref.repo, change.path, branch)
            if existing is None:
                logger.info("delete_skipped_missing_file", repo=ref.repo, path=change.path)
                return None
            return {"path": change.path, "mode": _BLOB_MODE, "type": "blob", "sha": None}

        blob_sha = await self._api.create_blob(ref.owner, ref.repo, change.content or "")
        return {"path": change.path, "mode": _BLOB_MODE, "type": "blob", "sha": blob_sha}
