"""Change request -> completion -> parse -> commit -> sandbox sync."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, Protocol

from athena.clients.completion import (
    AnthropicCompletionClient,
    ChatMessage,
    CompletionRequest,
    TextCompletion,
)
from athena.clients.github import GitHubClient
from athena.config import Settings
from athena.core import prompts
from athena.core.change_parser import parse_file_changes
from athena.core.commit_applier import GitCommitApplier, parse_repo_url
from athena.errors import AthenaError, CodegenFailed, EmptyCompletion, NoChangesFound
from athena.logging_config import get_logger
from athena.models.changes import FileChange

logger = get_logger(__name__)

type SandboxNotifier = Callable[[str], Awaitable[object]]
type RepoUrlResolver = Callable[[str], str]

_SKIPPED_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".ico", ".webp", ".woff", ".woff2", ".lock"}
_SKIPPED_NAMES = {"package-lock.json", "yarn.lock", "pnpm-lock.yaml"}


class RepositoryReader(Protocol):
    async def list_tree(self, owner: str, repo: str, ref: str) -> list[dict[str, Any]]: ...

    async def get_blob_text(self, owner: str, repo: str, sha: str) -> str: ...


@dataclass(slots=True)
class CodegenOptions:
    model: str
    temperature: float = 0.7
    max_tokens: int = 4000
    top_p: float | None = None
    context_chars: int = 60_000
    include_repository_files: bool = True
    branch: str = "main"


@dataclass(slots=True)
class CodegenResult:
    changes: list[FileChange]
    commit_sha: str


@dataclass(slots=True)
class CodegenPreview:
    text: str
    changes: list[FileChange]


class CodegenPipeline:
    """One codegen attempt. Retries are the caller's business."""

    def __init__(
        self,
        *,
        completion: TextCompletion,
        applier: GitCommitApplier,
        repo_url_for: RepoUrlResolver,
        options: CodegenOptions,
        reader: RepositoryReader | None = None,
        notifier: SandboxNotifier | None = None,
    ) -> None:
        self._completion = completion
        self._applier = applier
        self._repo_url_for = repo_url_for
        self._options = options
        self._reader = reader
        self._notifier = notifier

    async def generate_and_apply(
        self, repo_id: str, change_request: str, project_context: str = ""
    ) -> CodegenResult:
        log = logger.bind(repo_id=repo_id)
        try:
            repository_files = ""
            if self._options.include_repository_files:
                repository_files = await self.repository_snapshot(repo_id)
            user_prompt = prompts.change_request_prompt(
                repo_id=repo_id,
                change_request=change_request,
                project_context=project_context,
                repository_files=repository_files,
            )
            text = await self._complete(prompts.CHANGE_REQUEST_SYSTEM_PROMPT, user_prompt)
            changes = parse_file_changes(text)
            if not changes:
                msg = (
                    "No file changes found in LLM output. "
                    "Please try a more specific change request."
                )
                raise NoChangesFound(msg)
            log.info("codegen_changes_parsed", count=len(changes))

            commit_sha = await self._applier.apply_changes(
                self._repo_url_for(repo_id),
                changes,
                prompts.commit_message(change_request),
                branch=self._options.branch,
            )
        except AthenaError as exc:
            log.warning("codegen_failed", error=exc.error, message=exc.message)
            msg = f"Code generation failed: {exc.message}"
            raise CodegenFailed(msg, exc) from exc
        except Exception as exc:
            log.exception("codegen_crashed")
            msg = f"Code generation failed: {exc}"
            raise CodegenFailed(msg, exc) from exc

        await self._notify(repo_id)
        return CodegenResult(changes=changes, commit_sha=commit_sha)

    async def preview(self, repo_id: str, overview: str) -> CodegenPreview:
        """Generate and parse changes without committing anything."""
        try:
            repository_files = await self.repository_snapshot(repo_id)
            text = await self._complete(
                prompts.PREVIEW_SYSTEM_PROMPT,
                prompts.preview_prompt(overview=overview, repository_files=repository_files),
            )
        except AthenaError as exc:
            msg = f"Code generation failed: {exc.message}"
            raise CodegenFailed(msg, exc) from exc
        except Exception as exc:
            logger.exception("codegen_preview_crashed", repo_id=repo_id)
            msg = f"Code generation failed: {exc}"
            raise CodegenFailed(msg, exc) from exc
        return CodegenPreview(text=text, changes=parse_file_changes(text))

    async def repository_snapshot(self, repo_id: str) -> str:
        """Text files of the repository, ``File: path`` headed, within budget."""
        if self._reader is None:
            return ""
        ref = parse_repo_url(self._repo_url_for(repo_id))
        tree = await self._reader.list_tree(ref.owner, ref.repo, self._options.branch)

        budget = self._options.context_chars
        sections: list[str] = []
        for item in sorted(tree, key=lambda entry: str(entry.get("path", ""))):
            path = str(item.get("path", ""))
            if item.get("type") != "blob" or _skip_file(path):
                continue
            content = await self._reader.get_blob_text(ref.owner, ref.repo, str(item["sha"]))
            section = f"File: {path}\n{content}"
            if len(section) > budget:
                logger.info("repository_snapshot_skipped", repo_id=repo_id, path=path)
                continue
            sections.append(section)
            budget -= len(section)
        return "\n---\n".join(sections)

    async def _complete(self, system: str, user_prompt: str) -> str:
        options = self._options
        text = await self._completion.complete(
            CompletionRequest(
                system=system,
                messages=[ChatMessage(role="user", content=user_prompt)],
                model=options.model,
                temperature=options.temperature,
                max_tokens=options.max_tokens,
                top_p=options.top_p,
            )
        )
        if not text or not text.strip():
            msg = "Empty response from LLM"
            raise EmptyCompletion(msg)
        return text

    async def _notify(self, repo_id: str) -> None:
        if self._notifier is None:
            return
        try:
            await self._notifier(repo_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning("sandbox_sync_failed", repo_id=repo_id, error=str(exc))
        else:
            logger.info("sandbox_sync_requested", repo_id=repo_id)


def _skip_file(path: str) -> bool:
    pure = PurePosixPath(path)
    return pure.name in _SKIPPED_NAMES or pure.suffix.lower() in _SKIPPED_SUFFIXES


def build_codegen_pipeline(
    settings: Settings, github: GitHubClient, notifier: SandboxNotifier | None = None
) -> CodegenPipeline:
    """Pipeline wired to the configured completion backend and GitHub account."""
    return CodegenPipeline(
        completion=AnthropicCompletionClient(
            settings.anthropic_api_key,
            timeout_seconds=settings.completion_timeout_seconds,
        ),
        applier=GitCommitApplier(github),
        repo_url_for=settings.repo_url,
        options=CodegenOptions(
            model=settings.completion_model,
            temperature=settings.completion_temperature,
            max_tokens=settings.completion_max_tokens,
            top_p=settings.completion_top_p,
            context_chars=settings.repository_context_chars,
        ),
        reader=github,
        notifier=notifier,
    )
