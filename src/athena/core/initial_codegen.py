"""Background job that populates a freshly provisioned repository."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Protocol

from athena.core import prompts
from athena.core.codegen import CodegenResult
from athena.core.project_registry import ProjectRegistry
from athena.logging_config import get_logger
from athena.models.project import Project, ProjectStatus

logger = get_logger(__name__)

type Sleeper = Callable[[float], Awaitable[None]]
type Clock = Callable[[], int]


class ChangeApplier(Protocol):
    async def generate_and_apply(
        self, repo_id: str, change_request: str, project_context: str = ""
    ) -> CodegenResult: ...


class JobState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class InitialCodegenJob:
    """Bounded retry loop with a registry write as its only terminal output.

    Terminal states map to project status: ``succeeded`` -> ``ready`` with the
    change list, ``failed`` -> ``error`` with the last error message.
    """

    def __init__(
        self,
        *,
        project_id: str,
        title: str,
        overview: str,
        pipeline: ChangeApplier,
        registry: ProjectRegistry,
        clock: Clock,
        max_attempts: int = 5,
        backoff_seconds: float = 5.0,
        sleeper: Sleeper | None = None,
    ) -> None:
        self.project_id = project_id
        self.title = title
        self.overview = overview
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.state = JobState.PENDING
        self.attempts = 0
        self.last_error: str | None = None
        self._pipeline = pipeline
        self._registry = registry
        self._clock = clock
        self._sleep = sleeper or asyncio.sleep
        self._task: asyncio.Task[Project | None] | None = None

    @property
    def done(self) -> bool:
        return self.state in (JobState.SUCCEEDED, JobState.FAILED)

    def start(self) -> asyncio.Task[Project | None]:
        if self._task is None:
            self._task = asyncio.create_task(
                self.run(), name=f"initial-codegen:{self.project_id}"
            )
        return self._task

    async def wait(self) -> Project | None:
        if self._task is None:
            return await self.run()
        return await self._task

    async def run(self) -> Project | None:
        self.state = JobState.RUNNING
        change_request = prompts.INITIAL_CHANGE_REQUEST.format(overview=self.overview)
        project_context = prompts.INITIAL_PROJECT_CONTEXT.format(title=self.title)
        log = logger.bind(project_id=self.project_id)
        log.info("initial_codegen_started", max_attempts=self.max_attempts)

        while self.attempts < self.max_attempts:
            if self.attempts:
                await self._sleep(self.backoff_seconds)
            self.attempts += 1
            try:
                result = await self._pipeline.generate_and_apply(
                    self.project_id, change_request, project_context
                )
            except Exception as exc:  # noqa: BLE001
                self.last_error = str(exc) or type(exc).__name__
                log.warning(
                    "initial_codegen_attempt_failed",
                    attempt=self.attempts,
                    error=self.last_error,
                )
                continue

            self.state = JobState.SUCCEEDED
            log.info(
                "initial_codegen_succeeded",
                attempt=self.attempts,
                changes=len(result.changes),
            )
            return await self._registry.update(
                self.project_id,
                status=ProjectStatus.READY,
                error=None,
                last_change=self._clock(),
                changes=[change.summary() for change in result.changes],
            )

        self.state = JobState.FAILED
        message = self.last_error or "Change request failed after retries"
        log.error("initial_codegen_exhausted", attempts=self.attempts, error=message)
        return await self._registry.update(
            self.project_id, status=ProjectStatus.ERROR, error=message
        )
