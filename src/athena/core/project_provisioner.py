"""Platform-side project lifecycle: create, restart, stop, delete, change."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol

from athena.core.codegen import CodegenPipeline, CodegenPreview, CodegenResult
from athena.core.initial_codegen import InitialCodegenJob, Sleeper
from athena.core.ports import DEFAULT_PORT_BASE, DEFAULT_PORT_CEILING, allocate_port
from athena.core.project_ids import generate_project_id, title_from_id
from athena.core.project_registry import ProjectRegistry
from athena.errors import AthenaError, UpstreamError, ValidationError
from athena.logging_config import get_logger
from athena.models.project import Project, ProjectStatus

logger = get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class SandboxApi(Protocol):
    async def used_ports(self) -> list[int]: ...

    async def list_projects(self) -> list[dict[str, Any]]: ...

    async def create_project(
        self, *, project_id: str, title: str, port: int, overview: str
    ) -> dict[str, Any]: ...

    async def restart_project(self, project_id: str, port: int) -> dict[str, Any]: ...

    async def stop_project(self, project_id: str) -> dict[str, Any]: ...


class RepositoryAdmin(Protocol):
    async def delete_repository(self, owner: str, repo: str) -> bool: ...


@dataclass(slots=True)
class CreatedProject:
    project_id: str
    title: str
    status: ProjectStatus
    sandbox: dict[str, Any] = field(default_factory=dict)


class ProjectProvisioner:
    """Owns project records and the background initial-codegen jobs."""

    def __init__(
        self,
        *,
        registry: ProjectRegistry,
        sandbox: SandboxApi,
        pipeline: CodegenPipeline,
        github: RepositoryAdmin,
        github_owner: str,
        port_base: int = DEFAULT_PORT_BASE,
        port_ceiling: int = DEFAULT_PORT_CEILING,
        codegen_attempts: int = 5,
        codegen_backoff_seconds: float = 5.0,
        preview_grace_seconds: int = 60,
        sleeper: Sleeper | None = None,
        clock: Callable[[], int] = _now_ms,
        id_factory: Callable[[str], str] = generate_project_id,
    ) -> None:
        self._registry = registry
        self._sandbox = sandbox
        self._pipeline = pipeline
        self._github = github
        self._github_owner = github_owner
        self._port_base = port_base
        self._port_ceiling = port_ceiling
        self._codegen_attempts = codegen_attempts
        self._codegen_backoff_seconds = codegen_backoff_seconds
        self._preview_grace_seconds = preview_grace_seconds
        self._sleep = sleeper or asyncio.sleep
        self._clock = clock
        self._id_factory = id_factory
        self._jobs: dict[str, InitialCodegenJob] = {}

    async def create_project(
        self,
        overview: str,
        stack: str | None = None,
        deployment: str | None = None,
    ) -> CreatedProject:
        if not overview or not overview.strip():
            msg = "Missing required field: overview is required"
            raise ValidationError(msg, details=["overview must be a non-empty string"])

        project_id = self._id_factory(overview)
        title = title_from_id(project_id)
        port = await self._allocate_port()
        log = logger.bind(project_id=project_id)
        log.info("project_create_requested", title=title, port=port)

        project = Project(
            id=project_id,
            title=title,
            overview=overview,
            port=port,
            status=ProjectStatus.CREATING,
            created_timestamp=self._clock(),
        )
        if stack:
            project.stack = stack
        if deployment:
            project.deployment = deployment
        await self._registry.put(project)

        try:
            sandbox_payload = await self._sandbox.create_project(
                project_id=project_id, title=title, port=port, overview=overview
            )
        except AthenaError as exc:
            detail = exc.body if isinstance(exc, UpstreamError) and exc.body else exc.message
            await self._registry.update(project_id, status=ProjectStatus.ERROR, error=detail)
            log.error("project_create_failed", error=exc.message)
            raise

        await self._registry.update(
            project_id, status=ProjectStatus.CREATED, sandbox=sandbox_payload
        )
        self.start_initial_codegen(project)
        log.info("project_created")
        return CreatedProject(
            project_id=project_id,
            title=title,
            status=ProjectStatus.CREATED,
            sandbox=sandbox_payload,
        )

    def start_initial_codegen(self, project: Project) -> InitialCodegenJob:
        job = InitialCodegenJob(
            project_id=project.id,
            title=project.title,
            overview=project.overview,
            pipeline=self._pipeline,
            registry=self._registry,
            clock=self._clock,
            max_attempts=self._codegen_attempts,
            backoff_seconds=self._codegen_backoff_seconds,
            sleeper=self._sleep,
        )
        self._jobs[project.id] = job
        job.start().add_done_callback(_log_job_crash)
        return job

    def job(self, project_id: str) -> InitialCodegenJob | None:
        return self._jobs.get(project_id)

    async def get_project(self, project_id: str) -> tuple[Project, bool]:
        project = await self._registry.require(project_id)
        return project, project.preview_available(self._clock(), self._preview_grace_seconds)

    async def list_projects(self) -> list[Project]:
        return await self._registry.list()

    async def list_running(self) -> list[dict[str, Any]]:
        return await self._sandbox.list_projects()

    async def restart_project(self, project_id: str) -> dict[str, Any]:
        project = await self._registry.require(project_id)
        payload = await self._sandbox.restart_project(project_id, project.port)
        await self._registry.update(
            project_id,
            status=ProjectStatus.RESTARTING,
            last_restarted=datetime.now(UTC),
            restart_timestamp=self._clock(),
        )
        logger.info("project_restarted", project_id=project_id, port=project.port)
        return payload

    async def stop_project(self, project_id: str) -> dict[str, Any]:
        payload = await self._sandbox.stop_project(project_id)
        logger.info("project_stopped", project_id=project_id)
        return payload

    async def delete_project(self, project_id: str) -> None:
        await self._github.delete_repository(self._github_owner, project_id)
        await self._registry.delete(project_id)
        self._jobs.pop(project_id, None)
        logger.info("project_deleted", project_id=project_id)

    async def apply_change_request(
        self, project_id: str, change_request: str, project_context: str = ""
    ) -> CodegenResult:
        if not change_request or not change_request.strip():
            msg = "Missing required field: changeRequest is required"
            raise ValidationError(msg, details=["changeRequest must be a non-empty string"])
        return await self._pipeline.generate_and_apply(project_id, change_request, project_context)

    async def preview_codegen(self, project_id: str, overview: str) -> CodegenPreview:
        return await self._pipeline.preview(project_id, overview)

    async def _allocate_port(self) -> int:
        try:
            used = await self._sandbox.used_ports()
        except AthenaError as exc:
            logger.warning("port_registry_unavailable", error=exc.message, fallback=self._port_base)
            used = []
        return allocate_port(used, base=self._port_base, ceiling=self._port_ceiling)


def _log_job_crash(task: asyncio.Task[Project | None]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("initial_codegen_job_crashed", task=task.get_name(), error=str(exc))
