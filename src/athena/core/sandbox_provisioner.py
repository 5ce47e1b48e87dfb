"""Sandbox-host provisioning: repository, working copy and dev server."""

from __future__ import annotations

import asyncio
import re
import shutil
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from athena.core import prompts
from athena.core.git_manager import GitManager
from athena.core.initial_codegen import ChangeApplier, Sleeper
from athena.core.process_supervisor import ProcessSupervisor
from athena.core.scaffold import write_template
from athena.core.shell import CommandRunner, run_command
from athena.errors import NotFoundError, ProvisioningError, ValidationError
from athena.logging_config import get_logger
from athena.models.runtime import RunningProjectEntry

logger = get_logger(__name__)

_PROJECT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
PORT_MIN = 3001
PORT_MAX = 5000
TEMPLATE_COMMIT_MESSAGE = "Initial Next.js template"


class RepositoryCreator(Protocol):
    async def create_repository(self, name: str, description: str) -> dict[str, Any]: ...


class ProvisionStep(str, Enum):
    EVICTING = "evicting"
    VALIDATING = "validating"
    CREATING_REPOSITORY = "creating_repository"
    CLONING = "cloning"
    SCAFFOLDING = "scaffolding"
    PUSHING = "pushing"
    AWAITING_PROPAGATION = "awaiting_propagation"
    GENERATING = "generating"
    RECONCILING = "reconciling"
    INSTALLING = "installing"
    SPAWNING = "spawning"
    RUNNING = "running"


class Recovery(str, Enum):
    ABORT = "abort"
    ABORT_AND_CLEAN = "abort_and_clean"
    CONTINUE = "continue"


# What happens to the run when a step fails. ``abort_and_clean`` also removes
# the project's working directory. The GitHub repository is never deleted.
RECOVERY: dict[ProvisionStep, Recovery] = {
    ProvisionStep.EVICTING: Recovery.ABORT,
    ProvisionStep.VALIDATING: Recovery.ABORT,
    ProvisionStep.CREATING_REPOSITORY: Recovery.ABORT,
    ProvisionStep.CLONING: Recovery.ABORT_AND_CLEAN,
    ProvisionStep.SCAFFOLDING: Recovery.ABORT_AND_CLEAN,
    ProvisionStep.PUSHING: Recovery.ABORT_AND_CLEAN,
    ProvisionStep.AWAITING_PROPAGATION: Recovery.CONTINUE,
    ProvisionStep.GENERATING: Recovery.CONTINUE,
    ProvisionStep.RECONCILING: Recovery.CONTINUE,
    ProvisionStep.INSTALLING: Recovery.CONTINUE,
    ProvisionStep.SPAWNING: Recovery.ABORT_AND_CLEAN,
}


@dataclass(slots=True)
class ProvisionRun:
    """Trace of one create/restart run."""

    project_id: str
    step: ProvisionStep = ProvisionStep.EVICTING
    history: list[ProvisionStep] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    entry: RunningProjectEntry | None = None


def validate_project_data(payload: dict[str, Any]) -> list[str]:
    """Every rule ``payload`` violates, in a fixed order."""
    errors: list[str] = []
    project_id = payload.get("projectId")
    if not project_id or not isinstance(project_id, str):
        errors.append("projectId is required and must be a string")
    elif not _PROJECT_ID_PATTERN.match(project_id):
        errors.append("projectId must contain only letters, numbers, hyphens, and underscores")

    title = payload.get("projectTitle")
    if not isinstance(title, str) or not title.strip():
        errors.append("projectTitle is required and must be a non-empty string")

    port = payload.get("port")
    if isinstance(port, bool) or not isinstance(port, int):
        errors.append("port is required and must be an integer")
    elif not PORT_MIN <= port <= PORT_MAX:
        errors.append(f"port must be between {PORT_MIN} and {PORT_MAX}")

    overview = payload.get("projectOverview")
    if not isinstance(overview, str) or not overview.strip():
        errors.append("projectOverview is required and must be a non-empty string")
    return errors


class SandboxProvisioner:
    """Drives create/restart/pull on the sandbox host as explicit step sequences."""

    def __init__(
        self,
        *,
        supervisor: ProcessSupervisor,
        github: RepositoryCreator,
        git: GitManager,
        codegen: ChangeApplier | None,
        clone_url_for: Callable[[str], str],
        author_name: str,
        author_email: str,
        runner: CommandRunner = run_command,
        install_timeout_seconds: float = 120.0,
        eviction_settle_seconds: float = 2.0,
        push_propagation_seconds: float = 5.0,
        reconcile_delay_seconds: float = 3.0,
        sleeper: Sleeper | None = None,
    ) -> None:
        self._supervisor = supervisor
        self._github = github
        self._git = git
        self._codegen = codegen
        self._clone_url_for = clone_url_for
        self._author_name = author_name
        self._author_email = author_email
        self._run = runner
        self._install_timeout_seconds = install_timeout_seconds
        self._eviction_settle_seconds = eviction_settle_seconds
        self._push_propagation_seconds = push_propagation_seconds
        self._reconcile_delay_seconds = reconcile_delay_seconds
        self._sleep = sleeper or asyncio.sleep

    async def create_project(self, payload: dict[str, Any]) -> ProvisionRun:
        run = ProvisionRun(project_id=str(payload.get("projectId") or ""))
        log = logger.bind(project_id=run.project_id)

        await self._step(run, ProvisionStep.EVICTING, self._evict_everything)
        await self._sleep(self._eviction_settle_seconds)

        self._enter(run, ProvisionStep.VALIDATING)
        errors = validate_project_data(payload)
        if errors:
            log.warning("project_validation_failed", details=errors)
            raise ValidationError("Validation failed", details=errors)

        project_id: str = payload["projectId"]
        title: str = payload["projectTitle"]
        overview: str = payload["projectOverview"]
        port: int = payload["port"]
        project_path = self._supervisor.project_path(project_id)
        log.info("project_provisioning_started", title=title, port=port)

        await self._step(
            run,
            ProvisionStep.CREATING_REPOSITORY,
            lambda: self._github.create_repository(project_id, overview),
        )
        await self._step(
            run,
            ProvisionStep.CLONING,
            lambda: self._git.clone(self._clone_url_for(project_id), project_path),
        )
        await self._step(
            run,
            ProvisionStep.SCAFFOLDING,
            lambda: asyncio.to_thread(write_template, project_path, project_id, title, overview),
        )
        await self._step(run, ProvisionStep.PUSHING, lambda: self._push_template(project_id))
        await self._step(
            run,
            ProvisionStep.AWAITING_PROPAGATION,
            lambda: self._sleep(self._push_propagation_seconds),
        )

        generated = await self._step(
            run, ProvisionStep.GENERATING, lambda: self._generate(project_id, title, overview)
        )
        if generated:
            await self._step(run, ProvisionStep.RECONCILING, lambda: self._reconcile(project_id))

        await self._step(run, ProvisionStep.INSTALLING, lambda: self._install(project_id))
        run.entry = await self._step(
            run, ProvisionStep.SPAWNING, lambda: self._supervisor.launch(project_id, port)
        )
        self._enter(run, ProvisionStep.RUNNING)
        log.info("project_provisioned", port=port, warnings=len(run.warnings))
        return run

    async def restart_project(self, project_id: str, port: int) -> ProvisionRun:
        """Relaunch ``project_id`` from whatever is on the remote ``main``.

        The working copy is kept when present; a missing one is cloned and
        installed again.
        """
        run = ProvisionRun(project_id=project_id)
        log = logger.bind(project_id=project_id)
        project_path = self._supervisor.project_path(project_id)

        self._enter(run, ProvisionStep.EVICTING)
        self._supervisor.evict_all()
        if project_path.exists():
            await self._step(
                run, ProvisionStep.RECONCILING, lambda: self._git.sync_to_remote(project_path)
            )
        await self._supervisor.kill_stray_processes()
        await self._sleep(self._eviction_settle_seconds)

        if project_path.exists():
            await self._step(
                run, ProvisionStep.RECONCILING, lambda: self._git.pull(project_path)
            )
        else:
            log.info("working_copy_missing", path=str(project_path))
            await self._step(
                run,
                ProvisionStep.CLONING,
                lambda: self._git.clone(self._clone_url_for(project_id), project_path),
            )
            await self._step(run, ProvisionStep.INSTALLING, lambda: self._install(project_id))

        run.entry = await self._step(
            run, ProvisionStep.SPAWNING, lambda: self._supervisor.launch(project_id, port)
        )
        self._enter(run, ProvisionStep.RUNNING)
        log.info("project_restarted", port=port, warnings=len(run.warnings))
        return run

    async def pull_changes(self, project_id: str) -> None:
        project_path = self._supervisor.project_path(project_id)
        if not project_path.exists():
            msg = f"Project directory for '{project_id}' does not exist"
            raise NotFoundError(msg)
        await self._git.sync_to_remote(project_path)
        logger.info("changes_pulled", project_id=project_id)

    async def _evict_everything(self) -> None:
        self._supervisor.evict_all()
        await self._supervisor.kill_stray_processes()
        await self._supervisor.purge_workspaces()
        await self._supervisor.clear_package_cache()

    async def _push_template(self, project_id: str) -> None:
        project_path = self._supervisor.project_path(project_id)
        await self._git.configure_identity(project_path, self._author_name, self._author_email)
        await self._git.commit_all(project_path, TEMPLATE_COMMIT_MESSAGE)
        await self._git.push(project_path)

    async def _generate(self, project_id: str, title: str, overview: str) -> bool:
        if self._codegen is None:
            return False
        result = await self._codegen.generate_and_apply(
            project_id,
            prompts.INITIAL_CHANGE_REQUEST.format(overview=overview),
            prompts.INITIAL_PROJECT_CONTEXT.format(title=title),
        )
        return bool(result.changes)

    async def _reconcile(self, project_id: str) -> None:
        await self._sleep(self._reconcile_delay_seconds)
        await self._git.sync_to_remote(self._supervisor.project_path(project_id))

    async def _install(self, project_id: str) -> None:
        await self._run(
            "npm",
            "install",
            cwd=self._supervisor.project_path(project_id),
            timeout=self._install_timeout_seconds,
        )

    def _enter(self, run: ProvisionRun, step: ProvisionStep) -> None:
        run.step = step
        run.history.append(step)
        logger.debug("provision_step", project_id=run.project_id, step=step.value)

    async def _step[T](
        self, run: ProvisionRun, step: ProvisionStep, action: Callable[[], Awaitable[T]]
    ) -> T | None:
        self._enter(run, step)
        try:
            return await action()
        except Exception as exc:
            recovery = RECOVERY[step]
            logger.warning(
                "provision_step_failed",
                project_id=run.project_id,
                step=step.value,
                recovery=recovery.value,
                error=str(exc),
            )
            if recovery is Recovery.CONTINUE:
                run.warnings.append(f"{step.value}: {exc}")
                return None
            if recovery is Recovery.ABORT_AND_CLEAN:
                await asyncio.to_thread(
                    shutil.rmtree, self._supervisor.project_path(run.project_id), True
                )
            msg = f"Provisioning failed while {step.value.replace('_', ' ')}: {exc}"
            raise ProvisioningError(msg, step.value) from exc
