"""Services wired to in-memory fakes, shared by unit, integration and e2e tests."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from athena.core.codegen import CodegenOptions, CodegenPipeline
from athena.core.commit_applier import GitCommitApplier
from athena.core.git_manager import GitManager
from athena.core.maintenance import MaintenanceScheduler
from athena.core.process_supervisor import ProcessSupervisor
from athena.core.project_provisioner import ProjectProvisioner
from athena.core.project_registry import ProjectRegistry
from athena.core.sandbox_provisioner import SandboxProvisioner
from athena.db.store import SQLiteStore
from tests.support.fakes import (
    FakeChangeApplier,
    FakeClock,
    FakeCompletion,
    FakeGitDataApi,
    FakeGitHubAdmin,
    FakeKiller,
    FakeRunner,
    FakeSandboxApi,
    FakeSpawner,
    RecordingSleeper,
    clone_creates_directory,
    codegen_result,
)

OWNER = "athena-service-account"
PAGE_COMPLETION = "<page><path>app/page.tsx</path><content>todo</content></page>"


@dataclass(slots=True)
class PlatformHarness:
    provisioner: ProjectProvisioner
    registry: ProjectRegistry
    sandbox: FakeSandboxApi
    github: FakeGitHubAdmin
    repo: FakeGitDataApi
    completion: FakeCompletion
    clock: FakeClock


def build_platform(
    tmp_path: Path,
    *,
    sandbox: FakeSandboxApi | None = None,
    completion: FakeCompletion | None = None,
    project_id: str = "todo-app-12345",
) -> PlatformHarness:
    registry = ProjectRegistry(SQLiteStore(tmp_path / "athena.db"))
    sandbox = sandbox or FakeSandboxApi()
    completion = completion or FakeCompletion(PAGE_COMPLETION)
    github = FakeGitHubAdmin()
    repo = FakeGitDataApi({"README.md": "# template"})
    clock = FakeClock()
    pipeline = CodegenPipeline(
        completion=completion,
        applier=GitCommitApplier(repo),
        repo_url_for=lambda repo_id: f"https://github.com/{OWNER}/{repo_id}",
        options=CodegenOptions(model="claude-test"),
        reader=repo,
    )
    provisioner = ProjectProvisioner(
        registry=registry,
        sandbox=sandbox,
        pipeline=pipeline,
        github=github,
        github_owner=OWNER,
        sleeper=RecordingSleeper(),
        clock=clock,
        id_factory=lambda overview: project_id,
    )
    return PlatformHarness(provisioner, registry, sandbox, github, repo, completion, clock)


@dataclass(slots=True)
class SandboxHarness:
    provisioner: SandboxProvisioner
    supervisor: ProcessSupervisor
    runner: FakeRunner
    spawner: FakeSpawner
    github: FakeGitHubAdmin
    codegen: FakeChangeApplier
    sleeper: RecordingSleeper

    def scheduler(self) -> MaintenanceScheduler:
        return MaintenanceScheduler(self.supervisor)

    def finish(self) -> None:
        for handle in self.spawner.handles.values():
            handle.exit(0)


def _clone_url(project_id: str) -> str:
    return f"https://token@github.com/acme/{project_id}.git"


def build_sandbox(
    tmp_path: Path,
    *,
    github: FakeGitHubAdmin | None = None,
    codegen: FakeChangeApplier | None = None,
    lines: tuple[str, ...] = (),
    git: GitManager | None = None,
    clone_url_for: Callable[[str], str] | None = None,
) -> SandboxHarness:
    runner = FakeRunner()
    runner.hooks[("git", "clone")] = clone_creates_directory
    spawner = FakeSpawner(lines=lines)
    supervisor = ProcessSupervisor(
        projects_root=tmp_path / "projects",
        runner=runner,
        spawner=spawner,
        killer=FakeKiller(spawner),
        base_env={},
    )
    github = github or FakeGitHubAdmin()
    codegen = codegen or FakeChangeApplier(codegen_result("app/page.tsx"))
    sleeper = RecordingSleeper()
    provisioner = SandboxProvisioner(
        supervisor=supervisor,
        github=github,
        git=git or GitManager(runner),
        codegen=codegen,
        clone_url_for=clone_url_for or _clone_url,
        author_name="Athena",
        author_email="athena@example.com",
        runner=runner,
        sleeper=sleeper,
    )
    return SandboxHarness(provisioner, supervisor, runner, spawner, github, codegen, sleeper)
