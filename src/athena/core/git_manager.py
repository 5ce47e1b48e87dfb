"""Git operations on sandbox working copies."""

from __future__ import annotations

from pathlib import Path

from athena.core.shell import CommandResult, CommandRunner, run_command


class GitManager:
    """Thin async wrapper around the git CLI."""

    def __init__(self, runner: CommandRunner = run_command) -> None:
        self._run = runner

    async def clone(self, remote_url: str, destination: Path) -> CommandResult:
        destination.parent.mkdir(parents=True, exist_ok=True)
        return await self._run("git", "clone", remote_url, str(destination))

    async def configure_identity(self, project_path: Path, name: str, email: str) -> None:
        await self._git(project_path, "config", "user.name", name)
        await self._git(project_path, "config", "user.email", email)

    async def commit_all(self, project_path: Path, message: str) -> CommandResult:
        await self._git(project_path, "add", ".")
        return await self._git(project_path, "commit", "-m", message)

    async def push(
        self, project_path: Path, remote: str = "origin", refspec: str = "HEAD:main"
    ) -> CommandResult:
        return await self._git(project_path, "push", remote, refspec)

    async def sync_to_remote(
        self, project_path: Path, remote: str = "origin", branch: str = "main"
    ) -> CommandResult:
        """Fetch and hard-reset so the working copy matches the remote branch."""
        await self._git(project_path, "fetch", remote)
        return await self._git(project_path, "reset", "--hard", f"{remote}/{branch}")

    async def pull(
        self, project_path: Path, remote: str = "origin", branch: str = "main"
    ) -> CommandResult:
        return await self._git(project_path, "pull", remote, branch)

    async def _git(self, project_path: Path, *args: str) -> CommandResult:
        return await self._run("git", *args, cwd=project_path)
