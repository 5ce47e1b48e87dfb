"""Running-set ownership and host cleanup for the sandbox supervisor."""

from __future__ import annotations

import asyncio
import os
import shutil
import signal
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from athena.core.processes import ProcessHandle, Spawner, SupervisedProcess, spawn_detached
from athena.core.shell import CommandError, CommandRunner, run_command
from athena.errors import InternalError, NotFoundError
from athena.logging_config import get_logger
from athena.models.runtime import RunningProjectEntry

logger = get_logger(__name__)

type Killer = Callable[[int, int], None]

EVICTION_PATTERNS = ("npm run dev", "next dev", "node.*server")
ORPHAN_PATTERNS = ("npm run dev", "next dev")
DEV_SERVER_COMMAND = ["npm", "run", "dev"]
MAX_RUNNING = 1


@dataclass(slots=True)
class _Slot:
    entry: RunningProjectEntry
    process: SupervisedProcess


class ProcessRegistry:
    """Single-owner table of live dev servers. Holds at most one entry."""

    def __init__(self) -> None:
        self._slots: dict[str, _Slot] = {}

    def __len__(self) -> int:
        return len(self._slots)

    def list(self) -> list[RunningProjectEntry]:
        return [slot.entry for slot in self._slots.values()]

    def get(self, project_id: str) -> SupervisedProcess | None:
        slot = self._slots.get(project_id)
        return slot.process if slot else None

    def entry(self, project_id: str) -> RunningProjectEntry | None:
        slot = self._slots.get(project_id)
        return slot.entry if slot else None

    def insert(self, entry: RunningProjectEntry, process: SupervisedProcess) -> None:
        self._check_invariant()
        if self._slots:
            msg = f"Cannot register {entry.project_id}: {len(self._slots)} project(s) still running"
            raise InternalError(msg)
        self._slots[entry.project_id] = _Slot(entry=entry, process=process)

    def evict_all(self) -> list[tuple[RunningProjectEntry, SupervisedProcess]]:
        self._check_invariant()
        evicted = [(slot.entry, slot.process) for slot in self._slots.values()]
        self._slots.clear()
        return evicted

    def remove_by_exit(self, project_id: str, pid: int) -> bool:
        """Drop ``project_id`` only if it is still the same process."""
        self._check_invariant()
        slot = self._slots.get(project_id)
        if slot is None or slot.entry.pid != pid:
            return False
        del self._slots[project_id]
        return True

    def _check_invariant(self) -> None:
        if len(self._slots) > MAX_RUNNING:
            msg = f"Running-set holds {len(self._slots)} entries; at most {MAX_RUNNING} allowed"
            raise InternalError(msg)


class ProcessSupervisor:
    """Spawns, signals and cleans up after dev-server processes on this host."""

    def __init__(
        self,
        *,
        projects_root: Path,
        registry: ProcessRegistry | None = None,
        runner: CommandRunner = run_command,
        spawner: Spawner = spawn_detached,
        killer: Killer = os.killpg,
        memory_limit_mb: int = 512,
        npm_cache_dir: str = "/tmp/npm-cache",
        memory_threshold_percent: float = 80.0,
        orphan_max_age_seconds: float = 7200.0,
        base_env: Mapping[str, str] | None = None,
    ) -> None:
        self.projects_root = projects_root
        self.registry = registry or ProcessRegistry()
        self._run = runner
        self._spawn = spawner
        self._kill = killer
        self._memory_limit_mb = memory_limit_mb
        self._npm_cache_dir = npm_cache_dir
        self._memory_threshold_percent = memory_threshold_percent
        self._orphan_max_age_seconds = orphan_max_age_seconds
        self._base_env = dict(base_env) if base_env is not None else None

    def project_path(self, project_id: str) -> Path:
        return self.projects_root / project_id

    def running(self) -> list[RunningProjectEntry]:
        return self.registry.list()

    def evict_all(self) -> list[str]:
        """SIGKILL every registered process group and clear the running-set.

        Evicted working directories are left for the caller to deal with.
        Kill failures are expected for stale pids and are only logged.
        """
        evicted: list[str] = []
        for entry, process in self.registry.evict_all():
            process.keep_workspace = True
            self._signal(process, signal.SIGKILL)
            evicted.append(entry.project_id)
            logger.info("project_evicted", project_id=entry.project_id, pid=entry.pid)
        return evicted

    async def launch(self, project_id: str, port: int) -> RunningProjectEntry:
        """Start the dev server and make it the sole running-set entry."""
        handle = await self._spawn(
            list(DEV_SERVER_COMMAND), self.project_path(project_id), self._dev_server_env(port)
        )
        # No await between eviction and insert: the table never holds two entries.
        self.evict_all()
        return self._register(project_id, port, handle)

    def stop(self, project_id: str) -> RunningProjectEntry:
        entry = self.registry.entry(project_id)
        process = self.registry.get(project_id)
        if entry is None or process is None:
            msg = f"No running project found with ID '{project_id}'"
            raise NotFoundError(msg)
        self._signal(process, signal.SIGTERM)
        self.registry.remove_by_exit(project_id, entry.pid)
        logger.info("project_stop_requested", project_id=project_id, pid=entry.pid)
        return entry

    def logs(self, project_id: str, limit: int | None = None) -> list[str]:
        process = self.registry.get(project_id)
        if process is None:
            msg = f"Project {project_id} is not running"
            raise NotFoundError(msg)
        return process.logs(limit)

    async def kill_stray_processes(self, patterns: tuple[str, ...] = EVICTION_PATTERNS) -> None:
        for pattern in patterns:
            await self._run_quietly("pkill", "-9", "-f", pattern)

    async def purge_workspaces(self) -> None:
        if not self.projects_root.exists():
            return
        for child in self.projects_root.iterdir():
            await self._remove_tree(child)
        logger.info("workspaces_purged", root=str(self.projects_root))

    async def clear_package_cache(self) -> None:
        await self._run_quietly("npm", "cache", "clean", "--force")

    async def cleanup_orphans(self) -> list[Path]:
        """Kill stray dev servers and delete stale project directories.

        Pattern kills are skipped while a project is registered, since they
        cannot tell the live server apart from strays.
        """
        live = {entry.project_id for entry in self.registry.list()}
        if not live:
            for pattern in ORPHAN_PATTERNS:
                await self._run_quietly("pkill", "-f", pattern)

        removed: list[Path] = []
        if not self.projects_root.exists():
            return removed
        cutoff = time.time() - self._orphan_max_age_seconds
        for child in self.projects_root.iterdir():
            if child.name in live or not child.is_dir():
                continue
            if child.stat().st_mtime < cutoff:
                await self._remove_tree(child)
                removed.append(child)
        logger.info("orphan_cleanup_finished", removed=len(removed), live=sorted(live))
        return removed

    async def memory_usage_percent(self) -> float:
        result = await self._run("free", "-m")
        for line in result.output.splitlines():
            if line.startswith("Mem:"):
                fields = line.split()
                total, used = int(fields[1]), int(fields[2])
                return used / total * 100 if total else 0.0
        msg = f"Unexpected free output: {result.output!r}"
        raise ValueError(msg)

    async def check_resources(self) -> float | None:
        try:
            percent = await self.memory_usage_percent()
        except (CommandError, OSError, ValueError) as exc:
            logger.warning("memory_sample_failed", error=str(exc))
            return None
        if percent > self._memory_threshold_percent:
            logger.warning(
                "memory_pressure",
                percent=round(percent, 1),
                threshold=self._memory_threshold_percent,
            )
            await self.cleanup_orphans()
        return percent

    def _register(self, project_id: str, port: int, handle: ProcessHandle) -> RunningProjectEntry:
        process = SupervisedProcess(project_id, handle)
        entry = RunningProjectEntry(
            project_id=project_id,
            port=port,
            start_time=datetime.now(UTC).isoformat(),
            pid=handle.pid,
        )
        self.registry.insert(entry, process)
        process.on_exit(self._handle_exit)
        process.watch()
        logger.info("dev_server_started", project_id=project_id, port=port, pid=handle.pid)
        return entry

    async def _handle_exit(self, process: SupervisedProcess) -> None:
        self.registry.remove_by_exit(process.project_id, process.pid)
        if process.keep_workspace or self.registry.get(process.project_id) is not None:
            return
        await self._remove_tree(self.project_path(process.project_id))
        logger.info("workspace_removed", project_id=process.project_id)

    def _signal(self, process: SupervisedProcess, sig: signal.Signals) -> None:
        process.mark_killed(sig)
        try:
            self._kill(process.pid, sig)
        except OSError as exc:
            logger.warning(
                "process_signal_failed",
                project_id=process.project_id,
                pid=process.pid,
                signal=sig.name,
                error=str(exc),
            )

    def _dev_server_env(self, port: int) -> dict[str, str]:
        env = dict(self._base_env if self._base_env is not None else os.environ)
        env.update(
            {
                "PORT": str(port),
                "NODE_OPTIONS": f"--max-old-space-size={self._memory_limit_mb}",
                "npm_config_cache": self._npm_cache_dir,
            }
        )
        return env

    async def _run_quietly(self, *command: str) -> None:
        try:
            await self._run(*command, check=False)
        except (CommandError, OSError) as exc:
            logger.warning("host_command_failed", command=" ".join(command), error=str(exc))

    async def _remove_tree(self, path: Path) -> None:
        if path.is_dir():
            await asyncio.to_thread(shutil.rmtree, path, True)
        else:
            path.unlink(missing_ok=True)
