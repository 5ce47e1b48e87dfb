"""Supervised dev-server processes with an observable lifecycle."""

from __future__ import annotations

import asyncio
import inspect
from collections import deque
from collections.abc import Awaitable, Callable, Mapping
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Protocol

from athena.logging_config import get_logger

logger = get_logger(__name__)


class ProcessLifecycle(str, Enum):
    STARTED = "started"
    EXITED = "exited"
    KILLED = "killed"


class OutputStream(Protocol):
    async def readline(self) -> bytes: ...


class ProcessHandle(Protocol):
    """The slice of ``asyncio.subprocess.Process`` the supervisor relies on."""

    @property
    def pid(self) -> int: ...

    @property
    def stdout(self) -> OutputStream | None: ...

    async def wait(self) -> int: ...


type Spawner = Callable[[list[str], Path, Mapping[str, str]], Awaitable[ProcessHandle]]
type ExitCallback = Callable[[SupervisedProcess], Awaitable[None] | None]


class SupervisedProcess:
    """Wraps one detached process, buffering its output and reporting its exit.

    ``state`` moves from ``started`` to ``exited`` on a normal exit or to
    ``killed`` when the supervisor signalled it first, or the exit code is a
    negative signal number.
    """

    def __init__(
        self,
        project_id: str,
        handle: ProcessHandle,
        *,
        max_log_lines: int = 500,
    ) -> None:
        self.project_id = project_id
        self.handle = handle
        self.started_at = datetime.now(UTC)
        self.state = ProcessLifecycle.STARTED
        self.returncode: int | None = None
        self.kill_signal: int | None = None
        self.keep_workspace = False
        self._logs: deque[str] = deque(maxlen=max_log_lines)
        self._callbacks: list[ExitCallback] = []
        self._watcher: asyncio.Task[None] | None = None
        self._exited = asyncio.Event()

    @property
    def pid(self) -> int:
        return self.handle.pid

    @property
    def running(self) -> bool:
        return self.state is ProcessLifecycle.STARTED

    def on_exit(self, callback: ExitCallback) -> None:
        self._callbacks.append(callback)

    def watch(self) -> asyncio.Task[None]:
        if self._watcher is None:
            self._watcher = asyncio.create_task(
                self._watch(), name=f"dev-server:{self.project_id}:{self.pid}"
            )
        return self._watcher

    def mark_killed(self, sig: int) -> None:
        self.kill_signal = sig

    def logs(self, limit: int | None = None) -> list[str]:
        entries = list(self._logs)
        if limit is None or limit <= 0:
            return entries
        return entries[-limit:]

    async def wait_exited(self) -> None:
        """Return once the process is gone and its exit callbacks have run."""
        await self._exited.wait()

    async def _watch(self) -> None:
        drain = asyncio.create_task(self._drain())
        returncode = await self.handle.wait()
        await drain
        self.returncode = returncode
        if self.kill_signal is not None or returncode < 0:
            self.state = ProcessLifecycle.KILLED
            if self.kill_signal is None:
                self.kill_signal = -returncode
        else:
            self.state = ProcessLifecycle.EXITED
        logger.info(
            "dev_server_exited",
            project_id=self.project_id,
            pid=self.pid,
            state=self.state.value,
            returncode=returncode,
        )
        for callback in self._callbacks:
            try:
                outcome = callback(self)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as exc:  # noqa: BLE001
                logger.error("exit_callback_failed", project_id=self.project_id, error=str(exc))
        self._exited.set()

    async def _drain(self) -> None:
        stream = self.handle.stdout
        if stream is None:
            return
        log = logger.bind(project_id=self.project_id)
        while True:
            line = await stream.readline()
            if not line:
                return
            text = line.decode("utf-8", errors="replace").rstrip()
            self._logs.append(text)
            log.debug("dev_server_output", line=text)


async def spawn_detached(
    command: list[str], cwd: Path, env: Mapping[str, str]
) -> ProcessHandle:
    """Start ``command`` in its own session so it survives the request."""
    return await asyncio.create_subprocess_exec(
        *command,
        cwd=cwd,
        env=dict(env),
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
        start_new_session=True,
    )
