"""Periodic host housekeeping for the sandbox supervisor."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from athena.core.initial_codegen import Sleeper
from athena.core.process_supervisor import ProcessSupervisor
from athena.logging_config import get_logger

logger = get_logger(__name__)


class MaintenanceScheduler:
    """Runs the memory check and the orphan sweep on fixed intervals.

    One orphan sweep also runs as soon as the scheduler starts.
    """

    def __init__(
        self,
        supervisor: ProcessSupervisor,
        *,
        memory_check_interval_seconds: float = 60.0,
        orphan_cleanup_interval_seconds: float = 300.0,
        sleeper: Sleeper | None = None,
    ) -> None:
        self._supervisor = supervisor
        self._memory_interval = memory_check_interval_seconds
        self._orphan_interval = orphan_cleanup_interval_seconds
        self._sleep = sleeper or asyncio.sleep
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def start(self) -> None:
        if self.running:
            return
        await self._guarded("initial_cleanup", self._supervisor.cleanup_orphans)
        self._tasks = [
            asyncio.create_task(
                self._loop(
                    "memory_check", self._memory_interval, self._supervisor.check_resources
                ),
                name="maintenance:memory",
            ),
            asyncio.create_task(
                self._loop(
                    "orphan_cleanup", self._orphan_interval, self._supervisor.cleanup_orphans
                ),
                name="maintenance:orphans",
            ),
        ]
        logger.info(
            "maintenance_started",
            memory_interval=self._memory_interval,
            orphan_interval=self._orphan_interval,
        )

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("maintenance_stopped")

    async def _loop(
        self, name: str, interval: float, action: Callable[[], Awaitable[object]]
    ) -> None:
        while True:
            await self._sleep(interval)
            await self._guarded(name, action)

    async def _guarded(self, name: str, action: Callable[[], Awaitable[object]]) -> None:
        try:
            await action()
        except Exception as exc:  # noqa: BLE001
            logger.error("maintenance_task_failed", task=name, error=str(exc))
