from __future__ import annotations

import asyncio

import pytest

from athena.core.maintenance import MaintenanceScheduler
from tests.support.fakes import RecordingSleeper


class _FakeSupervisor:
    def __init__(self) -> None:
        self.cleanups = 0
        self.checks = 0

    async def cleanup_orphans(self) -> list[object]:
        self.cleanups += 1
        return []

    async def check_resources(self) -> float | None:
        self.checks += 1
        raise RuntimeError("free exploded")


@pytest.mark.asyncio
async def test_scheduler_sweeps_once_then_runs_both_loops() -> None:
    supervisor = _FakeSupervisor()
    sleeper = RecordingSleeper()
    scheduler = MaintenanceScheduler(
        supervisor,  # type: ignore[arg-type]
        memory_check_interval_seconds=60,
        orphan_cleanup_interval_seconds=300,
        sleeper=sleeper,
    )

    await scheduler.start()
    assert supervisor.cleanups == 1
    assert scheduler.running

    for _ in range(5):
        await asyncio.sleep(0)
    await scheduler.stop()

    assert not scheduler.running
    assert supervisor.checks >= 1
    assert supervisor.cleanups >= 2
    assert {60, 300} <= set(sleeper.delays)


@pytest.mark.asyncio
async def test_start_is_idempotent_while_running() -> None:
    supervisor = _FakeSupervisor()
    scheduler = MaintenanceScheduler(supervisor)  # type: ignore[arg-type]

    await scheduler.start()
    await scheduler.start()
    await scheduler.stop()

    assert supervisor.cleanups == 1
    assert supervisor.checks == 0
