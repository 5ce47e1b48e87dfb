from __future__ import annotations

from pathlib import Path

import pytest

from athena.core.project_registry import ProjectRegistry
from athena.db.store import SQLiteStore
from athena.errors import NotFoundError
from athena.models.project import ChangeSummary, Project, ProjectStatus


def _project(project_id: str = "todo-app-12345") -> Project:
    return Project(id=project_id, title="Todo App", overview="A todo app", port=3001)


@pytest.mark.asyncio
async def test_store_is_a_flat_key_value_mapping(tmp_path: Path) -> None:
    store = SQLiteStore(tmp_path / "nested" / "athena.db")

    await store.put("a", '{"x": 1}')
    await store.put("b", '{"x": 2}')
    await store.put("a", '{"x": 3}')

    assert await store.get("a") == '{"x": 3}'
    assert await store.values() == ['{"x": 3}', '{"x": 2}']
    await store.delete("a")
    assert await store.get("a") is None


@pytest.mark.asyncio
async def test_registry_crud(tmp_path: Path) -> None:
    registry = ProjectRegistry(SQLiteStore(tmp_path / "athena.db"))
    await registry.put(_project())

    fetched = await registry.require("todo-app-12345")
    assert fetched.status is ProjectStatus.CREATING
    assert fetched.stack == "next-on-pages"
    assert fetched.deployment == "cloudflare"

    assert [project.id for project in await registry.list()] == ["todo-app-12345"]

    await registry.delete("todo-app-12345")
    assert await registry.get("todo-app-12345") is None
    with pytest.raises(NotFoundError):
        await registry.require("todo-app-12345")


@pytest.mark.asyncio
async def test_update_merges_fields(tmp_path: Path) -> None:
    registry = ProjectRegistry(SQLiteStore(tmp_path / "athena.db"))
    await registry.put(_project())

    updated = await registry.update(
        "todo-app-12345",
        status=ProjectStatus.READY,
        changes=[ChangeSummary(path="app/page.tsx", action="created/updated")],
    )

    assert updated is not None
    stored = await registry.require("todo-app-12345")
    assert stored.status is ProjectStatus.READY
    assert stored.changes[0].path == "app/page.tsx"
    assert stored.title == "Todo App"
    assert await registry.update("missing", status=ProjectStatus.ERROR) is None


def test_preview_is_gated_until_grace_period_passes() -> None:
    project = _project().model_copy(
        update={"status": ProjectStatus.CREATED, "created_timestamp": 1_000}
    )

    assert project.preview_available(now_ms=30_000, grace_seconds=60) is False
    assert project.preview_available(now_ms=61_000, grace_seconds=60) is True

    restarted = project.model_copy(update={"restart_timestamp": 100_000})
    assert restarted.preview_available(now_ms=120_000, grace_seconds=60) is False

    failed = project.model_copy(update={"status": ProjectStatus.ERROR})
    assert failed.preview_available(now_ms=10_000_000, grace_seconds=60) is False
