"""Typed access to project records in the key-value store."""

from __future__ import annotations

from typing import Any

from athena.db.store import SQLiteStore
from athena.errors import NotFoundError
from athena.models.project import Project


class ProjectRegistry:
    """Single source of truth for project metadata."""

    def __init__(self, store: SQLiteStore) -> None:
        self._store = store

    async def put(self, project: Project) -> Project:
        await self._store.put(project.id, project.model_dump_json())
        return project

    async def get(self, project_id: str) -> Project | None:
        raw = await self._store.get(project_id)
        if raw is None:
            return None
        return Project.model_validate_json(raw)

    async def require(self, project_id: str) -> Project:
        project = await self.get(project_id)
        if project is None:
            msg = f"No project found with ID: {project_id}"
            raise NotFoundError(msg)
        return project

    async def update(self, project_id: str, **fields: Any) -> Project | None:
        """Merge ``fields`` into the stored record; ``None`` if it is gone."""
        project = await self.get(project_id)
        if project is None:
            return None
        updated = Project.model_validate(project.model_dump() | fields)
        return await self.put(updated)

    async def delete(self, project_id: str) -> None:
        await self._store.delete(project_id)

    async def list(self) -> list[Project]:
        return [Project.model_validate_json(raw) for raw in await self._store.values()]
