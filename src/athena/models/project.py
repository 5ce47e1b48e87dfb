"""Project domain models."""

from __future__ import annotations

import time
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


def _now_ms() -> int:
    return int(time.time() * 1000)


class ProjectStatus(str, Enum):
    """Lifecycle status for a project record."""

    CREATING = "creating"
    CREATED = "created"
    READY = "ready"
    RESTARTING = "restarting"
    ERROR = "error"


class ChangeSummary(BaseModel):
    """One applied file operation, as reported back to callers."""

    path: str
    action: str


class Project(BaseModel):
    """Durable per-project metadata held by the project registry."""

    id: str
    title: str
    overview: str
    stack: str = "next-on-pages"
    deployment: str = "cloudflare"
    port: int
    status: ProjectStatus = ProjectStatus.CREATING
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    created_timestamp: int = Field(default_factory=_now_ms)
    restart_timestamp: int | None = None
    last_restarted: datetime | None = None
    last_change: int | None = None
    error: str | None = None
    changes: list[ChangeSummary] = Field(default_factory=list)
    sandbox: dict[str, object] | None = None

    def preview_available(self, now_ms: int, grace_seconds: int) -> bool:
        """Whether the dev server has had ``grace_seconds`` to come up."""
        if self.status in (ProjectStatus.CREATING, ProjectStatus.ERROR):
            return False
        started = max(self.created_timestamp, self.restart_timestamp or 0)
        return now_ms - started >= grace_seconds * 1000
