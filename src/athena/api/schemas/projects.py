"""Project API schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from athena.models.project import Project, ProjectStatus


class CreateProjectRequest(BaseModel):
    """Payload for creating a project from an app idea."""

    overview: str
    stack: str | None = None
    deployment: str | None = None


class CreateProjectResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(alias="projectId")
    title: str
    status: ProjectStatus
    sandbox: dict[str, Any] = Field(default_factory=dict)


class ProjectsResponse(BaseModel):
    """Collection response for projects."""

    items: list[Project]


class RunningProjectsResponse(BaseModel):
    projects: list[dict[str, Any]]


class ProjectDetailResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    project: Project
    preview_available: bool = Field(alias="previewAvailable")


class ProjectActionResponse(BaseModel):
    success: bool = True
    message: str
    data: dict[str, Any] | None = None
