"""Sandbox supervisor API schemas."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from athena.core.sandbox_provisioner import PORT_MAX, PORT_MIN, ProvisionRun
from athena.errors import InternalError


class RestartProjectRequest(BaseModel):
    port: int = Field(ge=PORT_MIN, le=PORT_MAX)


class LaunchResponse(BaseModel):
    """Reply to create-project and restart-project."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    project_id: str = Field(alias="projectId")
    port: int
    start_time: str = Field(alias="startTime")
    mode: Literal["SOLO_MODE", "RESTART_MODE"]
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def from_run(
        cls, run: ProvisionRun, *, message: str, mode: Literal["SOLO_MODE", "RESTART_MODE"]
    ) -> LaunchResponse:
        if run.entry is None:
            msg = f"Provisioning of {run.project_id} finished without a running entry"
            raise InternalError(msg)
        return cls(
            message=message,
            project_id=run.entry.project_id,
            port=run.entry.port,
            start_time=run.entry.start_time,
            mode=mode,
            warnings=run.warnings,
        )


class RunningProjectsResponse(BaseModel):
    projects: list[dict[str, str | int]]


class SandboxActionResponse(BaseModel):
    success: bool = True
    message: str


class ProjectLogsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(alias="projectId")
    logs: list[str]
