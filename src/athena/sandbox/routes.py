"""Sandbox supervisor routes."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status

from athena.core.process_supervisor import ProcessSupervisor
from athena.core.sandbox_provisioner import SandboxProvisioner
from athena.sandbox.deps import get_process_supervisor, get_sandbox_provisioner
from athena.sandbox.schemas import (
    LaunchResponse,
    ProjectLogsResponse,
    RestartProjectRequest,
    RunningProjectsResponse,
    SandboxActionResponse,
)

router = APIRouter(tags=["sandbox"])


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "OK", "timestamp": datetime.now(UTC).isoformat()}


@router.get("/projects", response_model=RunningProjectsResponse)
async def list_projects(
    supervisor: ProcessSupervisor = Depends(get_process_supervisor),
) -> RunningProjectsResponse:
    return RunningProjectsResponse(
        projects=[entry.to_payload() for entry in supervisor.running()]
    )


@router.post(
    "/create-project", status_code=status.HTTP_201_CREATED, response_model=LaunchResponse
)
async def create_project(
    payload: dict[str, Any] = Body(...),
    provisioner: SandboxProvisioner = Depends(get_sandbox_provisioner),
) -> LaunchResponse:
    run = await provisioner.create_project(payload)
    return LaunchResponse.from_run(
        run,
        message=f"Project '{run.project_id}' created and started successfully",
        mode="SOLO_MODE",
    )


@router.post("/stop-project/{project_id}", response_model=SandboxActionResponse)
async def stop_project(
    project_id: str,
    supervisor: ProcessSupervisor = Depends(get_process_supervisor),
) -> SandboxActionResponse:
    supervisor.stop(project_id)
    return SandboxActionResponse(message=f"Project '{project_id}' stopped successfully")


@router.post("/pull-changes/{project_id}", response_model=SandboxActionResponse)
async def pull_changes(
    project_id: str,
    provisioner: SandboxProvisioner = Depends(get_sandbox_provisioner),
) -> SandboxActionResponse:
    await provisioner.pull_changes(project_id)
    return SandboxActionResponse(
        message=f"Latest changes pulled successfully for project '{project_id}'"
    )


@router.post("/restart-project/{project_id}", response_model=LaunchResponse)
async def restart_project(
    project_id: str,
    request: RestartProjectRequest,
    provisioner: SandboxProvisioner = Depends(get_sandbox_provisioner),
) -> LaunchResponse:
    run = await provisioner.restart_project(project_id, request.port)
    return LaunchResponse.from_run(
        run,
        message=f"Project '{project_id}' restarted successfully",
        mode="RESTART_MODE",
    )


@router.get("/projects/{project_id}/logs", response_model=ProjectLogsResponse)
async def project_logs(
    project_id: str,
    limit: int | None = Query(default=None, ge=1),
    supervisor: ProcessSupervisor = Depends(get_process_supervisor),
) -> ProjectLogsResponse:
    return ProjectLogsResponse(project_id=project_id, logs=supervisor.logs(project_id, limit))
