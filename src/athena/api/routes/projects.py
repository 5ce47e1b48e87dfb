"""Project routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from athena.api.deps import get_project_provisioner
from athena.api.schemas.projects import (
    CreateProjectRequest,
    CreateProjectResponse,
    ProjectActionResponse,
    ProjectDetailResponse,
    ProjectsResponse,
    RunningProjectsResponse,
)
from athena.core.project_provisioner import ProjectProvisioner

router = APIRouter(prefix="/api/v1/projects", tags=["projects"])


@router.get("", response_model=ProjectsResponse)
async def list_projects(
    provisioner: ProjectProvisioner = Depends(get_project_provisioner),
) -> ProjectsResponse:
    return ProjectsResponse(items=await provisioner.list_projects())


@router.post("", status_code=status.HTTP_201_CREATED, response_model=CreateProjectResponse)
async def create_project(
    request: CreateProjectRequest,
    provisioner: ProjectProvisioner = Depends(get_project_provisioner),
) -> CreateProjectResponse:
    created = await provisioner.create_project(
        request.overview, stack=request.stack, deployment=request.deployment
    )
    return CreateProjectResponse(
        project_id=created.project_id,
        title=created.title,
        status=created.status,
        sandbox=created.sandbox,
    )


@router.get("/running", response_model=RunningProjectsResponse)
async def list_running_projects(
    provisioner: ProjectProvisioner = Depends(get_project_provisioner),
) -> RunningProjectsResponse:
    return RunningProjectsResponse(projects=await provisioner.list_running())


@router.get("/{project_id}", response_model=ProjectDetailResponse)
async def get_project(
    project_id: str,
    provisioner: ProjectProvisioner = Depends(get_project_provisioner),
) -> ProjectDetailResponse:
    project, preview_available = await provisioner.get_project(project_id)
    return ProjectDetailResponse(project=project, preview_available=preview_available)


@router.delete("/{project_id}", response_model=ProjectActionResponse)
async def delete_project(
    project_id: str,
    provisioner: ProjectProvisioner = Depends(get_project_provisioner),
) -> ProjectActionResponse:
    await provisioner.delete_project(project_id)
    return ProjectActionResponse(message="Project deleted successfully")


@router.post("/{project_id}/restart", response_model=ProjectActionResponse)
async def restart_project(
    project_id: str,
    provisioner: ProjectProvisioner = Depends(get_project_provisioner),
) -> ProjectActionResponse:
    payload = await provisioner.restart_project(project_id)
    return ProjectActionResponse(message="Project restarted successfully", data=payload)


@router.post("/{project_id}/stop")
async def stop_project(
    project_id: str,
    provisioner: ProjectProvisioner = Depends(get_project_provisioner),
) -> dict[str, object]:
    return await provisioner.stop_project(project_id)
