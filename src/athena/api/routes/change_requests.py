"""Change request and codegen preview routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from athena.api.deps import get_project_provisioner
from athena.api.schemas.change_requests import (
    ChangeRequestBody,
    ChangeRequestResponse,
    CodegenPreviewRequest,
    CodegenPreviewResponse,
)
from athena.core.project_provisioner import ProjectProvisioner

router = APIRouter(prefix="/api/v1/projects/{project_id}", tags=["change-requests"])


@router.post("/change-requests", response_model=ChangeRequestResponse)
async def apply_change_request(
    project_id: str,
    request: ChangeRequestBody,
    provisioner: ProjectProvisioner = Depends(get_project_provisioner),
) -> ChangeRequestResponse:
    result = await provisioner.apply_change_request(
        project_id, request.change_request, request.project_context
    )
    return ChangeRequestResponse(
        message=f"Successfully applied {len(result.changes)} changes to {project_id}",
        commit_sha=result.commit_sha,
        changes=[change.summary() for change in result.changes],
    )


@router.post("/codegen/preview", response_model=CodegenPreviewResponse)
async def preview_codegen(
    project_id: str,
    request: CodegenPreviewRequest,
    provisioner: ProjectProvisioner = Depends(get_project_provisioner),
) -> CodegenPreviewResponse:
    preview = await provisioner.preview_codegen(project_id, request.overview)
    return CodegenPreviewResponse(
        codegen=preview.text,
        changes=[change.summary() for change in preview.changes],
    )
