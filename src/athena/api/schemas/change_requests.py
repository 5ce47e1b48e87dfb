"""Change request and codegen preview schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from athena.models.project import ChangeSummary


class ChangeRequestBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    change_request: str = Field(alias="changeRequest")
    project_context: str = Field(default="", alias="projectContext")


class ChangeRequestResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    commit_sha: str = Field(alias="commitSha")
    changes: list[ChangeSummary]


class CodegenPreviewRequest(BaseModel):
    overview: str


class CodegenPreviewResponse(BaseModel):
    codegen: str
    changes: list[ChangeSummary]
