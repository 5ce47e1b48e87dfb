"""File change operations produced by codegen and consumed by the committer."""

from __future__ import annotations

from pydantic import BaseModel

from athena.models.project import ChangeSummary


class FileChange(BaseModel):
    """A create/update (``content`` set) or a deletion (``remove=True``)."""

    path: str
    content: str | None = None
    remove: bool = False

    def summary(self) -> ChangeSummary:
        return ChangeSummary(
            path=self.path,
            action="deleted" if self.remove else "created/updated",
        )
