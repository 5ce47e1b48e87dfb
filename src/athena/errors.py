"""Error taxonomy shared by both services.

Every error carries the HTTP status it maps to and a short machine-readable
code; the FastAPI handlers in ``athena.api.errors`` turn them into the JSON
envelope ``{success: false, error, message, details?}``.
"""

from __future__ import annotations


class AthenaError(Exception):
    """Base class for expected failures."""

    status_code: int = 500
    error: str = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, object]:
        return {"success": False, "error": self.error, "message": self.message}


class InternalError(AthenaError):
    """Unexpected failure."""


class ValidationError(AthenaError):
    """Malformed input; lists every violated rule, not just the first."""

    status_code = 400
    error = "validation_failed"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = list(details or [])

    def to_payload(self) -> dict[str, object]:
        payload = super().to_payload()
        payload["details"] = self.details
        return payload


class InvalidRepoUrl(ValidationError):
    error = "invalid_repo_url"


class NotFoundError(AthenaError):
    status_code = 404
    error = "not_found"


class UpstreamError(AthenaError):
    """Non-2xx (or no response at all) from GitHub, the sandbox or the LLM."""

    status_code = 502
    error = "upstream_error"

    def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body

    def to_payload(self) -> dict[str, object]:
        payload = super().to_payload()
        payload["upstreamStatus"] = self.status
        return payload


class BranchLookupFailed(UpstreamError):
    error = "branch_lookup_failed"


class BlobCreationFailed(UpstreamError):
    error = "blob_creation_failed"


class TreeCreationFailed(UpstreamError):
    error = "tree_creation_failed"


class CommitCreationFailed(UpstreamError):
    error = "commit_creation_failed"


class RefUpdateFailed(UpstreamError):
    error = "ref_update_failed"


class CompletionTimeout(UpstreamError):
    status_code = 504
    error = "completion_timeout"


class EmptyCompletion(AthenaError):
    status_code = 502
    error = "empty_completion"


class NoChangesFound(AthenaError):
    status_code = 422
    error = "no_changes_found"


class PortsExhausted(AthenaError):
    status_code = 503
    error = "ports_exhausted"


class CodegenFailed(AthenaError):
    """Single error surfaced by the codegen pipeline; ``cause`` is kept."""

    error = "codegen_failed"

    def __init__(self, message: str, cause: Exception) -> None:
        super().__init__(message)
        self.cause = cause
        if isinstance(cause, AthenaError):
            self.status_code = cause.status_code

    def to_payload(self) -> dict[str, object]:
        payload = super().to_payload()
        if isinstance(self.cause, AthenaError):
            payload["cause"] = self.cause.error
        else:
            payload["cause"] = type(self.cause).__name__
        return payload


class ProvisioningError(AthenaError):
    """A fatal step of the sandbox provisioning state machine failed."""

    error = "provisioning_failed"

    def __init__(self, message: str, step: str) -> None:
        super().__init__(message)
        self.step = step

    def to_payload(self) -> dict[str, object]:
        payload = super().to_payload()
        payload["step"] = self.step
        return payload
