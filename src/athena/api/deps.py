"""Shared API dependency providers."""

from __future__ import annotations

from athena.clients.github import GitHubClient
from athena.clients.sandbox import SandboxClient
from athena.config import get_settings
from athena.core.codegen import build_codegen_pipeline
from athena.core.project_provisioner import ProjectProvisioner
from athena.core.project_registry import ProjectRegistry
from athena.db.store import SQLiteStore

_SETTINGS = get_settings()
_GITHUB_CLIENT = GitHubClient(_SETTINGS.github_token, base_url=_SETTINGS.github_api_url)
_SANDBOX_CLIENT = SandboxClient(
    _SETTINGS.sandbox_url, timeout_seconds=_SETTINGS.sandbox_timeout_seconds
)
_REGISTRY = ProjectRegistry(SQLiteStore(db_path=_SETTINGS.registry_db_path))
_PIPELINE = build_codegen_pipeline(_SETTINGS, _GITHUB_CLIENT, _SANDBOX_CLIENT.pull_changes)
_PROVISIONER = ProjectProvisioner(
    registry=_REGISTRY,
    sandbox=_SANDBOX_CLIENT,
    pipeline=_PIPELINE,
    github=_GITHUB_CLIENT,
    github_owner=_SETTINGS.github_owner,
    port_base=_SETTINGS.port_base,
    port_ceiling=_SETTINGS.port_ceiling,
    codegen_attempts=_SETTINGS.initial_codegen_attempts,
    codegen_backoff_seconds=_SETTINGS.initial_codegen_backoff_seconds,
    preview_grace_seconds=_SETTINGS.preview_grace_seconds,
)


def get_project_provisioner() -> ProjectProvisioner:
    return _PROVISIONER
