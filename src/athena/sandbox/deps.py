"""Sandbox supervisor dependency providers."""

from __future__ import annotations

from athena.clients.github import GitHubClient
from athena.config import get_settings
from athena.core.codegen import build_codegen_pipeline
from athena.core.git_manager import GitManager
from athena.core.maintenance import MaintenanceScheduler
from athena.core.process_supervisor import ProcessSupervisor
from athena.core.sandbox_provisioner import SandboxProvisioner

_SETTINGS = get_settings()
_GITHUB_CLIENT = GitHubClient(_SETTINGS.github_token, base_url=_SETTINGS.github_api_url)
_SUPERVISOR = ProcessSupervisor(
    projects_root=_SETTINGS.projects_root,
    memory_limit_mb=_SETTINGS.memory_limit_mb,
    npm_cache_dir=_SETTINGS.npm_cache_dir,
    memory_threshold_percent=_SETTINGS.memory_threshold_percent,
    orphan_max_age_seconds=_SETTINGS.orphan_max_age_seconds,
)
_PROVISIONER = SandboxProvisioner(
    supervisor=_SUPERVISOR,
    github=_GITHUB_CLIENT,
    git=GitManager(),
    # The sandbox applies the initial change itself, so nothing to notify.
    codegen=build_codegen_pipeline(_SETTINGS, _GITHUB_CLIENT),
    clone_url_for=_SETTINGS.clone_url,
    author_name=_SETTINGS.git_author_name,
    author_email=_SETTINGS.git_author_email,
    install_timeout_seconds=_SETTINGS.install_timeout_seconds,
    eviction_settle_seconds=_SETTINGS.eviction_settle_seconds,
    push_propagation_seconds=_SETTINGS.push_propagation_seconds,
    reconcile_delay_seconds=_SETTINGS.reconcile_delay_seconds,
)
_MAINTENANCE = MaintenanceScheduler(
    _SUPERVISOR,
    memory_check_interval_seconds=_SETTINGS.memory_check_interval_seconds,
    orphan_cleanup_interval_seconds=_SETTINGS.orphan_cleanup_interval_seconds,
)


def get_process_supervisor() -> ProcessSupervisor:
    return _SUPERVISOR


def get_sandbox_provisioner() -> SandboxProvisioner:
    return _PROVISIONER


def get_maintenance_scheduler() -> MaintenanceScheduler:
    return _MAINTENANCE
