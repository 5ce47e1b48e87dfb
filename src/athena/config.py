"""Runtime settings for the platform API and the sandbox supervisor."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven configuration shared by both services."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    service_name: str = "athena"
    log_format: Literal["json", "console"] = "console"
    log_level: str = "INFO"

    # Git hosting service identity
    github_token: str = ""
    github_owner: str = "athena-service-account"
    github_api_url: str = "https://api.github.com"
    github_web_url: str = "https://github.com"
    git_author_name: str = "Athena AI Service Account"
    git_author_email: str = "athena-service@example.com"

    # Text-completion backend
    anthropic_api_key: str = ""
    completion_model: str = "claude-sonnet-4-5"
    completion_temperature: float = 0.7
    completion_max_tokens: int = Field(default=4000, ge=1)
    completion_top_p: float | None = None
    completion_timeout_seconds: float = 120.0
    repository_context_chars: int = Field(
        default=60_000,
        ge=0,
        description="Upper bound on repository text embedded in codegen prompts",
    )

    # Platform -> sandbox
    sandbox_url: str = "http://localhost:3000"
    sandbox_timeout_seconds: float = 600.0
    preview_grace_seconds: int = 60
    registry_db_path: Path = Path(".athena/athena.db")

    # Initial codegen automation
    initial_codegen_attempts: int = Field(default=5, ge=1)
    initial_codegen_backoff_seconds: float = 5.0

    # Sandbox host
    sandbox_host: str = "0.0.0.0"
    sandbox_port: int = 3000
    projects_root: Path = Path("/home/ubuntu/projects")
    port_base: int = 3001
    port_ceiling: int = 5000
    memory_limit_mb: int = 512
    npm_cache_dir: str = "/tmp/npm-cache"
    install_timeout_seconds: float = 120.0
    eviction_settle_seconds: float = 2.0
    push_propagation_seconds: float = 5.0
    reconcile_delay_seconds: float = 3.0

    # Background maintenance
    maintenance_enabled: bool = True
    memory_check_interval_seconds: float = 60.0
    memory_threshold_percent: float = 80.0
    orphan_cleanup_interval_seconds: float = 300.0
    orphan_max_age_seconds: float = 7200.0

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = value.upper()
        if upper not in valid_levels:
            msg = f"Invalid log level: {value}. Must be one of {sorted(valid_levels)}"
            raise ValueError(msg)
        return upper

    def repo_url(self, project_id: str) -> str:
        """Browser URL of a project's repository under the service identity."""
        return f"{self.github_web_url}/{self.github_owner}/{project_id}.git"

    def clone_url(self, project_id: str) -> str:
        """Repository URL with the service token embedded, for git on the sandbox host."""
        if not self.github_token:
            return self.repo_url(project_id)
        scheme, _, rest = self.github_web_url.partition("://")
        return f"{scheme}://{self.github_token}@{rest}/{self.github_owner}/{project_id}.git"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
