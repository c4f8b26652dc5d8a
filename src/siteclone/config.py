"""Application configuration contract."""

import tempfile
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from siteclone.errors import ConfigError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field(alias="APP_ENV", default="dev")
    log_level: str = Field(alias="LOG_LEVEL", default="INFO")

    clone_root: str = Field(alias="SITECLONE_CLONE_ROOT", default=tempfile.gettempdir())
    backup_max_age_hours: int = Field(alias="SITECLONE_BACKUP_MAX_AGE_HOURS", default=48)
    git_branch: str = Field(alias="SITECLONE_GIT_BRANCH", default="master")
    git_timeout_seconds: int = Field(alias="SITECLONE_GIT_TIMEOUT_SECONDS", default=1800)
    deploy_note: str = Field(
        alias="SITECLONE_DEPLOY_NOTE", default="Deployed by 'siteclone'"
    )

    terminus_bin: str = Field(alias="TERMINUS_BIN", default="terminus")
    terminus_timeout_seconds: int = Field(alias="TERMINUS_TIMEOUT_SECONDS", default=3600)
    workflow_poll_interval_seconds: float = Field(
        alias="WORKFLOW_POLL_INTERVAL_SECONDS", default=3.0
    )
    workflow_timeout_seconds: int = Field(alias="WORKFLOW_TIMEOUT_SECONDS", default=3600)

    dashboard_protocol: str = Field(alias="DASHBOARD_PROTOCOL", default="https")
    dashboard_host: str = Field(alias="DASHBOARD_HOST", default="dashboard.pantheon.io")
    platform_default_domain: str = Field(
        alias="PLATFORM_DEFAULT_DOMAIN", default="pantheonsite.io"
    )


def validate_settings(settings: Settings) -> None:
    problems: list[str] = []
    if settings.backup_max_age_hours <= 0:
        problems.append("SITECLONE_BACKUP_MAX_AGE_HOURS(must be > 0)")
    if not settings.git_branch.strip():
        problems.append("SITECLONE_GIT_BRANCH")
    if not Path(settings.clone_root).is_absolute():
        problems.append("SITECLONE_CLONE_ROOT(absolute path required)")
    if not settings.terminus_bin.strip():
        problems.append("TERMINUS_BIN")
    if settings.workflow_poll_interval_seconds <= 0:
        problems.append("WORKFLOW_POLL_INTERVAL_SECONDS(must be > 0)")
    if settings.workflow_timeout_seconds <= 0:
        problems.append("WORKFLOW_TIMEOUT_SECONDS(must be > 0)")
    if settings.git_timeout_seconds <= 0:
        problems.append("SITECLONE_GIT_TIMEOUT_SECONDS(must be > 0)")

    if problems:
        keys = ", ".join(sorted(set(problems)))
        raise ConfigError(f"invalid configuration: {keys}")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
