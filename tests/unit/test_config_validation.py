import pytest

from siteclone.config import get_settings, validate_settings
from siteclone.errors import ConfigError


def test_defaults_are_valid() -> None:
    settings = get_settings()
    validate_settings(settings)
    assert settings.backup_max_age_hours == 48
    assert settings.git_branch == "master"
    assert settings.terminus_bin == "terminus"
    assert settings.platform_default_domain == "pantheonsite.io"


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SITECLONE_BACKUP_MAX_AGE_HOURS", "12")
    monkeypatch.setenv("TERMINUS_BIN", "/opt/terminus/bin/terminus")
    get_settings.cache_clear()
    settings = get_settings()
    assert settings.backup_max_age_hours == 12
    assert settings.terminus_bin == "/opt/terminus/bin/terminus"


def test_get_settings_is_cached() -> None:
    assert get_settings() is get_settings()


def test_validate_settings_reports_every_problem(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SITECLONE_BACKUP_MAX_AGE_HOURS", "0")
    monkeypatch.setenv("SITECLONE_CLONE_ROOT", "relative/path")
    monkeypatch.setenv("WORKFLOW_POLL_INTERVAL_SECONDS", "0")
    get_settings.cache_clear()

    with pytest.raises(ConfigError) as exc_info:
        validate_settings(get_settings())

    message = str(exc_info.value)
    assert "SITECLONE_BACKUP_MAX_AGE_HOURS" in message
    assert "SITECLONE_CLONE_ROOT" in message
    assert "WORKFLOW_POLL_INTERVAL_SECONDS" in message
