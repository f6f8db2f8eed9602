"""Settings loading and cross-field validation."""

import pytest
from pydantic import ValidationError

from psa_automation.core.config import Settings, get_settings


def test_defaults_use_memory_storage() -> None:
    settings = Settings(_env_file=None)
    assert settings.storage_backend == "memory"
    assert settings.default_max_retries == 3
    assert settings.default_retry_delay_seconds == 60
    assert settings.default_timeout_seconds == 300
    assert settings.telemetry_enabled is False


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEFAULT_MAX_RETRIES", "5")
    monkeypatch.setenv("SCHEDULER_TICK_SECONDS", "15")
    monkeypatch.setenv("STORAGE_BACKEND", "postgres")
    monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://u:p@localhost/psa")

    settings = Settings(_env_file=None)

    assert settings.default_max_retries == 5
    assert settings.scheduler_tick_seconds == 15
    assert settings.storage_backend == "postgres"


def test_postgres_requires_database_url() -> None:
    with pytest.raises(ValidationError, match="DATABASE_URL is required"):
        Settings(_env_file=None, storage_backend="postgres", database_url="")


def test_unknown_storage_backend() -> None:
    with pytest.raises(ValidationError, match="storage_backend must be"):
        Settings(_env_file=None, storage_backend="redis")


@pytest.mark.parametrize(
    "overrides",
    [
        {"default_max_retries": -1},
        {"default_retry_delay_seconds": -5},
        {"default_timeout_seconds": 0},
        {"scheduler_tick_seconds": 0},
        {"webhook_timeout_seconds": -1},
    ],
)
def test_invalid_durations(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)


def test_get_settings_is_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    get_settings.cache_clear()
    monkeypatch.setenv("APP_NAME", "psa-automation-test")
    try:
        first = get_settings()
        assert first is get_settings()
        assert first.app_name == "psa-automation-test"
    finally:
        get_settings.cache_clear()
