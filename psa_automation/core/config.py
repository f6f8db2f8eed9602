"""Engine configuration (settings and environment).

Single source of truth for runtime configuration. Uses pydantic-settings
with .env support. Cross-field requirements (DATABASE_URL for postgres,
positive durations) are validated at load time.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment and .env."""

    # App
    app_name: str = "psa-automation"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Storage: "memory" (in-process repositories) or "postgres" (SQLAlchemy + asyncpg)
    storage_backend: str = "memory"
    database_url: str = ""
    database_echo: bool = False
    db_pool_size: int | None = None
    db_max_overflow: int | None = None
    db_command_timeout: int | None = None

    # Retry policy applied to definitions that do not carry their own
    default_max_retries: int = 3
    default_retry_delay_seconds: float = 60
    default_timeout_seconds: float = 300

    # Scheduler polling interval (external clock)
    scheduler_tick_seconds: float = 60

    # Built-in handlers
    webhook_timeout_seconds: float = 30
    mail_from_address: str = "automation@localhost"

    # Chat and SMS channels; a channel without credentials fails its actions
    slack_bot_token: SecretStr | None = None
    slack_api_url: str = "https://slack.com/api"
    twilio_account_sid: str | None = None
    twilio_auth_token: SecretStr | None = None
    twilio_from_number: str | None = None
    twilio_api_url: str = "https://api.twilio.com"

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0
    telemetry_environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_storage_and_durations(self) -> "Settings":
        """Validate storage backend and timing settings.

        - postgres: DATABASE_URL required.
        - memory: nothing required.
        - retry count non-negative; delays, timeouts and tick interval positive.
        """
        if self.storage_backend == "postgres":
            if not self.database_url:
                raise ValueError(
                    "DATABASE_URL is required when storage_backend is 'postgres'. "
                    "Set in environment or .env file."
                )
        elif self.storage_backend != "memory":
            raise ValueError(
                f"storage_backend must be 'memory' or 'postgres', got: {self.storage_backend!r}"
            )
        if self.default_max_retries < 0:
            raise ValueError("DEFAULT_MAX_RETRIES must be >= 0")
        if self.default_retry_delay_seconds < 0:
            raise ValueError("DEFAULT_RETRY_DELAY_SECONDS must be >= 0")
        for name in (
            "default_timeout_seconds",
            "scheduler_tick_seconds",
            "webhook_timeout_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name.upper()} must be > 0")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() after changing env vars.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
