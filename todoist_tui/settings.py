"""Application settings and configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API Token (TODOIST_API_TOKEN)
    todoist_api_token: str = ""

    # API Base URL
    todoist_api_base_url: str = "https://api.todoist.com/api/v1"

    # Rate limiting and retries
    max_retries: int = 3
    retry_delay: float = 1.0
    request_timeout: float = 10.0

    # Sync behaviour
    fetch_timeout: float = 5.0  # Per remote call during a refresh
    sync_debounce_seconds: float = 30.0
    sync_interval_seconds: float = 5.0
    coalesce_pending_changes: bool = False  # Collapse cancelling toggles of the same task

    # UI
    input_poll_interval: float = 0.2

    # Logging
    log_level: str = "INFO"
    log_file: str = "todoist-tui.log"


# Global settings instance
settings = Settings()
