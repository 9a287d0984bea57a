"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

# Goals above this mark an entry as bust. Pools also carry a goal_target rule,
# which the runner compares against this value and warns about when they differ.
DEFAULT_GOAL_TARGET = 21


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = ""
    db_pool_min_size: int = 1
    db_pool_max_size: int = 5
    db_command_timeout: float = 30.0

    # FPL API
    fpl_api_base_url: str = "https://fantasy.premierleague.com/api"
    request_timeout_seconds: float = 30.0

    # Logging
    log_level: str = "INFO"

    # Scheduling
    schedule_cron: str = "0 * * * *"  # every hour on the hour
    scheduler_timezone: str = "UTC"
    run_on_startup: bool = True
    shutdown_timeout_seconds: float = 30.0

    # Game rules
    goal_target: int = DEFAULT_GOAL_TARGET


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
