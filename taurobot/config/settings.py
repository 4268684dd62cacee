"""Application settings using pydantic-settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Scraper configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Storage
    data_dir: Path = Field(default=Path("data"), alias="TAUROBOT_DATA_DIR")
    tmp_dir: Path = Field(default=Path("tmp"), alias="TAUROBOT_TMP_DIR")

    # Plain HTTP fetches
    request_timeout: float = Field(default=30.0, alias="SCRAPER_REQUEST_TIMEOUT")
    rotate_user_agent: bool = Field(default=False, alias="SCRAPER_ROTATE_USER_AGENT")
    user_agent: str | None = Field(default=None, alias="SCRAPER_USER_AGENT")

    # Retry policy applied by the orchestrator
    max_retries: int = Field(default=2, alias="SCRAPER_MAX_RETRIES")
    retry_delay: float = Field(default=5.0, alias="SCRAPER_RETRY_DELAY")

    # Headless browser
    headless: bool = Field(default=True, alias="BROWSER_HEADLESS")
    browser_executable_path: str | None = Field(default=None, alias="BROWSER_EXECUTABLE_PATH")
    browser_launch_timeout_ms: int = Field(default=60_000, alias="BROWSER_LAUNCH_TIMEOUT_MS")
    navigation_timeout_ms: int = Field(default=90_000, alias="BROWSER_NAVIGATION_TIMEOUT_MS")

    # Raw HTML + screenshot on every headless scrape (never on by default)
    debug_artifacts: bool = Field(default=False, alias="SCRAPER_DEBUG_ARTIFACTS")

    # Default bound for callers awaiting a refresh
    consumer_timeout: float = Field(default=120.0, alias="SCRAPER_CONSUMER_TIMEOUT")

    # Scheduler
    scheduler_enabled: bool = Field(default=True, alias="SCHEDULER_ENABLED")
    scheduler_timezone: str = Field(default="Europe/Madrid", alias="SCHEDULER_TIMEZONE")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(default="console", alias="LOG_FORMAT")
    log_file: str | None = Field(default=None, alias="LOG_FILE")

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @property
    def debug_dir(self) -> Path:
        """Where debug artifacts are written."""
        return self.data_dir / "debug"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
