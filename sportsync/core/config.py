"""
Application configuration.

Settings are read from the environment and from ``.env`` at the project
root. Provider API keys default to empty (TheSportsDB falls back to its
public test key), and scheduled sync is off unless explicitly enabled.

Required secrets for production:
- APIFOOTBALL_API_KEY
- APISPORTS_API_KEY (when ENABLE_APISPORTS is on)
"""
import logging
from pathlib import Path
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root directory (two levels up from this file)
PROJECT_ROOT = Path(__file__).parent.parent.parent

logger = logging.getLogger(__name__)

THESPORTSDB_PUBLIC_KEY = "3"


class Settings(BaseSettings):
    """Application settings with environment-specific configuration."""

    ENVIRONMENT: Literal["development", "production", "test"] = "development"

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    APP_NAME: str = "sportsync"
    APP_VERSION: str = "1.0.0"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # Audit log storage
    DATABASE_URL: str = "sqlite:///./sportsync.db"

    # Provider credentials
    THESPORTSDB_API_KEY: str = THESPORTSDB_PUBLIC_KEY
    APIFOOTBALL_API_KEY: str = ""
    APISPORTS_API_KEY: str = ""

    # Daily request caps per provider
    THESPORTSDB_REQUESTS_PER_DAY: int = 1000
    APIFOOTBALL_REQUESTS_PER_DAY: int = 100
    APISPORTS_REQUESTS_PER_DAY: int = 100

    # Outbound request policy
    REQUEST_TIMEOUT_MS: int = 30000
    MAX_RETRIES: int = 3
    RETRY_BASE_DELAY_MS: int = 1000
    RETRY_MAX_DELAY_MS: int = 10000

    # Sync orchestration
    SPORTS_ENABLE_SCHEDULED_SYNC: bool = False
    ENABLE_THESPORTSDB: bool = True
    ENABLE_APISPORTS: bool = True
    SYNC_DELAY_BETWEEN_SOURCES_MS: int = 1000
    SYNC_DELAY_BETWEEN_SPORTS_MS: int = 2000
    SYNC_BATCH_SIZE: int = 10
    QUOTA_SAFETY_MARGIN: int = 2
    SCHEDULER_TIMEZONE: str = "UTC"

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == "production"

    def validate_required_secrets(self) -> list[str]:
        """
        Validate that required secrets are set for the current environment.

        Returns:
            List of missing secret names (empty if all present)
        """
        missing = []

        if self.is_production():
            if not self.APIFOOTBALL_API_KEY:
                missing.append("APIFOOTBALL_API_KEY")
            if self.ENABLE_APISPORTS and not self.APISPORTS_API_KEY:
                missing.append("APISPORTS_API_KEY")

        if self.THESPORTSDB_API_KEY == THESPORTSDB_PUBLIC_KEY and self.is_production():
            logger.warning(
                "THESPORTSDB_API_KEY is the public test key; live scores are limited to football"
            )

        return missing


settings = Settings()
