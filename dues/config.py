"""Application configuration from environment variables."""

import logging
from decimal import Decimal
from typing import Optional

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Dues engine settings loaded from environment variables.

    Pydantic loads values from:
    1. OS environment variables (at instantiation time)
    2. .env file (if present)
    """

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./dues.db", description="SQLAlchemy connection string"
    )
    database_echo: bool = Field(default=False, description="Log SQL queries")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="logs/server.log", description="Server log file")

    # Transaction matching
    suggestion_lookback_days: int = Field(
        default=90, description="Days searched before a period starts"
    )
    suggestion_grace_days: int = Field(
        default=14, description="Days searched after a period ends"
    )
    suggestion_limit: int = Field(default=10, description="Maximum suggestions returned")
    amount_tolerance: Decimal = Field(
        default=Decimal("0.01"), description="Currency rounding tolerance"
    )

    # Timeline
    timeline_past_window: int = Field(default=5, description="Past periods shown")
    timeline_past_window_quarterly: int = Field(
        default=2, description="Past periods shown for quarterly billing"
    )
    timeline_future_window: int = Field(default=3, description="Future periods shown")

    # Ledger
    history_default_limit: int = Field(default=50, description="Default history page size")

    # Batch due list
    include_paused_members: bool = Field(
        default=False, description="List PAUSED members in the batch due view"
    )

    # API
    api_title: str = Field(default="Membership Dues API", description="API title")
    api_version: str = Field(default="0.1.0", description="API version")

    def validate_settings(self) -> None:
        """Validate numeric settings that pydantic cannot bound on its own."""
        if self.suggestion_lookback_days < 0 or self.suggestion_grace_days < 0:
            raise ValueError("Suggestion window margins must not be negative")
        if self.amount_tolerance < 0:
            raise ValueError("AMOUNT_TOLERANCE must not be negative")


_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the settings instance.

    Lazy-loaded so environment variables set by the entry point (or tests)
    are visible when the settings are first read.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
        _settings_instance.validate_settings()
        logger.debug("Loaded settings: database_url=%s", _settings_instance.database_url)
    return _settings_instance


def reset_settings() -> None:
    """Drop the cached settings so the next access re-reads the environment."""
    global _settings_instance
    _settings_instance = None


__all__ = ["Settings", "get_settings", "reset_settings"]
