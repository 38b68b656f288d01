"""Settings loaded from environment variables (``CASHTRACK_`` prefix) or a
``.env`` file in the working directory.

Uses pydantic-settings for type coercion and validation.
"""

import logging
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CASHTRACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "MitCash"

    # Only this identity may read or write transactions
    allowed_email: str = ""

    data_file: str = "data/transactions.json"
    preferences_file: str = "data/preferences.json"

    currency: str = "USD"
    history_months: int = 6

    log_level: str = "INFO"

    @field_validator("allowed_email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        return v.strip()

    @field_validator("history_months")
    @classmethod
    def _positive_history(cls, v: int) -> int:
        if v < 1:
            raise ValueError("history_months must be at least 1")
        return v

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper()


@lru_cache()
def get_settings() -> Settings:
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for tests)."""
    get_settings.cache_clear()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
