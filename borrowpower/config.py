"""Runtime settings loaded from the environment."""

from typing import Literal, Optional
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from borrowpower.logging import setup_logging


class Settings(BaseSettings):
    """Calculator settings read from ``BORROWPOWER_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BORROWPOWER_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # JSON rate file produced by the offline rate import
    rate_table_path: Optional[Path] = None

    # Serviceability buffer added to the offered rate, in percentage points
    interest_buffer: float = Field(default=2.0, ge=0)

    log_level: str = "INFO"
    log_format: Literal["standard", "json"] = "standard"


def load_settings(**overrides) -> Settings:
    """Build settings from the environment, letting keyword overrides win."""
    return Settings(**overrides)


def shading_rules(settings: Settings):
    """Default shading rules with the configured serviceability buffer."""
    from borrowpower.normalizer import DEFAULT_SHADING_RULES

    return DEFAULT_SHADING_RULES.model_copy(update={"interest_buffer": settings.interest_buffer})


def configure_logging(settings: Settings) -> None:
    """Apply the configured log level and format to the package logger."""
    setup_logging(settings.log_level, settings.log_format)
