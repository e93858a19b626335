"""Configuration management for SplitFree."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .models import ClaimSource


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SPLITFREE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Currency used when a receipt doesn't carry one
    default_currency: str = "USD"

    # Provenance tag for claims made through the service layer
    default_claim_source: ClaimSource = "app"

    # Database path
    database_path: Path = Path.home() / ".splitfree" / "splitfree.db"

    def __init__(self, **kwargs):
        """Initialize settings and create database directory if needed."""
        super().__init__(**kwargs)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check the SPLITFREE_* variables in your "
            f"environment or .env file.\n"
            f"Error: {e}"
        ) from e
