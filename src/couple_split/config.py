"""Configuration management for CoupleSplit."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Hosted row store (optional - local SQLite is used when unset)
    rowstore_url: str | None = None
    rowstore_api_key: str | None = None
    rowstore_user_id: str | None = None

    # Split used until the user saves their own
    default_person1_percentage: float = 45.0
    default_person2_percentage: float = 55.0

    # Database path
    database_path: Path = Path.home() / ".couple_split" / "couple_split.db"

    def __init__(self, **kwargs):
        """Initialize settings and create database directory if needed."""
        super().__init__(**kwargs)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def remote_enabled(self) -> bool:
        """Whether every setting needed to reach the row store is present."""
        return bool(self.rowstore_url and self.rowstore_api_key and self.rowstore_user_id)


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check your .env file and environment "
            f"variables. See .env.example for reference.\n"
            f"Error: {e}"
        ) from e
