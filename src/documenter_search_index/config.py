"""Runtime settings, overridable through ``DOCUMENTER_SEARCH_*`` environment variables."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Locations of the database and of the documentation site."""

    model_config = SettingsConfigDict(env_prefix="DOCUMENTER_SEARCH_", env_file=".env", extra="ignore")

    db_path: Path = Field(default=Path("documenter_search.db"), description="SQLite database file")
    site_url: str = Field(default="", description="Base URL of the deployed documentation site")
    repository: str | None = Field(default=None, description="Git URL of the repository hosting the site")
    branch: str = Field(default="gh-pages", description="Branch holding the built site")
    index_filename: str = Field(default="search_index.js", description="Search index file name")
    log_level: str = Field(default="INFO", description="Logging level name")


def get_settings() -> Settings:
    """Return settings read from the current environment."""
    return Settings()
