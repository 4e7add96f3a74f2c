"""Application configuration utilities."""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralized configuration loaded from environment or .env file."""

    model_config = SettingsConfigDict(
        env_prefix="SPECIMEN_CONTACTS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    contact_slot_cap: int = Field(default=10, ge=1, description="Numbered contact columns kept in order")
    export_filename_template: str = Field(default="records_{source_uuid}.csv")
    contact_table_filename: str = Field(default="source_contacts.csv")
    include_undocumented_sources: bool = Field(
        default=True,
        description="Keep batch sources lacking contacts as rows with empty contact columns",
    )
    export_workers: int = Field(default=1, ge=1)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
