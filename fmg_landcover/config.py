"""Configuration management."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.farmland import FarmlandOptions
from .core.terrain import TerrainOptions


class Settings(BaseSettings):
    """Land-cover settings pulled from environment variables.

    Nested options use a double underscore, e.g.
    ``LANDCOVER_TERRAIN__MOUNTAIN_HEIGHT=80`` or
    ``LANDCOVER_FARMLAND__MAX_STEPS=30``.
    """

    model_config = SettingsConfigDict(
        env_prefix="LANDCOVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (plain or json)")

    # Pipeline Configuration
    terrain: TerrainOptions = Field(default_factory=TerrainOptions)
    farmland: FarmlandOptions = Field(default_factory=FarmlandOptions)


@lru_cache
def get_settings() -> Settings:
    """Settings singleton, read once from the environment."""
    return Settings()
