"""Configuration management."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings pulled from ``SUBMAP_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="SUBMAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="console", description="Logging format (console or json)")

    # Resampling defaults
    default_cells_desired: int = Field(default=10000, description="Lattice size when neither options nor parent give one")
    default_seed: str = Field(default="submap", description="Lattice seed when neither options nor parent give one")


settings = Settings()
