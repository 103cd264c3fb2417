"""
Configuration settings for the Bancalplast pallet tracker.

This module handles application configuration using Pydantic settings.
Store credentials are read once here and handed to the store factory as an
explicit StoreConfig value.
"""

from pydantic import BaseModel
from pydantic_settings import BaseSettings
from typing import Optional

from bancalplast.app.core.exceptions import ConfigurationError


class StoreConfig(BaseModel):
    """Connection parameters for the record store."""
    url: str
    key: Optional[str] = None
    echo: bool = False

    @property
    def is_rest(self) -> bool:
        return self.url.startswith(("http://", "https://"))


class Settings(BaseSettings):
    """Application settings."""

    # Application
    app_name: str = "Bancalplast"
    api_version: str = "v1"
    debug: bool = False
    log_level: str = "INFO"

    # Record store: an http(s) URL selects the REST backend, anything else is
    # treated as an SQLAlchemy async database URL.
    store_url: Optional[str] = None
    store_key: Optional[str] = None
    db_echo: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

    def store_config(self) -> StoreConfig:
        """
        Build the store configuration.

        Raises:
            ConfigurationError: if STORE_URL is missing, or STORE_KEY is
                missing for a REST store.
        """
        missing = []
        if not self.store_url:
            missing.append("STORE_URL")
        elif self.store_url.startswith(("http://", "https://")) and not self.store_key:
            missing.append("STORE_KEY")
        if missing:
            raise ConfigurationError(f"Missing store configuration: {', '.join(missing)}")

        return StoreConfig(url=self.store_url, key=self.store_key, echo=self.db_echo)


settings = Settings()
