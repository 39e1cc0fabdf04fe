from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.constants import SyncStrategy
from src.settings.utils import prepare_settings
from src.settings.log import LogSettings

__all__ = (
    "get_app_settings",
    "AppSettings",
    "ReleasesSettings",
)


class FlagsSettings(BaseSettings):
    """Implements settings which are loaded from environment variables"""

    model_config = SettingsConfigDict(env_prefix="FLAG_")

    api_docs_enabled: bool = False
    debug_mode: bool = False


class ReleasesSettings(BaseSettings):
    """Settings of the release synchronization engine"""

    model_config = SettingsConfigDict(env_prefix="RELEASES_")

    sync_strategy: SyncStrategy = Field(
        default=SyncStrategy.REPLACE,
        description="How tag links and media rows are reconciled: 'replace' or 'diff'",
    )


class AppSettings(BaseSettings):
    """Application settings which are loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_host: str = "localhost"
    app_port: int = 8004
    flags: FlagsSettings = Field(default_factory=FlagsSettings)
    log: LogSettings = Field(default_factory=LogSettings)
    releases: ReleasesSettings = Field(default_factory=ReleasesSettings)


@lru_cache
def get_app_settings() -> AppSettings:
    """Prepares application settings from environment variables"""
    return prepare_settings(AppSettings)


SettingsDep = Annotated[AppSettings, Depends(get_app_settings)]
