import sys
import logging.config
from contextlib import asynccontextmanager
from typing import Any, Callable, AsyncGenerator

import uvicorn
from fastapi import FastAPI

from src.exceptions import AppSettingsError, StartupError
from src.settings import get_app_settings, AppSettings
from src.modules.api import system_router, releases_router
from src.db.session import initialize_database, close_database

logger = logging.getLogger("src.main")


class ReleaseNotesAPP(FastAPI):
    """FastAPI application which keeps its own settings"""

    _settings: AppSettings
    dependency_overrides: dict[Any, Callable[..., Any]]

    def set_settings(self, settings: AppSettings) -> None:
        self._settings = settings

    @property
    def settings(self) -> AppSettings:
        return self._settings


@asynccontextmanager
async def lifespan(app: ReleaseNotesAPP) -> AsyncGenerator[None, None]:
    """Opens the store connection before serving and closes it on shutdown"""
    try:
        await initialize_database()
    except Exception as exc:
        raise StartupError(f"Unable to connect to the store: {exc}") from exc

    logger.info(
        "Release notes service is ready (sync strategy: %s)",
        app.settings.releases.sync_strategy,
    )
    try:
        yield
    finally:
        logger.info("Release notes service is shutting down...")
        try:
            await close_database()
        except Exception as exc:
            logger.error("Unable to close the store connection: %r", exc)


def make_app(settings: AppSettings | None = None) -> ReleaseNotesAPP:
    """Forming Application instance with required settings and dependencies"""

    if settings is None:
        try:
            settings = get_app_settings()
        except AppSettingsError as exc:
            logger.error("Unable to get settings from environment: %r", exc)
            sys.exit(1)

    logging.config.dictConfig(settings.log.dict_config_any)
    logging.captureWarnings(capture=True)

    docs_enabled = settings.flags.api_docs_enabled
    app = ReleaseNotesAPP(
        title="Release Notes API",
        description="Releases with their shared tags and media attachments",
        docs_url="/api/docs/" if docs_enabled else None,
        redoc_url="/api/redoc/" if docs_enabled else None,
        debug=settings.flags.debug_mode,
        lifespan=lifespan,
    )
    app.set_settings(settings)
    for router in (system_router, releases_router):
        app.include_router(router, prefix="/api")

    logger.debug("Application configured (docs enabled: %s)", docs_enabled)
    return app


if __name__ == "__main__":
    app: ReleaseNotesAPP = make_app()
    uvicorn.run(
        app,
        host=app.settings.app_host,
        port=app.settings.app_port,
        log_config=app.settings.log.dict_config_any,
        proxy_headers=True,
    )
