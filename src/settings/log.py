from functools import lru_cache
from typing import Annotated, TypedDict, Any

from pydantic import StringConstraints
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.settings.utils import prepare_settings

__all__ = (
    "LOG_LEVELS_PATTERN",
    "APP_LOGGERS",
    "LogSettings",
    "get_log_settings",
)

LOG_LEVELS_PATTERN = "DEBUG|INFO|WARNING|ERROR|CRITICAL"
LogLevelString = Annotated[
    str, StringConstraints(to_upper=True, pattern=rf"^(?i:{LOG_LEVELS_PATTERN})$")
]
APP_LOGGERS = ("src", "fastapi", "alembic", "uvicorn.error", "uvicorn.access")
DB_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


class LoggerConfig(TypedDict):
    handlers: list[str]
    level: str
    propagate: bool


class LogDictConfig(TypedDict):
    version: int
    disable_existing_loggers: bool
    formatters: dict[str, dict[str, str]]
    handlers: dict[str, dict[str, str]]
    loggers: dict[str, LoggerConfig]


class LogSettings(BaseSettings):
    """
    Logging of the service (stdlib logging, applied via dictConfig).
    `db_level` is separate: SQLAlchemy's INFO level logs every statement.
    """

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: LogLevelString = "INFO"
    db_level: LogLevelString = "WARNING"
    format: str = "[%(asctime)s] %(levelname)s [%(name)s:%(lineno)s] %(message)s"
    datefmt: str = "%d.%m.%Y %H:%M:%S"

    @property
    def dict_config(self) -> LogDictConfig:
        loggers: dict[str, LoggerConfig] = {}
        for names, level in ((APP_LOGGERS, self.level), (DB_LOGGERS, self.db_level)):
            for name in names:
                loggers[name] = {"handlers": ["console"], "level": level, "propagate": False}

        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"standard": {"format": self.format, "datefmt": self.datefmt}},
            "handlers": {"console": {"class": "logging.StreamHandler", "formatter": "standard"}},
            "loggers": loggers,
        }

    @property
    def dict_config_any(self) -> dict[str, Any]:
        """Just simple workaround for type checking in logging config"""
        return dict(self.dict_config)


@lru_cache
def get_log_settings() -> LogSettings:
    """Prepares logging settings from environment variables"""
    return prepare_settings(LogSettings)
