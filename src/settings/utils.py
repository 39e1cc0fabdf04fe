import logging
from typing import TypeVar

from pydantic_settings import BaseSettings
from pydantic_core import ValidationError

from src.exceptions import AppSettingsError

__all__ = ("prepare_settings",)

logger = logging.getLogger(__name__)
TypeSettings = TypeVar("TypeSettings", bound=BaseSettings)


def prepare_settings(settings_class: type[TypeSettings]) -> TypeSettings:
    """Builds settings from environment variables, reporting every invalid field at once"""
    settings_name = settings_class.__name__
    try:
        settings: TypeSettings = settings_class()
    except ValidationError as exc:
        logger.debug(
            "Unable to validate %s (caught Validation Error): \n %s",
            settings_name,
            exc.errors(include_url=False, include_input=False),
        )
        error_message = f"Unable to validate {settings_name}: "
        for error in exc.errors():
            error_message += f"\n\t[{'|'.join(map(str, error['loc']))}] {error['msg']}"
        raise AppSettingsError(error_message) from exc

    except Exception as exc:
        logger.error("Unable to prepare %s (caught unexpected): \n %r", settings_name, exc)
        raise AppSettingsError(f"Unable to prepare {settings_name}: {exc}") from exc

    return settings
