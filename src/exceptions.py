import logging

from fastapi import status


class BaseApplicationError(Exception):
    """Base application error"""

    log_level: int = logging.ERROR
    log_message: str = "Application error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AppSettingsError(BaseApplicationError):
    """Settings error"""


class StartupError(BaseApplicationError):
    """Startup error"""


class StorageError(BaseApplicationError):
    """Failed read/write against the relational store"""

    log_message: str = "Storage error"
    status_code: int = status.HTTP_503_SERVICE_UNAVAILABLE


class InstanceLookupError(StorageError):
    """Instance lookup error"""

    log_level: int = logging.WARNING
    log_message: str = "Instance not found"
    status_code: int = status.HTTP_404_NOT_FOUND


class ReleaseValidationError(BaseApplicationError):
    """Malformed release payload (detected before any store call)"""

    log_level: int = logging.WARNING
    log_message: str = "Release validation error"
    status_code: int = status.HTTP_422_UNPROCESSABLE_ENTITY
