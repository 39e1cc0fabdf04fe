import datetime
import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException

from src.models import ErrorResponse
from src.exceptions import BaseApplicationError

__all__ = ("universal_exception_handler", "utcnow", "ensure_utc")
logger = logging.getLogger(__name__)
INTERNAL_ERROR_DETAIL = "An internal error has been detected. We apologize for the inconvenience."


def _error_details(exc: Exception) -> tuple[int, int, str, str]:
    """Log level, response status, error title and detail for the raised exception"""
    match exc:
        case BaseApplicationError():
            return exc.log_level, exc.status_code, exc.log_message, exc.message
        case RequestValidationError() | ValidationError():
            return logging.WARNING, 422, "Validation error", str(exc)
        case HTTPException():
            return logging.WARNING, exc.status_code, "HTTP error", str(exc.detail)

    return logging.ERROR, 500, "Internal server error", INTERNAL_ERROR_DETAIL


async def universal_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Renders any exception raised by a route as ErrorResponse"""
    log_level, status_code, error, detail = _error_details(exc)
    exc_info = exc if log_level >= logging.ERROR or logger.isEnabledFor(logging.DEBUG) else None
    logger.log(
        log_level,
        "[API] %s %s failed (%s): %s",
        request.method,
        request.url.path,
        error,
        exc if status_code == 500 else detail,
        exc_info=exc_info,
    )
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail).model_dump(),
    )


def utcnow(skip_tz: bool = True) -> datetime.datetime:
    """Current UTC time (naive by default, like the values of DB columns without TZ)"""
    now = datetime.datetime.now(datetime.UTC)
    return now.replace(tzinfo=None) if skip_tz else now


def ensure_utc(value: datetime.datetime) -> datetime.datetime:
    """
    Brings a datetime to an aware UTC instant (naive values are treated as UTC,
    some backends - like SQLite - drop tzinfo on the way back)

    >>> ensure_utc(datetime.datetime(2024, 5, 1, 10, 0))
    datetime.datetime(2024, 5, 1, 10, 0, tzinfo=datetime.timezone.utc)
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.UTC)

    return value.astimezone(datetime.UTC)
