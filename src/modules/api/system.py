import logging

from fastapi import APIRouter, Response, status

from src.db.session import ping_database
from src.exceptions import StorageError
from src.models import HealthCheck
from src.modules.api.base import ErrorHandlingBaseRoute
from src.utils import utcnow

__all__ = ("router",)
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/system", tags=["system"], route_class=ErrorHandlingBaseRoute)


@router.get("/health/", response_model=HealthCheck)
async def health_check(response: Response) -> HealthCheck:
    """Service is healthy when the relational store answers"""
    try:
        await ping_database()
    except StorageError as exc:
        logger.warning("[API] Health check: store is unavailable: %s", exc.message)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthCheck(
            status="unhealthy", storage="unavailable", timestamp=utcnow(skip_tz=False)
        )

    return HealthCheck(status="healthy", storage="ok", timestamp=utcnow(skip_tz=False))
