from .base import ErrorHandlingBaseRoute
from .releases import router as releases_router
from .system import router as system_router

__all__ = (
    "system_router",
    "releases_router",
    "ErrorHandlingBaseRoute",
)
