from typing import Callable, Coroutine, Any

from fastapi.routing import APIRoute
from starlette.requests import Request
from starlette.responses import Response

from src.utils import universal_exception_handler


class ErrorHandlingBaseRoute(APIRoute):
    """
    Route which never lets an exception out: storage, lookup and validation
    failures are all rendered as ErrorResponse (see universal_exception_handler)
    """

    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        route_handler = super().get_route_handler()

        async def handle_errors(request: Request) -> Response:
            try:
                return await route_handler(request)
            except Exception as exc:
                return await universal_exception_handler(request, exc)

        return handle_errors
