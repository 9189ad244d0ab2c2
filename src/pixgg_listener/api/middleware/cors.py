"""CORS middleware configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware

if TYPE_CHECKING:
    from collections.abc import Callable

    from fastapi import FastAPI
    from starlette.requests import Request
    from starlette.responses import Response


class AllowAnyOriginMiddleware(BaseHTTPMiddleware):
    """Mark every response as readable from any origin.

    Preflight requests are not answered here: ``OPTIONS`` reaches the
    router like any other method and gets the JSON 404.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:  # type: ignore[type-arg]
        response: Response = await call_next(request)
        response.headers["Access-Control-Allow-Origin"] = "*"
        return response


def setup_cors(app: FastAPI) -> None:
    """Let any origin read the status endpoint.

    The endpoint is a plain ``GET`` without credentials or custom headers,
    so browsers never need a preflight for it.
    """
    app.add_middleware(AllowAnyOriginMiddleware)
