"""Custom middleware for the API."""

import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from siteforge.utils.logging import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
UNLOGGED_PATHS = frozenset({"/health"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and logs its outcome.

    The id is bound into the structlog context for the lifetime of the
    request, so pipeline events for a deploy carry it too. Successful
    site reads are logged at debug; deploys and errors at info.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in UNLOGGED_PATHS:
            return await call_next(request)

        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        start_time = time.perf_counter()

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            response = await call_next(request)
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)

            quiet = request.method == "GET" and response.status_code < 400
            (logger.debug if quiet else logger.info)(
                "request.completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=duration_ms,
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
