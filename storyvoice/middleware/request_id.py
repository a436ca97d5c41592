"""
Request ID Middleware for FastAPI.

Generates a UUID request_id for each incoming request, sets it in the
RequestContext contextvar so all logs within that request include it,
and adds an X-Request-ID response header.
"""

import logging
import uuid
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ..utils.logging import RequestContext

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Middleware that assigns a unique request ID to each request.

    - An incoming X-Request-ID header is reused when present.
    - Otherwise a new UUID is generated.
    - The ID is stored in RequestContext and on request.state.
    - The ID is returned in the X-Request-ID response header.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

        request.state.request_id = request_id
        RequestContext.set(request_id=request_id)

        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            RequestContext.clear()
