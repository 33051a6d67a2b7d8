"""
Request ID middleware for request correlation.

Every request gets an ID, taken from the ``X-Request-ID`` header when the
caller sends one. The ID lands in ``request.state`` for the error handlers,
in a context variable for the log formatter, and in the response headers.
"""

import uuid
from contextvars import ContextVar
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

# Visible to every coroutine serving the same request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a correlation ID to each request and its response."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        """
        Resolve the request ID, run the rest of the stack, echo the ID back.

        Args:
            request: The incoming request
            call_next: The next middleware or route handler

        Returns:
            The response with the X-Request-ID header set
        """
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            request_id_var.reset(token)


def get_request_id() -> str:
    """Return the ID of the request being served, or an empty string."""
    return request_id_var.get()
