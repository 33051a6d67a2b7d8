"""
Middleware components for the location service.

Cross-cutting HTTP concerns: request correlation and access logging.
"""

from middleware.request_id import (
    RequestIDMiddleware,
    request_id_var,
    get_request_id,
    REQUEST_ID_HEADER,
)
from middleware.access_log import AccessLogMiddleware

__all__ = [
    "RequestIDMiddleware",
    "request_id_var",
    "get_request_id",
    "REQUEST_ID_HEADER",
    "AccessLogMiddleware",
]
