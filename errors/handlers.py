"""
Exception handlers for the location service.

Every error leaves the API as ``{error_code, message, details?, request_id}``.
Unexpected exceptions are logged with their traceback and answered with a
generic message; driver and stack details stay in the logs.
"""

import logging
import uuid
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from errors.codes import ErrorCode
from errors.exceptions import AppException, validation_error

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


class ErrorResponse(BaseModel):
    """Error envelope; clients branch on ``error_code``, not on ``message``."""
    error_code: str
    message: str
    details: Optional[dict[str, Any]] = None
    request_id: str


def get_request_id(request: Request) -> str:
    """
    The ID RequestIDMiddleware put on ``request.state``.

    A fresh UUID is returned when the handler runs outside the middleware.
    """
    request_id = getattr(request.state, "request_id", None)
    return request_id or str(uuid.uuid4())


def _error_response(
    request_id: str,
    status_code: int,
    error_code: ErrorCode,
    message: str,
    details: Optional[dict[str, Any]] = None,
) -> JSONResponse:
    body = ErrorResponse(
        error_code=error_code.value,
        message=message,
        details=details,
        request_id=request_id,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def handle_app_exception(request: Request, exc: AppException) -> JSONResponse:
    """Render an AppException with its own status code and details."""
    request_id = get_request_id(request)
    logger.warning(
        f"{request.method} {request.url.path} failed: {exc.error_code.value}",
        extra={"extra_data": {
            "error_code": exc.error_code.value,
            "error_message": exc.message,
            "status_code": exc.status_code,
            "details": exc.details,
            "request_id": request_id,
        }}
    )
    return _error_response(request_id, exc.status_code, exc.error_code, exc.message, exc.details)


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Report a body FastAPI could not decode as 400 VALIDATION_ERROR.

    FastAPI's default here is 422; every client-side problem in this API
    is a 400. Only the location, message and type of each error are
    returned: the rejected input may be NaN or infinite, which is not JSON.
    """
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    return await handle_app_exception(
        request,
        validation_error(
            "Invalid request payload",
            details={"validation_errors": jsonable_encoder(errors)},
        ),
    )


async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
    """Log the exception in full and answer 500 without any of its detail."""
    request_id = get_request_id(request)
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}",
        extra={"extra_data": {
            "error_code": ErrorCode.INTERNAL_ERROR.value,
            "request_id": request_id,
            "exception_type": type(exc).__name__,
        }},
        exc_info=exc,
    )
    return _error_response(request_id, 500, ErrorCode.INTERNAL_ERROR, GENERIC_ERROR_MESSAGE)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, handle_app_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    # Anything not handled above
    app.add_exception_handler(Exception, handle_unexpected_exception)
