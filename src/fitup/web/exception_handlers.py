"""
Exception handlers for the FastAPI application.

Domain errors become JSON bodies of the form
``{"error": message, "code": CODE, "details": {...}}``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..exceptions import ErrorCode, FitUpError

logger = logging.getLogger(__name__)


async def fitup_error_handler(request: Request, exc: FitUpError) -> JSONResponse:
    """Handle all FitUpError exceptions."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %r", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request body and parameter validation errors."""
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(x) for x in error["loc"]),
            "message": error["msg"],
        })
    message = errors[0]["message"] if errors else "invalid request"
    return JSONResponse(
        status_code=400,
        content={
            "error": message,
            "code": ErrorCode.INVALID_INPUT.value,
            "details": {"errors": errors},
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "internal server error", "code": ErrorCode.INTERNAL_ERROR.value},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FitUpError, fitup_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
