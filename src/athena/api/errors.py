"""Exception handlers shared by the platform API and the sandbox supervisor."""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from athena.errors import AthenaError, ValidationError
from athena.logging_config import get_logger

logger = get_logger(__name__)


def error_response(exc: AthenaError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def athena_error_handler(request: Request, exc: AthenaError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "request_failed",
        method=request.method,
        path=request.url.path,
        error=exc.error,
        message=exc.message,
        status_code=exc.status_code,
    )
    return error_response(exc)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = [
        f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
        for error in exc.errors()
    ]
    logger.warning("request_invalid", path=request.url.path, details=details)
    return error_response(ValidationError("Validation failed", details=details))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request_crashed", method=request.method, path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "internal_error", "message": str(exc)},
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AthenaError, athena_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
