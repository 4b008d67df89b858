
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
import logging

logger = logging.getLogger(__name__)

class FitLifeException(Exception):
    """Base exception for the application"""
    pass

class ServiceUnavailableException(FitLifeException):
    """A backing store or stream could not be reached."""
    pass

class CacheUnavailableError(ServiceUnavailableException):
    pass

async def service_unavailable_handler(request: Request, exc: ServiceUnavailableException):
    request_id = getattr(request.state, "request_id", "unknown")
    logger.warning(
        "Backing service unavailable",
        extra={"request_id": request_id, "path": request.url.path, "error": str(exc)},
    )
    return JSONResponse(
        status_code=503,
        content={
            "error": "Service Unavailable",
            "message": "A backing service is temporarily unavailable. Please retry shortly.",
            "request_id": request_id,
        },
    )

async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all exception handler.
    Returns 500 JSON response and hides internal error details.
    """
    request_id = getattr(request.state, "request_id", "unknown")

    logger.error(
        "Unhandled exception occurred",
        extra={"request_id": request_id, "path": request.url.path},
        exc_info=exc
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred. Please contact support.",
            "request_id": request_id
        },
    )

async def http_exception_handler(request: Request, exc: HTTPException):
    request_id = getattr(request.state, "request_id", "unknown")

    # 5xx are errors, 4xx are the caller's problem
    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code} error", extra={"request_id": request_id, "detail": exc.detail})
    else:
        logger.info(f"HTTP {exc.status_code} error", extra={"request_id": request_id, "detail": exc.detail})

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "request_id": request_id},
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    request_id = getattr(request.state, "request_id", "unknown")
    logger.info("Validation error", extra={"request_id": request_id, "errors": exc.errors()})

    return JSONResponse(
        status_code=422,
        content={
            "error": "Validation Error",
            "details": jsonable_errors(exc),
            "request_id": request_id
        },
    )

def jsonable_errors(exc: RequestValidationError):
    # ctx may hold exception instances that json can't encode
    return [
        {key: value for key, value in error.items() if key in ("loc", "msg", "type")}
        for error in exc.errors()
    ]
