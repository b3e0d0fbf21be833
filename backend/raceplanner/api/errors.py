"""
Error responses and response headers.

Every error leaves the API as ``{"message": "..."}`` with the status of the
``RacePlannerError`` subclass that was raised.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from raceplanner.shared.errors import RacePlannerError, RateLimitedError

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "same-origin",
}


async def race_planner_error_handler(request: Request, exc: RacePlannerError) -> JSONResponse:
    headers = {}
    if isinstance(exc, RateLimitedError):
        headers["Retry-After"] = str(exc.retry_after)

    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")

    return JSONResponse({"message": exc.message}, status_code=exc.status_code, headers=headers)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.debug(f"Rejected request to {request.url.path}: {exc.errors()}")
    return JSONResponse({"message": "Invalid request."}, status_code=400)


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    # Runs outside the http middleware, so headers are set here
    return JSONResponse({"message": "Unexpected error."}, status_code=500, headers=SECURITY_HEADERS)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RacePlannerError, race_planner_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response
