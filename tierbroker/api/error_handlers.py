"""Error Handlers — map every failure reaching FastAPI to the TierBroker JSON envelope.

Invariants:
    - TierBrokerError → its own to_response() body and http_status
    - Retryable failures (concurrency conflicts, store outages) carry Retry-After
    - RequestValidationError → 400 VALIDATION_ERROR with one entry per bad field
    - Anything else → 500 INTERNAL_ERROR, logged with traceback, no details leaked

Design Decisions:
    - Client errors log at WARNING and server errors at ERROR, so alerting can
      key on level alone
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from tierbroker.core.errors import (
    ConcurrencyConflictError, DatabaseError, ErrorCategory, ErrorSeverity,
    TierBrokerError,
)

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS: dict[type[TierBrokerError], int] = {
    ConcurrencyConflictError: 1,
    DatabaseError: 5,
}


def error_body(
    code: str, message: str, category: ErrorCategory, severity: ErrorSeverity,
    **extra,
) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "category": category.value,
            "severity": severity.value,
            **extra,
        },
    }


async def handle_tierbroker_error(request: Request, exc: TierBrokerError) -> JSONResponse:
    logger.log(
        logging.ERROR if exc.http_status >= 500 else logging.WARNING,
        f"{type(exc).__name__}: {exc.message}",
        extra={"error_code": exc.code, "path": request.url.path},
    )
    headers = {}
    for error_type, seconds in RETRY_AFTER_SECONDS.items():
        if isinstance(exc, error_type):
            headers["Retry-After"] = str(seconds)
    return JSONResponse(
        status_code=exc.http_status, content=exc.to_response(), headers=headers,
    )


async def handle_validation_error(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in e["loc"]),
            "message": e["msg"],
            "type": e["type"],
        }
        for e in exc.errors()
    ]
    logger.warning(
        f"Rejected request with {len(details)} invalid fields",
        extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(
            "VALIDATION_ERROR", "Invalid request data",
            ErrorCategory.VALIDATION, ErrorSeverity.ERROR, details=details,
        ),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled {type(exc).__name__}",
        exc_info=exc,
        extra={"error_code": "INTERNAL_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(
            "INTERNAL_ERROR", "An unexpected error occurred",
            ErrorCategory.INTERNAL, ErrorSeverity.CRITICAL,
        ),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TierBrokerError, handle_tierbroker_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
