"""Global exception handlers — map engine exceptions to HTTP status codes.

The engine raises typed ``IntakeError`` subclasses.  Rather than catching
them in every route, one handler looks the class up in a table and picks
the status code, keeping route handlers focused on the happy path.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from intake_engine.errors import (
    ConfigurationError,
    EmptyTranscriptError,
    GenerationError,
    IntakeError,
    NotFoundError,
    SequenceError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# --- Exception class → HTTP status; checked in order, first isinstance match wins ---
_STATUS_BY_ERROR: list[tuple[type[IntakeError], int]] = [
    (ValidationError, 422),
    (SequenceError, 409),
    (NotFoundError, 404),
    (GenerationError, 502),
    (EmptyTranscriptError, 400),
    (ConfigurationError, 500),
]

# --- Client-safe messages keyed by HTTP status code ---
# Session ids and provider errors stay in the server log.
_SAFE_MESSAGES: dict[int, str] = {
    400: "Invalid request",
    404: "Resource not found",
    409: "Answer does not match the expected question; refresh and try again",
    500: "Internal server error",
    502: "Could not generate a response right now; please try again",
}


def status_for(exc: IntakeError) -> int:
    for cls, status in _STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return status
    return 400


async def intake_error_handler(request: Request, exc: IntakeError) -> JSONResponse:
    """Map an ``IntakeError`` to a contextual HTTP error response.

    Validation messages are written for end users and are returned as-is;
    every other message is logged and replaced by a generic description.
    """
    status = status_for(exc)
    if status >= 500:
        logger.error("%s [%d] at %s: %s", type(exc).__name__, status, request.url, exc, exc_info=exc)
    else:
        logger.warning("%s [%d] at %s: %s", type(exc).__name__, status, request.url, exc)

    if isinstance(exc, ValidationError):
        detail = str(exc)
    else:
        detail = _SAFE_MESSAGES.get(status, "Invalid request")
    return JSONResponse(status_code=status, content={"detail": detail})


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — log full traceback, return 500."""
    logger.exception("Unhandled exception at %s", request.url)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )
