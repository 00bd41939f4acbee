from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging

from .obs.metrics import metrics

logger = logging.getLogger(__name__)


class HoroscopeError(Exception):
    """
    Base class for errors reported to the caller.

    Attributes:
        code: Error code following CATEGORY.SPECIFIC_ERROR pattern
        message: Human-readable message returned as the ``error`` field
        status_code: HTTP status used for the response
    """

    code = "INPUT.INVALID"
    message = "Invalid input"
    status_code = 400

    def __init__(self, message: str = None, detail: str = ""):
        self.message = message or self.message
        self.detail = detail
        super().__init__(self.message)


class MissingField(HoroscopeError):
    code = "INPUT.MISSING_REQUIRED"
    message = "Missing date, time or location"


class UnsupportedLocation(HoroscopeError):
    code = "LOCATION.UNSUPPORTED"
    message = "Unsupported location"


class InvalidFormat(HoroscopeError):
    code = "INPUT.INVALID_FORMAT"
    message = "Invalid date or time format"


def error_body(message: str) -> dict:
    return {"error": message}


async def horoscope_error_handler(request: Request, exc: HoroscopeError):
    """Render a HoroscopeError as ``{"error": message}``."""
    logger.warning(
        f"Bad request: {exc.code} - {exc.message}",
        extra={"error_code": exc.code, "detail": exc.detail, "path": request.url.path}
    )
    metrics.record_error(exc.code)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """
    Map pydantic validation errors to MissingField.

    The request body carries three optional strings, so the only way to fail
    schema validation is an absent/non-object body or a non-string field.
    Both mean the caller did not supply usable date, time and location.
    """
    return await horoscope_error_handler(request, MissingField(detail=str(exc.errors())[:200]))


async def unhandled_error_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger.error(f"Unhandled exception in {request.method} {request.url}: {exc}", exc_info=exc)
    metrics.record_error("SERVER.ERROR")
    return JSONResponse(status_code=500, content=error_body("Internal server error"))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HoroscopeError, horoscope_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
