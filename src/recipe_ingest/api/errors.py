"""Map pipeline failures to stable JSON error responses."""

import logging
import math
from dataclasses import dataclass

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from recipe_ingest.errors import (
    ConfigurationError,
    InputValidationError,
    ParseError,
    RateLimitError,
    RateLimitReason,
    UpstreamError,
    ValidationReason,
)

_logger = logging.getLogger(__name__)

RATE_LIMITED = "RATE_LIMITED"
INVALID_INPUT = "INVALID_INPUT"
UPSTREAM_FAILURE = "UPSTREAM_FAILURE"
EXTRACTION_FAILURE = "EXTRACTION_FAILURE"
CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass(frozen=True)
class MappedError:
    """Wire representation of a failure."""

    status_code: int
    code: str
    user_message: str
    diagnostic: str
    headers: dict[str, str] | None = None

    def body(self, *, include_details: bool) -> dict[str, str]:
        payload = {"error": self.user_message, "code": self.code}
        if include_details and self.diagnostic:
            payload["details"] = self.diagnostic
        return payload


def map_error(exc: Exception) -> MappedError:  # noqa: PLR0911
    """Return status, code and messages for any failure."""
    if isinstance(exc, RateLimitError):
        message = (
            "The service is busy right now. Please try again in a minute."
            if exc.reason is RateLimitReason.GLOBAL_CAPACITY_EXCEEDED
            else "Too many requests. Please wait a minute and try again."
        )
        retry_after = max(1, math.ceil(exc.retry_after_seconds))
        return MappedError(
            status_code=429,
            code=RATE_LIMITED,
            user_message=message,
            diagnostic=str(exc.reason),
            headers={"Retry-After": str(retry_after)},
        )
    if isinstance(exc, InputValidationError):
        status_code = (
            415 if exc.reason is ValidationReason.UNSUPPORTED_MEDIA_TYPE else 400
        )
        return MappedError(
            status_code=status_code,
            code=INVALID_INPUT,
            user_message=exc.message,
            diagnostic=str(exc.reason),
        )
    if isinstance(exc, UpstreamError):
        return MappedError(
            status_code=500,
            code=UPSTREAM_FAILURE,
            user_message=(
                "The recipe analyzer is unavailable right now. Please try again later."
            ),
            diagnostic=exc.message,
        )
    if isinstance(exc, ParseError):
        return MappedError(
            status_code=500,
            code=EXTRACTION_FAILURE,
            user_message=(
                "Couldn't read the ingredients. "
                "Try a clearer photo or paste the recipe as text."
            ),
            diagnostic=str(exc.reason),
        )
    if isinstance(exc, ConfigurationError):
        return MappedError(
            status_code=500,
            code=CONFIGURATION_ERROR,
            user_message="The service is not configured. Please contact the site owner.",
            diagnostic=exc.message,
        )
    return MappedError(
        status_code=500,
        code=INTERNAL_ERROR,
        user_message="Something went wrong. Please try again.",
        diagnostic=type(exc).__name__,
    )


def error_response(exc: Exception, *, include_details: bool) -> JSONResponse:
    """Log the failure and build its JSON response."""
    mapped = map_error(exc)
    if mapped.code == INTERNAL_ERROR:
        _logger.error("Unhandled error in request pipeline", exc_info=exc)
    elif mapped.status_code >= 500:
        _logger.warning("Request failed: code=%s %s", mapped.code, exc)
    else:
        _logger.info("Request rejected: code=%s %s", mapped.code, mapped.diagnostic)
    return JSONResponse(
        status_code=mapped.status_code,
        content=mapped.body(include_details=include_details),
        headers=mapped.headers,
    )


def register_error_handlers(app: FastAPI) -> None:
    """Render framework HTTP errors (404, 405, ...) as JSON ``{"error": ...}``."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=exc.headers,
        )
