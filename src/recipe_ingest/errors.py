"""Failure taxonomy for the recipe ingestion pipeline.

Every pipeline stage either returns a value or raises one of these errors.
Only the HTTP layer turns them into responses (see ``api.errors``).
"""

from enum import StrEnum


class RecipeIngestError(Exception):
    """Base exception for all pipeline failures."""

    def __init__(self, message: str, details: dict[str, object] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationReason(StrEnum):
    """Why a request was rejected during normalization."""

    EMPTY_INPUT = "EmptyInput"
    PAYLOAD_TOO_LARGE = "PayloadTooLarge"
    MALFORMED_BODY = "MalformedBody"
    UNSUPPORTED_MEDIA_TYPE = "UnsupportedMediaType"


class InputValidationError(RecipeIngestError):
    """The incoming request cannot be turned into an extraction request."""

    def __init__(
        self,
        reason: ValidationReason,
        message: str,
        details: dict[str, object] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.reason = reason


class RateLimitReason(StrEnum):
    """Which admission ceiling was hit."""

    CLIENT_RATE_EXCEEDED = "ClientRateExceeded"
    GLOBAL_CAPACITY_EXCEEDED = "GlobalCapacityExceeded"


class RateLimitError(RecipeIngestError):
    """Request denied by admission control; retryable."""

    def __init__(self, reason: RateLimitReason, retry_after_seconds: float) -> None:
        super().__init__(
            f"Rate limit exceeded: {reason}",
            {"retry_after_seconds": retry_after_seconds},
        )
        self.reason = reason
        self.retry_after_seconds = retry_after_seconds


class UpstreamError(RecipeIngestError):
    """The generative backend failed, refused, or was unreachable."""


class ConfigurationError(RecipeIngestError):
    """Required deployment configuration is missing."""


class ParseReason(StrEnum):
    """Why backend output could not be turned into ingredients."""

    NO_JSON_ARRAY_FOUND = "NoJsonArrayFound"
    NOT_AN_ARRAY = "NotAnArray"
    MALFORMED_ELEMENT = "MalformedElement"


class ParseError(RecipeIngestError):
    """Backend output did not contain a usable ingredient array.

    ``raw_text`` is kept for logging only and never sent to clients.
    """

    def __init__(self, reason: ParseReason, message: str, raw_text: str) -> None:
        super().__init__(message, {"reason": str(reason)})
        self.reason = reason
        self.raw_text = raw_text
