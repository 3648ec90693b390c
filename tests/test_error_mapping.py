"""Tests for failure to response mapping."""

import pytest

from recipe_ingest.api.errors import map_error
from recipe_ingest.errors import (
    ConfigurationError,
    InputValidationError,
    ParseError,
    ParseReason,
    RateLimitError,
    RateLimitReason,
    UpstreamError,
    ValidationReason,
)


@pytest.mark.parametrize(
    ("exc", "status_code", "code"),
    [
        (RateLimitError(RateLimitReason.CLIENT_RATE_EXCEEDED, 12.2), 429, "RATE_LIMITED"),
        (
            RateLimitError(RateLimitReason.GLOBAL_CAPACITY_EXCEEDED, 1),
            429,
            "RATE_LIMITED",
        ),
        (
            InputValidationError(ValidationReason.EMPTY_INPUT, "empty"),
            400,
            "INVALID_INPUT",
        ),
        (
            InputValidationError(ValidationReason.PAYLOAD_TOO_LARGE, "too big"),
            400,
            "INVALID_INPUT",
        ),
        (
            InputValidationError(ValidationReason.UNSUPPORTED_MEDIA_TYPE, "xml"),
            415,
            "INVALID_INPUT",
        ),
        (UpstreamError("The model backend timed out"), 500, "UPSTREAM_FAILURE"),
        (
            ParseError(ParseReason.NOT_AN_ARRAY, "not an array", "{}"),
            500,
            "EXTRACTION_FAILURE",
        ),
        (ConfigurationError("missing key"), 500, "CONFIGURATION_ERROR"),
        (KeyError("boom"), 500, "INTERNAL_ERROR"),
    ],
)
def test_map_error_status_and_code(exc: Exception, status_code: int, code: str) -> None:
    mapped = map_error(exc)

    assert mapped.status_code == status_code
    assert mapped.code == code
    assert mapped.user_message


def test_rate_limit_sets_retry_after_header() -> None:
    mapped = map_error(RateLimitError(RateLimitReason.CLIENT_RATE_EXCEEDED, 12.2))

    assert mapped.headers == {"Retry-After": "13"}


def test_parse_error_never_exposes_raw_output() -> None:
    mapped = map_error(
        ParseError(ParseReason.NO_JSON_ARRAY_FOUND, "no array", "secret model text")
    )

    body = mapped.body(include_details=True)

    assert "secret model text" not in str(body)
    assert body["details"] == "NoJsonArrayFound"


def test_body_omits_details_outside_debug() -> None:
    mapped = map_error(UpstreamError("The model backend is unreachable"))

    assert mapped.body(include_details=False) == {
        "error": mapped.user_message,
        "code": "UPSTREAM_FAILURE",
    }


def test_internal_error_diagnostic_is_exception_type_only() -> None:
    mapped = map_error(RuntimeError("postgres://user:pw@host"))

    assert mapped.diagnostic == "RuntimeError"
    assert mapped.body(include_details=True)["details"] == "RuntimeError"
