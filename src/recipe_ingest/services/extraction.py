"""Turn free-text backend output into a validated ingredient list.

Parsing is an ordered chain of strategies. Each strategy is a pure function
from raw text to a decoded JSON value. It raises ``ValueError`` when it does
not apply, or ``RecursionError`` on deeply nested input; the first strategy
that succeeds wins.
"""

import json
import logging
import math
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Literal

from recipe_ingest.domain.recipes import UNKNOWN_INGREDIENT, Ingredient
from recipe_ingest.errors import ParseError, ParseReason

_logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"^\s*```[A-Za-z0-9_-]*[ \t]*\r?\n?")
_FENCE_CLOSE = re.compile(r"\r?\n?```\s*$")

Strategy = Callable[[str], object]


def strip_code_fences(text: str) -> str:
    """Remove a leading ```lang line and a trailing ``` marker, if present."""
    cleaned = _FENCE_OPEN.sub("", text, count=1)
    cleaned = _FENCE_CLOSE.sub("", cleaned, count=1)
    return cleaned.strip()


def parse_direct(text: str) -> object:
    """Parse the fence-stripped text as JSON."""
    return json.loads(strip_code_fences(text))


def parse_bracket_slice(text: str) -> object:
    """Parse the span from the first ``[`` to the last ``]``."""
    cleaned = strip_code_fences(text)
    start = cleaned.find("[")
    end = cleaned.rfind("]")
    if start == -1 or end <= start:
        raise ValueError("no JSON array brackets in output")
    return json.loads(cleaned[start : end + 1])


DEFAULT_STRATEGIES: tuple[Strategy, ...] = (parse_direct, parse_bracket_slice)


@dataclass
class ResponseExtractor:
    """Extract ingredients from raw model output."""

    weight_policy: Literal["zero", "null"] = "zero"
    strategies: Sequence[Strategy] = field(default=DEFAULT_STRATEGIES)

    def extract(self, raw_output: str) -> list[Ingredient]:
        """Return ingredients; an empty list means nothing was recognized."""
        decoded = self._decode(raw_output)
        if not isinstance(decoded, list):
            _logger.warning(
                "Model output is not an array: type=%s raw=%r",
                type(decoded).__name__,
                raw_output,
            )
            raise ParseError(
                ParseReason.NOT_AN_ARRAY,
                "Model output is not a JSON array",
                raw_output,
            )
        return [self._coerce(element, raw_output) for element in decoded]

    def _decode(self, raw_output: str) -> object:
        for strategy in self.strategies:
            try:
                return strategy(raw_output)
            except (ValueError, RecursionError):
                continue
        _logger.warning("No JSON array found in model output: raw=%r", raw_output)
        raise ParseError(
            ParseReason.NO_JSON_ARRAY_FOUND,
            "No JSON array found in model output",
            raw_output,
        )

    def _coerce(self, element: object, raw_output: str) -> Ingredient:
        if not isinstance(element, dict):
            _logger.warning(
                "Malformed ingredient element: %r raw=%r", element, raw_output
            )
            raise ParseError(
                ParseReason.MALFORMED_ELEMENT,
                "Ingredient entries must be objects",
                raw_output,
            )
        return Ingredient(
            name=_coerce_name(element.get("name")),
            weight=_coerce_weight(element.get("weight"), self._missing_weight),
        )

    @property
    def _missing_weight(self) -> float | None:
        return 0 if self.weight_policy == "zero" else None


def _coerce_name(value: object) -> str:
    if value is None or isinstance(value, dict | list):
        return UNKNOWN_INGREDIENT
    name = str(value).strip()
    return name or UNKNOWN_INGREDIENT


def _coerce_weight(value: object, default: float | None) -> float | None:
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, int | float):
        try:
            number = float(value)
        except OverflowError:
            return default
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    if not math.isfinite(number) or number < 0:
        return default
    return number
