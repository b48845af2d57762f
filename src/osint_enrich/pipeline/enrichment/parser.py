"""
Structured response parsing for free-form model output.

Models wrap JSON in markdown fences, prepend explanations or append trailing
prose. The extractor locates the first JSON object and scans forward with a
brace counter that ignores braces inside quoted strings, so the candidate ends
exactly at the matching closing brace.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from osint_enrich.core.errors import MalformedResponse
from osint_enrich.core.models import Category, Location, clamp

logger = logging.getLogger(__name__)

# Country values models emit when they have no real location
PLACEHOLDER_COUNTRIES = frozenset({
    "",
    "null",
    "n/a",
    "na",
    "none",
    "unknown",
    "not specified",
    "unspecified",
    "various",
    "global",
})

_CLOSERS = {"{": "}", "[": "]"}


def _balanced_span(text: str, start: int) -> Optional[int]:
    """Index of the bracket closing the one at ``start``, or None if unbalanced."""
    opener = text[start]
    closer = _CLOSERS[opener]
    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return i

    return None


def extract_json_object(text: str, allow_array: bool = False) -> str:
    """
    Return the first balanced JSON object (or array) embedded in ``text``.

    Args:
        text: Raw model output
        allow_array: Also accept a top-level ``[...]`` when it starts first

    Raises:
        MalformedResponse: No opening brace, or no matching close
    """
    if not text:
        raise MalformedResponse("empty model response")

    starts = [text.find("{")]
    if allow_array:
        starts.append(text.find("["))
    starts = [s for s in starts if s >= 0]
    if not starts:
        raise MalformedResponse(f"no JSON object found in response: {text[:200]!r}")

    start = min(starts)
    end = _balanced_span(text, start)
    if end is None:
        raise MalformedResponse(f"unbalanced JSON object in response: {text[:200]!r}")
    return text[start:end + 1]


def _reject_constant(name: str) -> float:
    raise MalformedResponse(f"non-finite number {name} in model response")


def _finite_float(literal: str) -> float:
    value = float(literal)
    if not math.isfinite(value):
        raise MalformedResponse(f"number out of range in model response: {literal[:50]}")
    return value


def parse_json_payload(text: str, allow_array: bool = False) -> Any:
    """
    Extract and decode the first JSON value in ``text``.

    NaN, Infinity and overflowing numbers raise MalformedResponse.
    """
    candidate = extract_json_object(text, allow_array=allow_array)
    try:
        return json.loads(candidate, parse_constant=_reject_constant, parse_float=_finite_float)
    except json.JSONDecodeError as e:
        logger.debug(f"JSON candidate (first 500 chars): {candidate[:500]}")
        raise MalformedResponse(f"invalid JSON in model response: {e}") from e


class _RawLocation(BaseModel):
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    country: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class _RawAnalysis(BaseModel):
    """Wire shape of the analysis response."""

    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    title: str
    category: str
    magnitude: float
    tags: List[str]
    key_facts: List[str]
    implications: str
    confidence_notes: str
    location: Optional[_RawLocation] = None


@dataclass
class ParsedAnalysis:
    """Structured output of the primary analysis call."""

    title: str
    category: Category
    magnitude: float
    tags: List[str] = field(default_factory=list)
    key_facts: List[str] = field(default_factory=list)
    implications: str = ""
    confidence_notes: str = ""
    location: Optional[Location] = None


def parse_category(value: str) -> Category:
    """Map a category string onto the enum; unknown values become OTHER."""
    try:
        return Category((value or "").strip().lower())
    except ValueError:
        return Category.OTHER


def _accept_location(raw: Optional[_RawLocation]) -> Optional[Location]:
    if raw is None or raw.country is None:
        return None
    if raw.country.strip().lower() in PLACEHOLDER_COUNTRIES:
        return None
    return Location(
        country=raw.country.strip(),
        city=(raw.city or "").strip(),
        region=(raw.region or "").strip(),
        latitude=raw.latitude or 0.0,
        longitude=raw.longitude or 0.0,
    )


def parse_structured_analysis(text: str) -> ParsedAnalysis:
    """
    Parse a model analysis response.

    Raises:
        MalformedResponse: No JSON object, invalid JSON, or missing/mistyped fields
    """
    payload = parse_json_payload(text)
    if not isinstance(payload, dict):
        raise MalformedResponse("analysis response is not a JSON object")

    try:
        raw = _RawAnalysis.model_validate(payload)
    except ValidationError as e:
        missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise MalformedResponse(f"analysis response violates schema: {missing}") from e

    return ParsedAnalysis(
        title=raw.title.strip(),
        category=parse_category(raw.category),
        magnitude=clamp(raw.magnitude, 0.0, 10.0),
        tags=raw.tags,
        key_facts=raw.key_facts,
        implications=raw.implications,
        confidence_notes=raw.confidence_notes,
        location=_accept_location(raw.location),
    )
