"""Response interpreter: turns raw model text into typed values or typed failures.

DETERMINISTIC only, no LLM calls. Every function here accepts any string
and never raises; failures come back as ``ParseError`` values so agents
can tell a decode failure from a wrong top-level shape.

Typical flow in an agent::

    parsed = parse_array(text, feature_name="pairing suggestions")
    if isinstance(parsed, ParseError):
        return parsed.to_result()
    checked = validate_items(parsed, is_valid_suggestion)
    if checked.all_invalid:
        ...
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from pohi_platform.domain.enums import ResultKind
from pohi_platform.domain.results import RAW_PREFIX_LIMIT, Result, truncate_raw

logger = logging.getLogger(__name__)

T = TypeVar("T")
ModelT = TypeVar("ModelT", bound=BaseModel)

# ```json\n ... \n```  (language tag optional, DOTALL so the body may span lines)
FENCE_PATTERN = re.compile(r"^```(\w*)?\s*\n?(.*?)\n?\s*```$", re.DOTALL)


class ParseErrorKind(str, Enum):
    """Why interpretation failed."""

    DECODE = "decode"
    SHAPE = "shape"


@dataclass(frozen=True)
class ParseError:
    """Typed interpretation failure.

    ``raw_response_prefix`` holds at most ``RAW_PREFIX_LIMIT`` characters of
    the original text, never the whole payload.
    """

    kind: ParseErrorKind
    feature_name: str
    raw_response_prefix: str
    detail: str = ""

    @property
    def message(self) -> str:
        if self.kind == ParseErrorKind.DECODE:
            return f"Failed to parse the AI response for {self.feature_name}: {self.detail}"
        return f"The AI response for {self.feature_name} had an unexpected structure: {self.detail}"

    def to_result(self) -> Result:
        kind = ResultKind.DECODE if self.kind == ParseErrorKind.DECODE else ResultKind.SHAPE
        return Result.failure(
            error=self.message,
            kind=kind,
            raw_response_prefix=self.raw_response_prefix,
        )


@dataclass
class ValidatedItems(Generic[T]):
    """Outcome of per-item validation of a decoded sequence."""

    valid: list[T] = field(default_factory=list)
    dropped_count: int = 0

    @property
    def all_invalid(self) -> bool:
        """True when the input had items but none survived validation."""
        return self.dropped_count > 0 and not self.valid


# ---------------------------------------------------------------------------
# Text cleanup
# ---------------------------------------------------------------------------


def strip_fences(text: str) -> str:
    """Remove a surrounding markdown code fence, if there is one.

    Leading/trailing whitespace is trimmed either way, so the function is
    idempotent: ``strip_fences(strip_fences(t)) == strip_fences(t)``.
    """
    if not text:
        return ""
    cleaned = text.strip()
    match = FENCE_PATTERN.match(cleaned)
    if match and match.group(2):
        cleaned = match.group(2).strip()
    return cleaned


def _decode(text: str, feature_name: str) -> Any | ParseError:
    try:
        return json.loads(strip_fences(text))
    # ValueError covers JSONDecodeError and the int digit limit; deep nesting raises RecursionError
    except (ValueError, TypeError, RecursionError) as exc:
        logger.warning(
            "JSON parse failed for %s: %s - raw text: %.200s",
            feature_name,
            exc,
            text,
        )
        return ParseError(
            kind=ParseErrorKind.DECODE,
            feature_name=feature_name,
            raw_response_prefix=truncate_raw(text, RAW_PREFIX_LIMIT),
            detail=str(exc),
        )


# ---------------------------------------------------------------------------
# Structured decoding
# ---------------------------------------------------------------------------


def parse_object(
    text: str,
    feature_name: str,
    schema: Optional[type[ModelT]] = None,
) -> dict | ModelT | ParseError:
    """Decode ``text`` as a JSON object, optionally validated by a Pydantic schema.

    Returns:
        The decoded dict (or schema instance), or a ``ParseError`` with
        kind DECODE (not JSON) or SHAPE (not an object / schema mismatch).
    """
    decoded = _decode(text, feature_name)
    if isinstance(decoded, ParseError):
        return decoded

    if not isinstance(decoded, dict):
        return ParseError(
            kind=ParseErrorKind.SHAPE,
            feature_name=feature_name,
            raw_response_prefix=truncate_raw(text),
            detail=f"expected an object, got {type(decoded).__name__}",
        )

    if schema is None:
        return decoded

    try:
        return schema.model_validate(decoded)
    except ValidationError as exc:
        logger.warning("Schema validation failed for %s: %s", feature_name, exc)
        return ParseError(
            kind=ParseErrorKind.SHAPE,
            feature_name=feature_name,
            raw_response_prefix=truncate_raw(text),
            detail=f"{exc.error_count()} field error(s)",
        )


def parse_array(text: str, feature_name: str) -> list | ParseError:
    """Decode ``text`` as a JSON array.

    An empty array is a valid result, distinct from a parse failure.
    """
    decoded = _decode(text, feature_name)
    if isinstance(decoded, ParseError):
        return decoded

    if not isinstance(decoded, list):
        return ParseError(
            kind=ParseErrorKind.SHAPE,
            feature_name=feature_name,
            raw_response_prefix=truncate_raw(text),
            detail=f"expected an array, got {type(decoded).__name__}",
        )
    return decoded


def parse_line_list(text: str, prefix: str = "- ") -> list[str]:
    """Extract bullet lines from a prose answer.

    Lines are trimmed, only those starting with ``prefix`` are kept, the
    prefix is removed and blank results are dropped. Returns ``[]`` when
    nothing matches.
    """
    if not text:
        return []
    lines = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped.startswith(prefix):
            continue
        content = stripped[len(prefix):].strip()
        if content:
            lines.append(content)
    return lines


# ---------------------------------------------------------------------------
# Per-item validation
# ---------------------------------------------------------------------------


def validate_items(
    items: list[Any],
    predicate: Callable[[Any], bool],
    build: Optional[Callable[[Any], T]] = None,
) -> ValidatedItems[T]:
    """Filter ``items`` through ``predicate``, counting what gets dropped.

    Args:
        items: Decoded sequence from the model.
        predicate: Shape check for a single raw item.
        build: Optional converter applied to each accepted item. A
            conversion that raises ``ValidationError`` or ``ValueError``
            counts as a drop.
    """
    result: ValidatedItems[T] = ValidatedItems()
    for item in items:
        if not predicate(item):
            result.dropped_count += 1
            continue
        if build is None:
            result.valid.append(item)
            continue
        try:
            result.valid.append(build(item))
        except (ValidationError, ValueError, TypeError):
            result.dropped_count += 1

    if result.dropped_count:
        logger.warning(
            "Dropped %d of %d item(s) that failed field validation",
            result.dropped_count,
            len(items),
        )
    return result


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def has_required_strings(item: Any, *fields: str) -> bool:
    """True when ``item`` is a dict whose ``fields`` are all non-empty strings."""
    return isinstance(item, dict) and all(_non_empty_str(item.get(f)) for f in fields)


def is_valid_suggestion(item: Any) -> bool:
    """Pairing suggestion check: demandId, stockId and reason are required.

    ``matchStrength`` and ``similarityScore`` are normalised by the
    ``MatchSuggestion`` model and never cause a drop.
    """
    return has_required_strings(item, "demandId", "stockId", "reason")


def is_valid_plan_item(item: Any) -> bool:
    """Loading-plan item check: a name is required."""
    return has_required_strings(item, "name")


def is_valid_waypoint(item: Any) -> bool:
    """Waypoint check: name, a known type and a non-negative integer order."""
    if not has_required_strings(item, "name"):
        return False
    if item.get("type") not in ("pickup", "dropoff"):
        return False
    order = item.get("order")
    return isinstance(order, int) and not isinstance(order, bool) and order >= 0
