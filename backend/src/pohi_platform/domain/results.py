"""Result type shared by agents and services.

Every public operation returns a ``Result`` instead of raising. Callers
check ``result.ok`` and branch on ``result.kind`` to tell a decode
failure from a wrong shape, an all-invalid batch, a missing record and
so on.
"""

from dataclasses import dataclass
from typing import Any, Optional

from pohi_platform.domain.enums import ResultKind

# Upper bound on how much raw AI text is echoed back in diagnostics
RAW_PREFIX_LIMIT = 300


def truncate_raw(text: Optional[str], limit: int = RAW_PREFIX_LIMIT) -> str:
    """Return at most ``limit`` characters of ``text`` for error messages."""
    if not text:
        return ""
    return text[:limit]


@dataclass
class Result:
    """Standard result type for agent and service operations.

    Attributes:
        ok: True if the operation succeeded.
        kind: Outcome tag (``ITEMS``/``EMPTY`` on success).
        data: The response payload (parsed records, a plan, text, ...).
        error: Human-readable error description when ``ok`` is False.
        raw_response_prefix: Truncated AI text for decode/shape failures.
        dropped_count: Items discarded by per-item validation.
        tokens_used: Total tokens consumed (prompt + completion).
        latency_ms: Wall-clock time for the AI call in milliseconds.
    """

    ok: bool
    kind: ResultKind
    data: Any = None
    error: Optional[str] = None
    raw_response_prefix: Optional[str] = None
    dropped_count: int = 0
    tokens_used: int = 0
    latency_ms: int = 0

    @classmethod
    def success(
        cls,
        data: Any,
        dropped_count: int = 0,
        tokens_used: int = 0,
        latency_ms: int = 0,
    ) -> "Result":
        """Create a successful result carrying ``data``."""
        return cls(
            ok=True,
            kind=ResultKind.ITEMS,
            data=data,
            dropped_count=dropped_count,
            tokens_used=tokens_used,
            latency_ms=latency_ms,
        )

    @classmethod
    def empty(
        cls,
        message: Optional[str] = None,
        data: Any = None,
        tokens_used: int = 0,
        latency_ms: int = 0,
    ) -> "Result":
        """Create a successful result for "legitimately nothing found"."""
        return cls(
            ok=True,
            kind=ResultKind.EMPTY,
            data=[] if data is None else data,
            error=message,
            tokens_used=tokens_used,
            latency_ms=latency_ms,
        )

    @classmethod
    def failure(
        cls,
        error: str,
        kind: ResultKind,
        raw_response_prefix: Optional[str] = None,
        dropped_count: int = 0,
        latency_ms: int = 0,
    ) -> "Result":
        """Create a failure result."""
        return cls(
            ok=False,
            kind=kind,
            error=error,
            raw_response_prefix=raw_response_prefix,
            dropped_count=dropped_count,
            latency_ms=latency_ms,
        )

    def to_detail(self) -> dict:
        """Serialise the failure part for an HTTP error body."""
        return {
            "kind": self.kind.value,
            "message": self.error,
            "raw_response_prefix": self.raw_response_prefix,
            "dropped_count": self.dropped_count,
        }
