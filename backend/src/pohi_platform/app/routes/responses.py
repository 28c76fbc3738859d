"""Mapping of service ``Result`` values onto HTTP responses."""

from typing import Any, Optional

from fastapi import HTTPException

from pohi_platform.domain.enums import ResultKind
from pohi_platform.domain.results import Result

STATUS_BY_KIND: dict[ResultKind, int] = {
    ResultKind.PRECONDITION: 503,
    ResultKind.TRANSPORT: 502,
    ResultKind.DECODE: 422,
    ResultKind.SHAPE: 422,
    ResultKind.ALL_INVALID: 422,
    ResultKind.NOT_FOUND: 404,
    ResultKind.ALREADY_MATCHED: 409,
    ResultKind.INVALID_TRANSITION: 409,
    ResultKind.INSUFFICIENT_DATA: 422,
    ResultKind.PERSISTENCE: 500,
}


def raise_for_failure(result: Result) -> None:
    """Raise an HTTPException carrying ``result.to_detail()`` if it failed."""
    if result.ok:
        return
    raise HTTPException(
        status_code=STATUS_BY_KIND.get(result.kind, 500),
        detail=result.to_detail(),
    )


def envelope(result: Result, data: Optional[Any] = None) -> dict:
    """Success body: payload plus the outcome tag and diagnostics."""
    raise_for_failure(result)
    return {
        "kind": result.kind.value,
        "data": result.data if data is None else data,
        "message": result.error,
        "droppedCount": result.dropped_count,
        "tokensUsed": result.tokens_used,
    }
