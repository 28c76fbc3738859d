"""Billing hook routes."""

from fastapi import APIRouter, Depends
from pydantic import Field

from pohi_platform.app.dependencies import get_match_engine
from pohi_platform.app.routes.responses import raise_for_failure
from pohi_platform.domain.schemas import CamelModel
from pohi_platform.services.match_engine import MatchEngine

router = APIRouter(prefix="/api/billing", tags=["billing"])


class MarkBilledRequest(CamelModel):
    """Matches covered by one invoice."""

    match_ids: list[str] = Field(min_length=1)
    invoice_id: str = Field(min_length=1)


@router.post("/mark-billed")
async def mark_billed(
    body: MarkBilledRequest,
    engine: MatchEngine = Depends(get_match_engine),
):
    """Flag matches billed; their demands complete and their stock is sold."""
    result = await engine.mark_billed(body.match_ids, body.invoice_id)
    raise_for_failure(result)
    return result.data
