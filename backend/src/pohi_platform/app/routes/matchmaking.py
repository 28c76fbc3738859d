"""Matchmaking API routes.

Suggestions come from the MatchmakingAgent; confirmations go through the
MatchEngine, either directly (admin) or by mutual interest of both parties.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from pohi_platform.agents.matchmaking_agent import MatchmakingAgent
from pohi_platform.app.dependencies import (
    get_match_engine,
    get_matchmaking_agent,
    get_repository,
)
from pohi_platform.app.routes.responses import envelope, raise_for_failure
from pohi_platform.domain.schemas import CamelModel, MatchSuggestion
from pohi_platform.infra.repository import MarketplaceRepository, RepositoryError
from pohi_platform.services.match_engine import MatchEngine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/matchmaking", tags=["matchmaking"])


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class InterestRequest(CamelModel):
    """A party marking interest in a suggested pairing."""

    suggestion: MatchSuggestion
    company_id: str


class DisputeRequest(CamelModel):
    details: str


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/suggestions")
async def suggest_pairings(
    engine: MatchEngine = Depends(get_match_engine),
    agent: MatchmakingAgent = Depends(get_matchmaking_agent),
):
    """Ask the AI which open demands fit which available stock."""
    return envelope(await engine.suggest(agent))


@router.post("/confirm")
async def confirm_match(
    body: MatchSuggestion,
    engine: MatchEngine = Depends(get_match_engine),
):
    """Confirm a suggested pairing: reserve the stock and record the match."""
    result = await engine.confirm(body)
    raise_for_failure(result)
    return result.data


@router.post("/interest")
async def register_interest(
    body: InterestRequest,
    engine: MatchEngine = Depends(get_match_engine),
):
    """Record a party's interest; the match is confirmed once both agree."""
    result = await engine.register_interest(body.suggestion, body.company_id)
    raise_for_failure(result)
    outcome = result.data
    return {
        "confirmed": outcome.confirmed,
        "match": outcome.match,
        "waitingForCompanyId": outcome.waiting_for_company_id,
    }


@router.get("/confirmed")
async def list_confirmed_matches(
    billed: Optional[bool] = None,
    repository: MarketplaceRepository = Depends(get_repository),
):
    try:
        matches = await repository.load_confirmed_matches()
    except RepositoryError as exc:
        logger.error("Failed to load confirmed matches: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))
    if billed is not None:
        matches = [m for m in matches if m.billed == billed]
    return matches


@router.post("/disputes")
async def suggest_dispute_resolutions(
    body: DisputeRequest,
    agent: MatchmakingAgent = Depends(get_matchmaking_agent),
):
    """AI suggestions for resolving a dispute between two parties."""
    return envelope(await agent.suggest_dispute_resolutions(body.details))
