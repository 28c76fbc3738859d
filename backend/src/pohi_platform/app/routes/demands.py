"""Customer demand API routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from pohi_platform.app.dependencies import get_match_engine, get_repository
from pohi_platform.app.routes.responses import raise_for_failure
from pohi_platform.domain.enums import DemandStatus, TransitionActor
from pohi_platform.domain.schemas import DemandRecord, TimberProduct
from pohi_platform.infra.repository import MarketplaceRepository, RepositoryError
from pohi_platform.services.match_engine import MatchEngine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/demands", tags=["demands"])


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class DemandCreateRequest(TimberProduct):
    """Request body for submitting a demand."""

    submitted_by_company_id: str
    submitted_by_company_name: Optional[str] = None


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("")
async def list_demands(
    company_id: Optional[str] = Query(None, alias="companyId"),
    status: Optional[DemandStatus] = None,
    repository: MarketplaceRepository = Depends(get_repository),
):
    """List demands, newest first, optionally filtered by company and status."""
    try:
        demands = await repository.load_demands()
    except RepositoryError as exc:
        logger.error("Failed to load demands: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))

    if company_id:
        demands = [d for d in demands if d.submitted_by_company_id == company_id]
    if status:
        demands = [d for d in demands if d.status == status]
    return demands


@router.post("", status_code=201)
async def submit_demand(
    body: DemandCreateRequest,
    engine: MatchEngine = Depends(get_match_engine),
):
    """Submit a new demand; its volume is derived from the dimensions."""
    demand = DemandRecord.model_validate(body.model_dump(exclude={"cubic_meters"}))
    result = await engine.submit_demand(demand)
    raise_for_failure(result)
    return result.data


@router.post("/{demand_id}/cancel")
async def cancel_demand(
    demand_id: str,
    actor: TransitionActor = TransitionActor.OWNER,
    engine: MatchEngine = Depends(get_match_engine),
):
    """Cancel a demand that is still in the Received state."""
    result = await engine.cancel_demand(demand_id, actor=actor)
    raise_for_failure(result)
    return result.data
