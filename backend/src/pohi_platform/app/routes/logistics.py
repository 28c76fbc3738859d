"""Logistics hub API routes: truck planning and AI logistics helpers."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field

from pohi_platform.agents.logistics_agent import LogisticsAgent
from pohi_platform.app.dependencies import (
    get_load_sequencer,
    get_logistics_agent,
    get_repository,
)
from pohi_platform.app.routes.responses import envelope
from pohi_platform.domain.schemas import CamelModel, LoadingPlan
from pohi_platform.infra.repository import MarketplaceRepository, RepositoryError
from pohi_platform.services.load_sequencer import LoadSequencer

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/logistics", tags=["logistics"])


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoadingPlanRequest(CamelModel):
    """Plan over unbilled matches; simulate with mock matches if there are too few."""

    allow_simulation: bool = False


class CostEstimateRequest(CamelModel):
    distance_km: int = Field(150, gt=0)
    country: str = "Hungary"
    tonnage: int = Field(24, gt=0)
    cargo: str = "acacia posts"


class ShippingEmailRequest(CamelModel):
    plan: LoadingPlan


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/loading-plan")
async def create_loading_plan(
    body: LoadingPlanRequest,
    sequencer: LoadSequencer = Depends(get_load_sequencer),
    repository: MarketplaceRepository = Depends(get_repository),
):
    """Build a LIFO-ordered loading plan for one consolidated truck."""
    try:
        matches = await repository.load_confirmed_matches()
        companies = await repository.load_companies()
    except RepositoryError as exc:
        logger.error("Failed to load planning data: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))

    result = await sequencer.plan(matches, companies, allow_simulation=body.allow_simulation)
    return envelope(result)


@router.post("/freight-tips")
async def freight_tips(agent: LogisticsAgent = Depends(get_logistics_agent)):
    return envelope(await agent.freight_tips())


@router.post("/waybill-checklist")
async def waybill_checklist(agent: LogisticsAgent = Depends(get_logistics_agent)):
    return envelope(await agent.waybill_checklist())


@router.post("/cost-estimate")
async def cost_estimate(
    body: CostEstimateRequest,
    agent: LogisticsAgent = Depends(get_logistics_agent),
):
    result = await agent.estimate_cost(
        distance_km=body.distance_km,
        country=body.country,
        tonnage=body.tonnage,
        cargo=body.cargo,
    )
    return envelope(result)


@router.post("/shipping-email")
async def shipping_email(
    body: ShippingEmailRequest,
    agent: LogisticsAgent = Depends(get_logistics_agent),
):
    """Draft the shipment notice for every customer on the plan."""
    customers = []
    for item in body.plan.items:
        if item.destination_name and item.destination_name not in customers:
            customers.append(item.destination_name)
    return envelope(await agent.draft_shipping_email(body.plan, customers))
