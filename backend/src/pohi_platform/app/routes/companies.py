"""Company directory and volume calculator routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from pohi_platform.app.dependencies import get_match_engine, get_repository
from pohi_platform.app.routes.responses import raise_for_failure
from pohi_platform.domain.enums import UserRole
from pohi_platform.domain.schemas import Company
from pohi_platform.infra.repository import MarketplaceRepository, RepositoryError
from pohi_platform.services.match_engine import MatchEngine, cubic_volume

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/companies", tags=["companies"])
volume_router = APIRouter(prefix="/api/volume", tags=["volume"])


@router.get("")
async def list_companies(
    role: Optional[UserRole] = None,
    repository: MarketplaceRepository = Depends(get_repository),
):
    try:
        companies = await repository.load_companies()
    except RepositoryError as exc:
        logger.error("Failed to load companies: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))
    if role:
        companies = [c for c in companies if c.role == role]
    return companies


@router.post("", status_code=201)
async def add_company(
    body: Company,
    engine: MatchEngine = Depends(get_match_engine),
):
    """Add a company, or replace the entry with the same id."""
    result = await engine.register_company(body)
    raise_for_failure(result)
    return result.data


@volume_router.get("")
async def calculate_volume(
    diameter_from: Optional[float] = Query(None, alias="diameterFrom"),
    diameter_to: Optional[float] = Query(None, alias="diameterTo"),
    length: Optional[float] = None,
    quantity: Optional[int] = None,
):
    """Live volume preview for the demand and stock forms.

    Incomplete or inconsistent dimensions give 0 rather than an error.
    """
    return {"cubicMeters": cubic_volume(diameter_from, diameter_to, length, quantity)}
