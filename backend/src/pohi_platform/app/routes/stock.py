"""Manufacturer stock API routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from pohi_platform.app.dependencies import get_match_engine, get_repository
from pohi_platform.app.routes.responses import raise_for_failure
from pohi_platform.domain.enums import StockStatus
from pohi_platform.domain.schemas import StockRecord, TimberProduct
from pohi_platform.infra.repository import MarketplaceRepository, RepositoryError
from pohi_platform.services.match_engine import MatchEngine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/stock", tags=["stock"])


class StockCreateRequest(TimberProduct):
    """Request body for uploading a stock listing."""

    uploaded_by_company_id: str
    uploaded_by_company_name: Optional[str] = None
    price: Optional[str] = None
    sustainability_info: Optional[str] = None


@router.get("")
async def list_stock(
    company_id: Optional[str] = Query(None, alias="companyId"),
    status: Optional[StockStatus] = None,
    repository: MarketplaceRepository = Depends(get_repository),
):
    """List stock, newest first, optionally filtered by company and status."""
    try:
        stock = await repository.load_stock()
    except RepositoryError as exc:
        logger.error("Failed to load stock: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))

    if company_id:
        stock = [s for s in stock if s.uploaded_by_company_id == company_id]
    if status:
        stock = [s for s in stock if s.status == status]
    return stock


@router.post("", status_code=201)
async def upload_stock(
    body: StockCreateRequest,
    engine: MatchEngine = Depends(get_match_engine),
):
    """Upload a stock listing; its volume is derived from the dimensions."""
    stock = StockRecord.model_validate(body.model_dump(exclude={"cubic_meters"}))
    result = await engine.upload_stock(stock)
    raise_for_failure(result)
    return result.data
