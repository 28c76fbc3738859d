"""Pydantic v2 models for marketplace records, AI payloads and loading plans.

Records are stored and exchanged with camelCase keys (``demandId``,
``cubicMeters``), the format the AI prompts and the stored collections
use. Python code works with the snake_case attributes; both spellings
are accepted on input.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from pohi_platform.domain.enums import (
    DemandStatus,
    MatchStrength,
    StockStatus,
    UserRole,
    WaypointType,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


class CamelModel(BaseModel):
    """Base model serialising to camelCase and accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Company directory
# ---------------------------------------------------------------------------


class CompanyAddress(CamelModel):
    """Postal address with optional coordinates."""

    street: str | None = None
    city: str | None = None
    zip_code: str | None = None
    country: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class Company(CamelModel):
    """Company directory entry (customer, manufacturer or admin)."""

    id: str
    company_name: str
    role: UserRole
    contact_person: str | None = None
    email: str | None = None
    address: CompanyAddress | None = None


# ---------------------------------------------------------------------------
# Demand / Stock
# ---------------------------------------------------------------------------


class TimberProduct(CamelModel):
    """Product dimensions shared by demands and stock listings.

    Diameters are in centimetres, length in metres. ``cubic_meters`` is
    always derived from the dimensions and never trusted from input.
    """

    product_name: str | None = None
    diameter_type: str = "mid"
    diameter_from: float = Field(gt=0)
    diameter_to: float = Field(gt=0)
    length: float = Field(gt=0)
    quantity: int = Field(gt=0)
    cubic_meters: float = 0.0
    notes: str | None = None

    @model_validator(mode="after")
    def _derive_volume(self):
        if self.diameter_from > self.diameter_to:
            raise ValueError("diameter_from must not exceed diameter_to")
        from pohi_platform.services.match_engine import cubic_volume

        self.cubic_meters = cubic_volume(
            self.diameter_from, self.diameter_to, self.length, self.quantity
        )
        return self


class DemandRecord(TimberProduct):
    """A customer's request for a timber product."""

    id: str = Field(default_factory=lambda: _new_id("DEM"))
    status: DemandStatus = DemandStatus.RECEIVED
    submitted_by_company_id: str | None = None
    submitted_by_company_name: str | None = None
    submission_date: datetime = Field(default_factory=_utcnow)


class StockRecord(TimberProduct):
    """A manufacturer's inventory listing."""

    id: str = Field(default_factory=lambda: _new_id("STK"))
    status: StockStatus = StockStatus.AVAILABLE
    price: str | None = None  # e.g. "120 EUR/m³" or "15 EUR/db"
    sustainability_info: str | None = None
    uploaded_by_company_id: str | None = None
    uploaded_by_company_name: str | None = None
    upload_date: datetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


class MatchSuggestion(CamelModel):
    """AI-proposed pairing of one demand with one stock listing."""

    id: str = Field(default_factory=lambda: _new_id("SUG"))
    demand_id: str = Field(min_length=1)
    stock_id: str = Field(min_length=1)
    reason: str = Field(min_length=1)
    match_strength: MatchStrength = MatchStrength.MEDIUM
    similarity_score: float = 0.5

    @field_validator("match_strength", mode="before")
    @classmethod
    def _default_strength(cls, value: Any) -> MatchStrength:
        if isinstance(value, MatchStrength):
            return value
        if isinstance(value, str):
            for strength in MatchStrength:
                if strength.value.lower() == value.strip().lower():
                    return strength
        return MatchStrength.MEDIUM

    @field_validator("similarity_score", mode="before")
    @classmethod
    def _default_score(cls, value: Any) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 0.5
        if 0.0 <= value <= 1.0:
            return float(value)
        return 0.5


class MatchInterest(CamelModel):
    """One party's interest in a suggested pairing."""

    match_id: str
    company_id: str


class ConfirmedMatch(CamelModel):
    """Immutable record of a confirmed pairing and its commission.

    ``demand_details`` and ``stock_details`` are deep copies taken at
    confirmation time, so later edits to the originals do not leak in.
    """

    id: str = Field(default_factory=lambda: _new_id("CONF"))
    demand_id: str
    demand_details: DemandRecord
    stock_id: str
    stock_details: StockRecord
    match_date: datetime = Field(default_factory=_utcnow)
    commission_rate: float = 0.05
    commission_amount: float = 0.0
    billed: bool = False
    invoice_id: str | None = None


# ---------------------------------------------------------------------------
# Logistics
# ---------------------------------------------------------------------------


class LoadingPlanItem(CamelModel):
    """One crate/bundle in a loading plan."""

    name: str = Field(min_length=1)
    quality: str | None = None
    volume_m3: float = 0.0
    destination_name: str | None = None
    drop_off_order: int | None = None
    loading_suggestion: str | None = None
    notes_on_item: str | None = None
    company_id: str | None = None
    demand_id: str | None = None
    stock_id: str | None = None

    @field_validator("volume_m3", mode="before")
    @classmethod
    def _coerce_volume(cls, value: Any) -> float:
        from pohi_platform.services.load_sequencer import parse_volume

        return parse_volume(value)

    @field_validator("drop_off_order", mode="before")
    @classmethod
    def _coerce_order(cls, value: Any) -> int | None:
        if value is None or isinstance(value, bool):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None


class Waypoint(CamelModel):
    """A pickup or drop-off stop on the route."""

    name: str = Field(min_length=1)
    type: WaypointType
    order: int = Field(ge=0)


class LoadSlot(CamelModel):
    """Physical placement of an item on the truck bed.

    ``offset_fraction`` is measured from the back wall of the bed;
    ``width_fraction`` is the item's share of the bed length.
    """

    item: LoadingPlanItem
    loading_position: int
    offset_fraction: float
    width_fraction: float


class LoadingPlan(CamelModel):
    """Sequenced loading plan for one consolidated truck."""

    id: str = Field(default_factory=lambda: _new_id("PLAN"))
    plan_details: str = ""
    items: list[LoadingPlanItem] = []
    items_summary: str | None = None
    capacity_used: str = ""
    waypoints: list[Waypoint] = []
    optimized_route_description: str | None = None
    load_slots: list[LoadSlot] = []
    truck_capacity_m3: float = 25.0
    total_volume_m3: float = 0.0
    dropped_item_count: int = 0
    simulated: bool = False


class StopItem(CamelModel):
    """Item listed under a pickup or drop-off stop in the planning prompt."""

    name: str
    quantity: int
    volume_m3: str
    quality: str | None = None
    stock_id: str | None = None
    demand_id: str | None = None


class RouteStop(CamelModel):
    """A pickup (manufacturer) or drop-off (customer) location with its items."""

    company_id: str | None = None
    company_name: str
    address: str
    items: list[StopItem] = []


# ---------------------------------------------------------------------------
# Raw AI payloads
# ---------------------------------------------------------------------------


class LoadingPlanResponse(CamelModel):
    """Top-level object the logistics prompt asks the model for.

    ``items`` and ``waypoints`` stay loosely typed here; each entry is
    validated separately so one malformed item does not sink the plan.
    """

    plan_details: str = ""
    items: list[Any] | str = []
    capacity_used: str | None = None
    waypoints: list[Any] | None = None
    optimized_route_description: str | None = None

    @field_validator("capacity_used", mode="before")
    @classmethod
    def _capacity_to_str(cls, value: Any) -> str | None:
        if value is None or isinstance(value, str):
            return value
        return str(value)


class CostEstimate(CamelModel):
    """Logistics cost estimation returned by the model."""

    total_cost: str
    factors: list[str] = []
