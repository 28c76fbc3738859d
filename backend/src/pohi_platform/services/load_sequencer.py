"""Load sequencer - turns unbilled confirmed matches into a truck loading plan.

Pipeline: group matches into pickup/drop-off stops, ask the logistics agent
for a plan, validate its items, then order them LIFO by drop-off (the
first customer's goods go in last, next to the door), lay them out along
the bed by volume and number the waypoints.
"""

import json
import logging
import math
import random
import re
from typing import Any, Optional

from pohi_platform.agents.response_interpreter import (
    is_valid_plan_item,
    is_valid_waypoint,
    validate_items,
)
from pohi_platform.app.config import get_settings
from pohi_platform.domain.enums import ResultKind, UserRole, WaypointType
from pohi_platform.domain.results import Result, truncate_raw
from pohi_platform.domain.schemas import (
    Company,
    CompanyAddress,
    ConfirmedMatch,
    LoadingPlan,
    LoadingPlanItem,
    LoadingPlanResponse,
    LoadSlot,
    RouteStop,
    StopItem,
    Waypoint,
)
from pohi_platform.services.mock_matches import generate_mock_confirmed_matches, mock_directory

logger = logging.getLogger(__name__)

MIN_MATCHES_FOR_PLANNING = 2
SIMULATED_MATCH_COUNT = 3
ADDRESS_NOT_SPECIFIED = "Address not specified"

_NUMBER_PATTERN = re.compile(r"\d+(?:[.,]\d+)?")


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------


def format_address(address: Optional[CompanyAddress]) -> str:
    """Render ``"street, zip city, country"``, skipping missing parts."""
    if address is None:
        return ADDRESS_NOT_SPECIFIED
    locality = " ".join(p for p in (address.zip_code, address.city) if p)
    parts = [p for p in (address.street, locality, address.country) if p]
    return ", ".join(parts) if parts else ADDRESS_NOT_SPECIFIED


def _stop_for(
    stops: dict[str, RouteStop],
    company_id: Optional[str],
    fallback_name: Optional[str],
    companies: dict[str, Company],
    unknown_label: str,
) -> RouteStop:
    company = companies.get(company_id or "")
    name = (company.company_name if company else None) or fallback_name or unknown_label
    key = company_id or name
    if key not in stops:
        stops[key] = RouteStop(
            company_id=company_id,
            company_name=name,
            address=format_address(company.address if company else None),
        )
    return stops[key]


def group_stops(
    matches: list[ConfirmedMatch],
    companies: list[Company],
) -> tuple[list[RouteStop], list[RouteStop]]:
    """Group matches into pickup stops (manufacturers) and drop-off stops (customers).

    Names and addresses come from the company directory when the company is
    known there, otherwise from the names stored on the match snapshots.
    Stops keep the order in which their company first appears.
    """
    directory = {c.id: c for c in companies}
    pickups: dict[str, RouteStop] = {}
    dropoffs: dict[str, RouteStop] = {}

    for match in matches:
        stock = match.stock_details
        demand = match.demand_details

        pickup = _stop_for(
            pickups,
            stock.uploaded_by_company_id,
            stock.uploaded_by_company_name,
            directory,
            "Unknown manufacturer",
        )
        pickup.items.append(
            StopItem(
                name=stock.product_name or "Timber",
                quantity=stock.quantity,
                volume_m3=f"{stock.cubic_meters:.2f}",
                stock_id=match.stock_id,
            )
        )

        dropoff = _stop_for(
            dropoffs,
            demand.submitted_by_company_id,
            demand.submitted_by_company_name,
            directory,
            "Unknown customer",
        )
        dropoff.items.append(
            StopItem(
                name=demand.product_name or "Timber",
                quantity=demand.quantity,
                volume_m3=f"{demand.cubic_meters:.2f}",
                demand_id=match.demand_id,
            )
        )

    return list(pickups.values()), list(dropoffs.values())


# ---------------------------------------------------------------------------
# Ordering and layout
# ---------------------------------------------------------------------------


def parse_volume(value: Any) -> float:
    """Read a volume that may arrive as a number or as text like ``"8 m³"``.

    Returns 0.0 for anything unparsable, negative or non-finite.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        match = _NUMBER_PATTERN.search(str(value))
        if not match:
            return 0.0
        number = float(match.group(0).replace(",", "."))
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def order_for_loading(items: list[LoadingPlanItem]) -> list[LoadingPlanItem]:
    """Sort items into loading order: highest drop-off order first.

    Items without a drop-off order go last. The sort is stable, so items
    sharing an order keep their relative position.
    """
    return sorted(
        items,
        key=lambda item: (
            item.drop_off_order is None,
            -(item.drop_off_order or 0),
        ),
    )


def allocate_widths(items: list[LoadingPlanItem], capacity_m3: float) -> list[LoadSlot]:
    """Lay items along the bed in loading order, back wall first.

    Each item's width is ``volume / max(total_volume, capacity)``, so the
    widths sum to at most 1. When both totals are zero every width is 0.
    """
    total = sum(item.volume_m3 for item in items)
    basis = max(total, capacity_m3)
    slots = []
    offset = 0.0
    for position, item in enumerate(items, start=1):
        width = item.volume_m3 / basis if basis > 0 else 0.0
        slots.append(
            LoadSlot(
                item=item,
                loading_position=position,
                offset_fraction=offset,
                width_fraction=width,
            )
        )
        offset += width
    return slots


def _capacity_percent(total_volume: float, capacity_m3: float) -> str:
    if capacity_m3 <= 0:
        return "0%"
    return f"{total_volume / capacity_m3 * 100:.0f}%"


def order_waypoints(waypoints: list[Waypoint]) -> list[Waypoint]:
    """Sort waypoints by their order and renumber them 1..n."""
    ordered = sorted(waypoints, key=lambda wp: wp.order)
    return [
        wp.model_copy(update={"order": index})
        for index, wp in enumerate(ordered, start=1)
    ]


def _normalise_name(name: Optional[str]) -> str:
    return (name or "").strip().casefold()


def fill_drop_off_orders(
    items: list[LoadingPlanItem],
    waypoints: list[Waypoint],
) -> list[LoadingPlanItem]:
    """Give items without a drop-off order the rank of their destination's stop.

    The rank is the 1-based position of the matching drop-off waypoint among
    all drop-off waypoints. Items whose destination is not on the route keep
    ``None``.
    """
    dropoffs = [wp for wp in sorted(waypoints, key=lambda wp: wp.order) if wp.type == WaypointType.DROPOFF]
    rank = {}
    for index, wp in enumerate(dropoffs, start=1):
        rank.setdefault(_normalise_name(wp.name), index)

    filled = []
    for item in items:
        if item.drop_off_order is None:
            order = rank.get(_normalise_name(item.destination_name))
            if order is not None:
                item = item.model_copy(update={"drop_off_order": order})
        filled.append(item)
    return filled


# ---------------------------------------------------------------------------
# Sequencer
# ---------------------------------------------------------------------------


class LoadSequencer:
    """Builds the consolidated loading plan for one truck.

    Example::

        sequencer = LoadSequencer(LogisticsAgent(generator))
        result = await sequencer.plan(matches, companies)
        if result.ok:
            for slot in result.data.load_slots:
                ...
    """

    def __init__(
        self,
        agent,
        truck_capacity_m3: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ):
        self.agent = agent
        self.truck_capacity_m3 = truck_capacity_m3 or get_settings().truck_capacity_m3
        self.rng = rng or random.Random()

    def _simulated_matches(
        self, companies: list[Company]
    ) -> tuple[list[ConfirmedMatch], list[Company]]:
        """Mock matches plus the directory their stops resolve against."""
        customers = [c for c in companies if c.role == UserRole.CUSTOMER]
        manufacturers = [c for c in companies if c.role == UserRole.MANUFACTURER]
        matches = generate_mock_confirmed_matches(
            SIMULATED_MATCH_COUNT, customers, manufacturers, rng=self.rng
        )
        return matches, mock_directory(SIMULATED_MATCH_COUNT, customers, manufacturers)

    async def plan(
        self,
        matches: list[ConfirmedMatch],
        companies: list[Company],
        allow_simulation: bool = False,
    ) -> Result:
        """Plan a consolidated load from the unbilled ``matches``.

        Needs at least two distinct demand/stock pairs. With fewer, the result
        is INSUFFICIENT_DATA, or with ``allow_simulation`` a plan over mock
        matches flagged ``simulated``.
        """
        if not self.agent.available:
            return self.agent.unavailable()

        unbilled = [m for m in matches if not m.billed]
        pairs = {(m.demand_id, m.stock_id) for m in unbilled}
        simulated = False
        if len(pairs) < MIN_MATCHES_FOR_PLANNING:
            if not allow_simulation:
                return Result.failure(
                    f"At least {MIN_MATCHES_FOR_PLANNING} unbilled confirmed matches "
                    f"are needed for load planning, found {len(pairs)}.",
                    kind=ResultKind.INSUFFICIENT_DATA,
                )
            logger.info(
                "Only %d unbilled match(es); planning over %d simulated matches",
                len(pairs),
                SIMULATED_MATCH_COUNT,
            )
            unbilled, companies = self._simulated_matches(companies)
            simulated = True

        pickups, dropoffs = group_stops(unbilled, companies)
        generated = await self.agent.generate_loading_plan(
            pickups, dropoffs, self.truck_capacity_m3
        )
        if not generated.ok:
            return generated
        response: LoadingPlanResponse = generated.data

        items: list[LoadingPlanItem] = []
        items_summary = None
        dropped = 0
        if isinstance(response.items, str):
            items_summary = response.items
        else:
            checked = validate_items(
                response.items, is_valid_plan_item, build=LoadingPlanItem.model_validate
            )
            if checked.all_invalid:
                return Result.failure(
                    "AI returned a loading plan, but every item was missing a name "
                    "or had invalid fields.",
                    kind=ResultKind.ALL_INVALID,
                    raw_response_prefix=truncate_raw(
                        json.dumps(response.items, ensure_ascii=False, default=str)
                    ),
                    dropped_count=checked.dropped_count,
                    latency_ms=generated.latency_ms,
                )
            items = checked.valid
            dropped = checked.dropped_count

        waypoints = validate_items(
            response.waypoints or [], is_valid_waypoint, build=Waypoint.model_validate
        ).valid
        items = fill_drop_off_orders(items, waypoints)
        ordered = order_for_loading(items)
        total_volume = round(sum(item.volume_m3 for item in ordered), 3)

        plan = LoadingPlan(
            plan_details=response.plan_details,
            items=ordered,
            items_summary=items_summary,
            capacity_used=response.capacity_used or _capacity_percent(total_volume, self.truck_capacity_m3),
            waypoints=order_waypoints(waypoints),
            optimized_route_description=response.optimized_route_description,
            load_slots=allocate_widths(ordered, self.truck_capacity_m3),
            truck_capacity_m3=self.truck_capacity_m3,
            total_volume_m3=total_volume,
            dropped_item_count=dropped,
            simulated=simulated,
        )
        logger.info(
            "Loading plan %s: %d item(s), %.2f/%.0f m³, %d waypoint(s)%s",
            plan.id,
            len(plan.items),
            total_volume,
            self.truck_capacity_m3,
            len(plan.waypoints),
            " (simulated)" if simulated else "",
        )

        if not plan.items and items_summary is None:
            return Result.empty(
                "The AI plan did not contain any items.",
                data=plan,
                tokens_used=generated.tokens_used,
                latency_ms=generated.latency_ms,
            )
        return Result.success(
            data=plan,
            dropped_count=dropped,
            tokens_used=generated.tokens_used,
            latency_ms=generated.latency_ms,
        )
