"""Match engine - volume math, commission, and the confirm-match transaction.

Confirmation moves the demand to PROCESSING and the stock to RESERVED and
appends a ConfirmedMatch. The three effects are planned in memory by
``plan_confirmation`` (pure, no I/O) and written by
``MarketplaceRepository.commit`` in one store call, under the per-entity
locks of the demand and stock involved.
"""

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from pohi_platform.app.config import get_settings
from pohi_platform.domain.enums import (
    DemandStatus,
    ResultKind,
    StockStatus,
    TransitionActor,
)
from pohi_platform.domain.results import Result
from pohi_platform.domain.schemas import (
    Company,
    ConfirmedMatch,
    DemandRecord,
    MatchInterest,
    MatchSuggestion,
    StockRecord,
)
from pohi_platform.infra.repository import ChangeSet, MarketplaceRepository, RepositoryError
from pohi_platform.services.status_machine import InvalidTransitionError, StatusMachine

logger = logging.getLogger(__name__)

DEFAULT_COMMISSION_RATE = 0.05
# Commission per m³ assumed when the stock price cannot be parsed, before the rate
FALLBACK_PRICE_PER_M3 = 2

VOLUME_UNITS = {"m³", "m3"}
PIECE_UNITS = {"db", "pcs", "pc", "piece", "pieces", "unit", "units"}

# "120 EUR/m³", "15,5 eur / db", "20 EUR/unit"
PRICE_PATTERN = re.compile(
    r"(\d+(?:[.,]\d+)?)\s*(?:[A-Za-z]{3}|€)\s*/\s*(m³|m3|[A-Za-z]+)",
    re.IGNORECASE,
)


# ---------------------------------------------------------------------------
# Volume and commission
# ---------------------------------------------------------------------------


def cubic_volume(
    diameter_from: Any,
    diameter_to: Any,
    length: Any,
    quantity: Any,
) -> float:
    """Volume in m³ of ``quantity`` logs with the given diameter range.

    Diameters are in cm, length in m. Returns 0 (never raises) for any
    non-positive or non-numeric input, or when diameter_from > diameter_to,
    because forms call this while the user is still typing.
    """
    try:
        d_from = float(diameter_from)
        d_to = float(diameter_to)
        length_m = float(length)
        pieces = float(quantity)
    except (TypeError, ValueError):
        return 0.0

    values = (d_from, d_to, length_m, pieces)
    if not all(math.isfinite(v) and v > 0 for v in values) or d_from > d_to:
        return 0.0

    # average diameter in cm -> radius in m
    radius_m = (d_from + d_to) / 4 / 100
    return round(math.pi * radius_m ** 2 * length_m * pieces, 3)


@dataclass(frozen=True)
class PriceQuote:
    """Parsed stock price."""

    value: float
    unit: str
    per_volume: bool


def parse_price(price: Optional[str]) -> Optional[PriceQuote]:
    """Parse ``"<number> <currency>/<unit>"`` for volume or piece units."""
    if not price:
        return None
    match = PRICE_PATTERN.search(price)
    if not match:
        return None
    unit = match.group(2).lower()
    if unit in VOLUME_UNITS:
        per_volume = True
    elif unit in PIECE_UNITS:
        per_volume = False
    else:
        return None
    value = float(match.group(1).replace(",", "."))
    return PriceQuote(value=value, unit=unit, per_volume=per_volume)


def compute_commission(stock: StockRecord, commission_rate: float = DEFAULT_COMMISSION_RATE) -> float:
    """Platform commission for selling ``stock``, rounded to 2 decimals.

    A parsable price is multiplied by the stock's volume (per-m³ prices) or
    piece count (per-piece prices). Without one, the amount falls back to
    ``(cubic_meters or 1) * 2 * rate``.
    """
    quote = parse_price(stock.price)
    if quote is not None:
        basis = stock.cubic_meters if quote.per_volume else stock.quantity
        amount = quote.value * basis * commission_rate
    else:
        amount = (stock.cubic_meters or 1) * FALLBACK_PRICE_PER_M3 * commission_rate
    return round(amount, 2)


# ---------------------------------------------------------------------------
# Confirmation planning (pure)
# ---------------------------------------------------------------------------


@dataclass
class ConfirmationPlan:
    """Everything a confirmation writes: the new match and both updated records."""

    match: ConfirmedMatch
    demand: DemandRecord
    stock: StockRecord


def plan_confirmation(
    suggestion: MatchSuggestion,
    demands: list[DemandRecord],
    stock: list[StockRecord],
    existing_matches: list[ConfirmedMatch],
    commission_rate: float = DEFAULT_COMMISSION_RATE,
    now: Optional[datetime] = None,
    status_machine: Optional[StatusMachine] = None,
) -> Result:
    """Plan the confirm-match transaction without touching storage.

    Returns:
        Result with a ``ConfirmationPlan``, or NOT_FOUND / ALREADY_MATCHED /
        INVALID_TRANSITION. The input lists are never modified.
    """
    machine = status_machine or StatusMachine()
    demand = next((d for d in demands if d.id == suggestion.demand_id), None)
    stock_item = next((s for s in stock if s.id == suggestion.stock_id), None)

    if demand is None or stock_item is None:
        missing = []
        if demand is None:
            missing.append(f"demand {suggestion.demand_id}")
        if stock_item is None:
            missing.append(f"stock {suggestion.stock_id}")
        return Result.failure(
            f"Cannot confirm match: {' and '.join(missing)} not found.",
            kind=ResultKind.NOT_FOUND,
        )

    if any(
        m.demand_id == demand.id and m.stock_id == stock_item.id
        for m in existing_matches
    ):
        return Result.failure(
            f"Demand {demand.id} and stock {stock_item.id} are already matched.",
            kind=ResultKind.ALREADY_MATCHED,
        )

    try:
        machine.validate_demand_transition(
            demand.status, DemandStatus.PROCESSING, TransitionActor.MATCH_ENGINE
        )
        machine.validate_stock_transition(
            stock_item.status, StockStatus.RESERVED, TransitionActor.MATCH_ENGINE
        )
    except InvalidTransitionError as exc:
        taken = (
            demand.status == DemandStatus.PROCESSING
            or stock_item.status == StockStatus.RESERVED
        )
        return Result.failure(
            f"Cannot confirm match: {exc.reason}.",
            kind=ResultKind.ALREADY_MATCHED if taken else ResultKind.INVALID_TRANSITION,
        )

    match = ConfirmedMatch(
        demand_id=demand.id,
        demand_details=demand.model_copy(deep=True),
        stock_id=stock_item.id,
        stock_details=stock_item.model_copy(deep=True),
        match_date=now or datetime.now(timezone.utc),
        commission_rate=commission_rate,
        commission_amount=compute_commission(stock_item, commission_rate),
    )
    return Result.success(
        ConfirmationPlan(
            match=match,
            demand=demand.model_copy(update={"status": DemandStatus.PROCESSING}, deep=True),
            stock=stock_item.model_copy(update={"status": StockStatus.RESERVED}, deep=True),
        )
    )


@dataclass
class InterestOutcome:
    """Result data of ``MatchEngine.register_interest``."""

    confirmed: bool
    match: Optional[ConfirmedMatch] = None
    waiting_for_company_id: Optional[str] = None


def _persistence_failure(exc: Exception) -> Result:
    return Result.failure(str(exc), kind=ResultKind.PERSISTENCE)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class MatchEngine:
    """Owns demand/stock lifecycle changes and match confirmation.

    All public methods return a ``Result``; nothing raises to the caller.
    """

    def __init__(
        self,
        repository: MarketplaceRepository,
        commission_rate: Optional[float] = None,
        status_machine: Optional[StatusMachine] = None,
    ):
        self.repository = repository
        self.commission_rate = (
            commission_rate if commission_rate is not None else get_settings().commission_rate
        )
        self.status_machine = status_machine or StatusMachine()

    # ------------------------------------------------------------------
    # Record intake
    # ------------------------------------------------------------------

    async def submit_demand(self, demand: DemandRecord) -> Result:
        """Store a new customer demand (status RECEIVED)."""
        demand = demand.model_copy(update={"status": DemandStatus.RECEIVED})
        try:
            await self.repository.commit(ChangeSet(demands=[demand]))
        except RepositoryError as exc:
            return _persistence_failure(exc)
        logger.info("Demand %s submitted (%.3f m³)", demand.id, demand.cubic_meters)
        return Result.success(demand)

    async def upload_stock(self, stock: StockRecord) -> Result:
        """Store a new stock listing (status AVAILABLE)."""
        stock = stock.model_copy(update={"status": StockStatus.AVAILABLE})
        try:
            await self.repository.commit(ChangeSet(stock=[stock]))
        except RepositoryError as exc:
            return _persistence_failure(exc)
        logger.info("Stock %s uploaded (%.3f m³)", stock.id, stock.cubic_meters)
        return Result.success(stock)

    async def register_company(self, company: Company) -> Result:
        try:
            await self.repository.commit(ChangeSet(companies=[company]))
        except RepositoryError as exc:
            return _persistence_failure(exc)
        return Result.success(company)

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    async def suggest(self, agent) -> Result:
        """Ask ``agent`` (a MatchmakingAgent) for pairings over the current pool.

        Suggestions naming a demand or stock that is not in the pairing pool
        (unknown id, or already PROCESSING/RESERVED) are dropped and counted.
        """
        try:
            demands = await self.repository.load_demands()
            stock = await self.repository.load_stock()
            companies = await self.repository.load_companies()
        except RepositoryError as exc:
            return _persistence_failure(exc)

        result = await agent.suggest_pairings(demands, stock, companies)
        if not result.ok or result.kind != ResultKind.ITEMS:
            return result

        open_demands = {d.id for d in demands if d.status == DemandStatus.RECEIVED}
        open_stock = {s.id for s in stock if s.status == StockStatus.AVAILABLE}
        kept = [
            s for s in result.data
            if s.demand_id in open_demands and s.stock_id in open_stock
        ]
        unknown = len(result.data) - len(kept)
        if unknown:
            logger.warning("Discarded %d suggestion(s) outside the pairing pool", unknown)
        if not kept:
            return Result.failure(
                "AI suggestions referred only to unknown or already matched records.",
                kind=ResultKind.ALL_INVALID,
                dropped_count=result.dropped_count + unknown,
                latency_ms=result.latency_ms,
            )
        return Result.success(
            kept,
            dropped_count=result.dropped_count + unknown,
            tokens_used=result.tokens_used,
            latency_ms=result.latency_ms,
        )

    # ------------------------------------------------------------------
    # Confirmation
    # ------------------------------------------------------------------

    async def _plan(self, suggestion: MatchSuggestion) -> Result:
        try:
            demands = await self.repository.load_demands()
            stock = await self.repository.load_stock()
            matches = await self.repository.load_confirmed_matches()
        except RepositoryError as exc:
            return _persistence_failure(exc)
        return plan_confirmation(
            suggestion,
            demands,
            stock,
            matches,
            commission_rate=self.commission_rate,
            status_machine=self.status_machine,
        )

    async def confirm(self, suggestion: MatchSuggestion) -> Result:
        """Confirm a suggested pairing.

        Either the demand becomes PROCESSING, the stock RESERVED and a
        ConfirmedMatch is stored, or nothing changes and a failure result is
        returned. Confirming the same pair twice fails the second time.
        """
        async with self.repository.with_lock(suggestion.demand_id, suggestion.stock_id):
            planned = await self._plan(suggestion)
            if not planned.ok:
                logger.warning(
                    "Confirmation of %s/%s rejected: %s",
                    suggestion.demand_id,
                    suggestion.stock_id,
                    planned.error,
                )
                return planned

            plan: ConfirmationPlan = planned.data
            try:
                await self.repository.commit(
                    ChangeSet(
                        demands=[plan.demand],
                        stock=[plan.stock],
                        confirmed_matches=[plan.match],
                    )
                )
            except RepositoryError as exc:
                return _persistence_failure(exc)

        logger.info(
            "Match %s confirmed: demand=%s stock=%s commission=%.2f",
            plan.match.id,
            plan.match.demand_id,
            plan.match.stock_id,
            plan.match.commission_amount,
        )
        return Result.success(plan.match)

    async def register_interest(self, suggestion: MatchSuggestion, company_id: str) -> Result:
        """Record one party's interest; confirm once both parties are interested."""
        async with self.repository.with_lock(suggestion.demand_id, suggestion.stock_id):
            try:
                demands = await self.repository.load_demands()
                stock = await self.repository.load_stock()
                interests = await self.repository.load_interests()
            except RepositoryError as exc:
                return _persistence_failure(exc)

            demand = next((d for d in demands if d.id == suggestion.demand_id), None)
            stock_item = next((s for s in stock if s.id == suggestion.stock_id), None)
            if demand is None or stock_item is None:
                return Result.failure(
                    "Demand or stock for this suggestion no longer exists.",
                    kind=ResultKind.NOT_FOUND,
                )

            if (
                demand.status != DemandStatus.RECEIVED
                or stock_item.status != StockStatus.AVAILABLE
            ):
                taken = (
                    demand.status == DemandStatus.PROCESSING
                    or stock_item.status == StockStatus.RESERVED
                )
                return Result.failure(
                    f"Demand {demand.id} is {demand.status.value} and stock "
                    f"{stock_item.id} is {stock_item.status.value}.",
                    kind=ResultKind.ALREADY_MATCHED if taken else ResultKind.INVALID_TRANSITION,
                )

            parties = {demand.submitted_by_company_id, stock_item.uploaded_by_company_id}
            if company_id not in parties:
                return Result.failure(
                    f"Company {company_id} is not a party to this match.",
                    kind=ResultKind.PRECONDITION,
                )

            interested = {i.company_id for i in interests if i.match_id == suggestion.id}
            interested.add(company_id)
            if not parties <= interested:
                counterparty = next(iter(parties - interested))
                try:
                    await self.repository.commit(
                        ChangeSet(added_interests=[MatchInterest(match_id=suggestion.id, company_id=company_id)])
                    )
                except RepositoryError as exc:
                    return _persistence_failure(exc)
                return Result.success(
                    InterestOutcome(confirmed=False, waiting_for_company_id=counterparty)
                )

            planned = await self._plan(suggestion)
            if not planned.ok:
                return planned
            plan: ConfirmationPlan = planned.data
            try:
                await self.repository.commit(
                    ChangeSet(
                        demands=[plan.demand],
                        stock=[plan.stock],
                        confirmed_matches=[plan.match],
                        cleared_interest_match_ids={suggestion.id},
                    )
                )
            except RepositoryError as exc:
                return _persistence_failure(exc)

        logger.info("Match %s confirmed by mutual interest", plan.match.id)
        return Result.success(InterestOutcome(confirmed=True, match=plan.match))

    # ------------------------------------------------------------------
    # External lifecycle hooks
    # ------------------------------------------------------------------

    async def mark_billed(self, match_ids: list[str], invoice_id: str) -> Result:
        """Billing hook: flag matches billed and close their demand and stock.

        The whole batch is rejected if any id is unknown or already billed.
        """
        try:
            matches = await self.repository.load_confirmed_matches()
        except RepositoryError as exc:
            return _persistence_failure(exc)

        wanted = set(match_ids)
        related = [m for m in matches if m.id in wanted]
        lock_ids = list(wanted)
        for m in related:
            lock_ids.extend([m.demand_id, m.stock_id])

        async with self.repository.with_lock(*lock_ids):
            try:
                matches = await self.repository.load_confirmed_matches()
                demands = {d.id: d for d in await self.repository.load_demands()}
                stock = {s.id: s for s in await self.repository.load_stock()}
            except RepositoryError as exc:
                return _persistence_failure(exc)

            by_id = {m.id: m for m in matches}
            missing = sorted(wanted - by_id.keys())
            if missing:
                return Result.failure(
                    f"Unknown confirmed match id(s): {', '.join(missing)}",
                    kind=ResultKind.NOT_FOUND,
                )

            changes = ChangeSet()
            for match_id in sorted(wanted):
                match = by_id[match_id]
                if match.billed:
                    return Result.failure(
                        f"Match {match_id} is already billed.",
                        kind=ResultKind.INVALID_TRANSITION,
                    )
                changes.confirmed_matches.append(
                    match.model_copy(update={"billed": True, "invoice_id": invoice_id})
                )
                try:
                    demand = demands.get(match.demand_id)
                    if demand is not None:
                        self.status_machine.validate_demand_transition(
                            demand.status, DemandStatus.COMPLETED, TransitionActor.BILLING
                        )
                        changes.demands.append(
                            demand.model_copy(update={"status": DemandStatus.COMPLETED})
                        )
                    stock_item = stock.get(match.stock_id)
                    if stock_item is not None:
                        self.status_machine.validate_stock_transition(
                            stock_item.status, StockStatus.SOLD, TransitionActor.BILLING
                        )
                        changes.stock.append(
                            stock_item.model_copy(update={"status": StockStatus.SOLD})
                        )
                except InvalidTransitionError as exc:
                    return Result.failure(str(exc), kind=ResultKind.INVALID_TRANSITION)

            try:
                await self.repository.commit(changes)
            except RepositoryError as exc:
                return _persistence_failure(exc)

        logger.info("Invoice %s billed %d match(es)", invoice_id, len(changes.confirmed_matches))
        return Result.success(changes.confirmed_matches)

    async def cancel_demand(
        self,
        demand_id: str,
        actor: TransitionActor = TransitionActor.OWNER,
    ) -> Result:
        """Cancel a demand that has not been matched yet."""
        async with self.repository.with_lock(demand_id):
            try:
                demands = await self.repository.load_demands()
            except RepositoryError as exc:
                return _persistence_failure(exc)

            demand = next((d for d in demands if d.id == demand_id), None)
            if demand is None:
                return Result.failure(f"Demand {demand_id} not found.", kind=ResultKind.NOT_FOUND)
            try:
                self.status_machine.validate_demand_transition(
                    demand.status, DemandStatus.CANCELLED, actor
                )
            except InvalidTransitionError as exc:
                return Result.failure(str(exc), kind=ResultKind.INVALID_TRANSITION)

            cancelled = demand.model_copy(update={"status": DemandStatus.CANCELLED})
            try:
                await self.repository.commit(ChangeSet(demands=[cancelled]))
            except RepositoryError as exc:
                return _persistence_failure(exc)

        logger.info("Demand %s cancelled by %s", demand_id, actor.value)
        return Result.success(cancelled)
