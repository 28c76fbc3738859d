"""Matchmaking Agent - proposes demand/stock pairings and dispute resolutions."""

import json
import logging
from typing import Optional

from pohi_platform.agents.base import BaseAgent
from pohi_platform.agents.prompts.matchmaking import (
    DISPUTE_PROMPT_TEMPLATE,
    MATCHMAKING_SYSTEM_PROMPT,
    PAIRING_PROMPT_TEMPLATE,
)
from pohi_platform.agents.response_interpreter import (
    ParseError,
    is_valid_suggestion,
    parse_array,
    parse_line_list,
    validate_items,
)
from pohi_platform.app.config import get_settings
from pohi_platform.domain.enums import DemandStatus, ResultKind, StockStatus
from pohi_platform.domain.results import Result, truncate_raw
from pohi_platform.domain.schemas import Company, DemandRecord, MatchSuggestion, StockRecord
from pohi_platform.infra.gemini_client import TextGenerator

logger = logging.getLogger(__name__)

PAIRING_FEATURE = "pairing suggestions"
DISPUTE_FEATURE = "dispute resolution suggestions"

MIN_DISPUTE_DETAILS_LENGTH = 10


def _company_location(company_id: Optional[str], companies: dict[str, Company]) -> Optional[str]:
    company = companies.get(company_id or "")
    if not company or not company.address:
        return None
    return f"{company.address.city}, {company.address.country}"


def _format_dimensions(record: DemandRecord | StockRecord) -> str:
    return f"Ø{record.diameter_from:g}-{record.diameter_to:g}cm, {record.length:g}m"


def interpret_suggestions(
    text: str,
    tokens_used: int = 0,
    latency_ms: int = 0,
) -> Result:
    """Turn the model's pairing answer into ``MatchSuggestion`` records.

    Outcomes:
        ITEMS: at least one valid suggestion (``dropped_count`` may be > 0).
        EMPTY: the model returned ``[]``.
        DECODE / SHAPE: text was not JSON / not an array.
        ALL_INVALID: an array whose every item lacked required fields.
    """
    parsed = parse_array(text, feature_name=PAIRING_FEATURE)
    if isinstance(parsed, ParseError):
        return parsed.to_result()

    if not parsed:
        return Result.empty(
            "The AI found no promising pairings.",
            tokens_used=tokens_used,
            latency_ms=latency_ms,
        )

    checked = validate_items(parsed, is_valid_suggestion, build=MatchSuggestion.model_validate)
    if checked.all_invalid:
        return Result.failure(
            "AI returned suggestions, but every item had missing or invalid "
            "demandId, stockId or reason fields.",
            kind=ResultKind.ALL_INVALID,
            raw_response_prefix=truncate_raw(text),
            dropped_count=checked.dropped_count,
            latency_ms=latency_ms,
        )

    return Result.success(
        data=checked.valid,
        dropped_count=checked.dropped_count,
        tokens_used=tokens_used,
        latency_ms=latency_ms,
    )


class MatchmakingAgent(BaseAgent):
    """Asks the model which open demands fit which available stock.

    Only RECEIVED demands and AVAILABLE stock are sent, capped at
    ``max_items_per_prompt`` each to keep the prompt small.
    """

    def __init__(
        self,
        text_generator: Optional[TextGenerator],
        language: Optional[str] = None,
        max_items: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
    ):
        super().__init__(
            agent_name="matchmaking",
            text_generator=text_generator,
            timeout_seconds=timeout_seconds,
        )
        settings = get_settings()
        self.language = language or settings.prompt_language
        self.max_items = max_items or settings.max_items_per_prompt

    def build_pairing_prompt(
        self,
        demands: list[DemandRecord],
        stock: list[StockRecord],
        companies: list[Company],
    ) -> str:
        by_id = {c.id: c for c in companies}
        demand_data = [
            {
                "id": d.id,
                "productName": d.product_name,
                "dimensions": _format_dimensions(d),
                "quantity": d.quantity,
                "cubicMeters": d.cubic_meters,
                "companyName": d.submitted_by_company_name,
                "location": _company_location(d.submitted_by_company_id, by_id),
            }
            for d in demands
        ]
        stock_data = [
            {
                "id": s.id,
                "productName": s.product_name,
                "dimensions": _format_dimensions(s),
                "quantity": s.quantity,
                "price": s.price,
                "cubicMeters": s.cubic_meters,
                "companyName": s.uploaded_by_company_name,
                "location": _company_location(s.uploaded_by_company_id, by_id),
            }
            for s in stock
        ]
        return PAIRING_PROMPT_TEMPLATE.format(
            language=self.language,
            demand_count=len(demand_data),
            demands_json=json.dumps(demand_data, indent=2, ensure_ascii=False),
            stock_count=len(stock_data),
            stock_json=json.dumps(stock_data, indent=2, ensure_ascii=False),
        )

    async def suggest_pairings(
        self,
        demands: list[DemandRecord],
        stock: list[StockRecord],
        companies: list[Company],
    ) -> Result:
        """Get pairing suggestions for the open demands and available stock.

        Returns:
            Result whose ``data`` is a list of ``MatchSuggestion``; EMPTY when
            there is nothing to pair, PRECONDITION when AI is not configured.
        """
        if not self.available:
            return self.unavailable()

        active = [d for d in demands if d.status == DemandStatus.RECEIVED][: self.max_items]
        available = [s for s in stock if s.status == StockStatus.AVAILABLE][: self.max_items]
        if not active or not available:
            return Result.empty("There are no active demands or available stock to pair.")

        prompt = self.build_pairing_prompt(active, available, companies)
        generated = await self.generate_text(
            prompt,
            feature=PAIRING_FEATURE,
            structured_output=True,
            system_instruction=MATCHMAKING_SYSTEM_PROMPT,
        )
        if not generated.ok:
            return generated

        result = interpret_suggestions(
            generated.data,
            tokens_used=generated.tokens_used,
            latency_ms=generated.latency_ms,
        )
        if result.dropped_count:
            logger.warning(
                "[%s] AI returned %d invalid suggestion item(s) that were filtered out",
                self.agent_name,
                result.dropped_count,
            )
        return result

    async def suggest_dispute_resolutions(self, details: str) -> Result:
        """Get a list of practical resolution suggestions for a dispute."""
        if not self.available:
            return self.unavailable()
        if not details or len(details.strip()) < MIN_DISPUTE_DETAILS_LENGTH:
            return Result.failure(
                "Please describe the dispute in more detail.",
                kind=ResultKind.PRECONDITION,
            )

        generated = await self.generate_text(
            DISPUTE_PROMPT_TEMPLATE.format(language=self.language, details=details.strip()),
            feature=DISPUTE_FEATURE,
        )
        if not generated.ok:
            return generated

        suggestions = parse_line_list(generated.data)
        if not suggestions:
            return Result.empty(
                "The AI response did not contain any usable suggestions.",
                tokens_used=generated.tokens_used,
                latency_ms=generated.latency_ms,
            )
        return Result.success(
            data=suggestions,
            tokens_used=generated.tokens_used,
            latency_ms=generated.latency_ms,
        )
