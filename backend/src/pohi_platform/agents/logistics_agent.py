"""Logistics Agent - loading plans, freight advice, cost estimates and shipping e-mails.

The agent only talks to the model and interprets its answers. Grouping,
LIFO ordering and width allocation of the plan happen in
``services.load_sequencer``.
"""

import json
import logging
from typing import Optional

from pohi_platform.agents.base import BaseAgent
from pohi_platform.agents.prompts.logistics import (
    COST_ESTIMATE_PROMPT_TEMPLATE,
    FREIGHT_TIPS_PROMPT_TEMPLATE,
    LOADING_PLAN_PROMPT_TEMPLATE,
    SHIPPING_EMAIL_PROMPT_TEMPLATE,
    WAYBILL_PROMPT_TEMPLATE,
)
from pohi_platform.agents.response_interpreter import (
    ParseError,
    parse_line_list,
    parse_object,
)
from pohi_platform.app.config import get_settings
from pohi_platform.domain.enums import ResultKind
from pohi_platform.domain.results import Result
from pohi_platform.domain.schemas import (
    CostEstimate,
    LoadingPlan,
    LoadingPlanResponse,
    RouteStop,
)
from pohi_platform.infra.gemini_client import TextGenerator

logger = logging.getLogger(__name__)

LOADING_PLAN_FEATURE = "optimal loading plan"
FREIGHT_TIPS_FEATURE = "freight optimization tips"
WAYBILL_FEATURE = "waybill checklist"
COST_ESTIMATE_FEATURE = "logistics cost estimate"
SHIPPING_EMAIL_FEATURE = "shipping notification e-mail"


def _stops_json(stops: list[RouteStop]) -> str:
    return json.dumps(
        [stop.model_dump(by_alias=True, exclude_none=True) for stop in stops],
        indent=2,
        ensure_ascii=False,
    )


class LogisticsAgent(BaseAgent):
    """Generates transport plans and logistics texts for admins."""

    def __init__(
        self,
        text_generator: Optional[TextGenerator],
        language: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        super().__init__(
            agent_name="logistics",
            text_generator=text_generator,
            timeout_seconds=timeout_seconds,
        )
        self.language = language or get_settings().prompt_language

    # ------------------------------------------------------------------
    # Loading plan
    # ------------------------------------------------------------------

    def build_loading_plan_prompt(
        self,
        pickups: list[RouteStop],
        dropoffs: list[RouteStop],
        capacity_m3: float,
    ) -> str:
        return LOADING_PLAN_PROMPT_TEMPLATE.format(
            capacity_m3=capacity_m3,
            language=self.language,
            pickups_json=_stops_json(pickups),
            dropoffs_json=_stops_json(dropoffs),
        )

    async def generate_loading_plan(
        self,
        pickups: list[RouteStop],
        dropoffs: list[RouteStop],
        capacity_m3: float,
    ) -> Result:
        """Ask the model for a consolidated loading plan.

        Returns:
            Result whose ``data`` is the raw ``LoadingPlanResponse``; items
            and waypoints inside it are still unvalidated.
        """
        if not self.available:
            return self.unavailable()

        generated = await self.generate_text(
            self.build_loading_plan_prompt(pickups, dropoffs, capacity_m3),
            feature=LOADING_PLAN_FEATURE,
            structured_output=True,
        )
        if not generated.ok:
            return generated

        parsed = parse_object(generated.data, LOADING_PLAN_FEATURE, schema=LoadingPlanResponse)
        if isinstance(parsed, ParseError):
            return parsed.to_result()

        return Result.success(
            data=parsed,
            tokens_used=generated.tokens_used,
            latency_ms=generated.latency_ms,
        )

    # ------------------------------------------------------------------
    # Advice lists
    # ------------------------------------------------------------------

    async def _line_list(self, prompt: str, feature: str) -> Result:
        if not self.available:
            return self.unavailable()

        generated = await self.generate_text(prompt, feature=feature)
        if not generated.ok:
            return generated

        lines = parse_line_list(generated.data)
        if not lines:
            logger.info("[%s] %s answer contained no list lines", self.agent_name, feature)
            return Result.empty(
                f"The AI response for {feature} did not contain any list items.",
                tokens_used=generated.tokens_used,
                latency_ms=generated.latency_ms,
            )
        return Result.success(
            data=lines,
            tokens_used=generated.tokens_used,
            latency_ms=generated.latency_ms,
        )

    async def freight_tips(self) -> Result:
        """Practical tips for optimising timber freight."""
        return await self._line_list(
            FREIGHT_TIPS_PROMPT_TEMPLATE.format(language=self.language),
            FREIGHT_TIPS_FEATURE,
        )

    async def waybill_checklist(self) -> Result:
        """Checkpoints to verify on a waybill before dispatch."""
        return await self._line_list(
            WAYBILL_PROMPT_TEMPLATE.format(language=self.language),
            WAYBILL_FEATURE,
        )

    # ------------------------------------------------------------------
    # Cost estimate
    # ------------------------------------------------------------------

    async def estimate_cost(
        self,
        distance_km: int = 150,
        country: str = "Hungary",
        tonnage: int = 24,
        cargo: str = "acacia posts",
    ) -> Result:
        """Rough transport cost estimate for a full truckload."""
        if not self.available:
            return self.unavailable()

        prompt = COST_ESTIMATE_PROMPT_TEMPLATE.format(
            distance_km=distance_km,
            country=country,
            tonnage=tonnage,
            cargo=cargo,
            language=self.language,
        )
        generated = await self.generate_text(
            prompt, feature=COST_ESTIMATE_FEATURE, structured_output=True
        )
        if not generated.ok:
            return generated

        parsed = parse_object(generated.data, COST_ESTIMATE_FEATURE, schema=CostEstimate)
        if isinstance(parsed, ParseError):
            return parsed.to_result()
        return Result.success(
            data=parsed,
            tokens_used=generated.tokens_used,
            latency_ms=generated.latency_ms,
        )

    # ------------------------------------------------------------------
    # Shipping e-mail
    # ------------------------------------------------------------------

    async def draft_shipping_email(self, plan: LoadingPlan, customer_names: list[str]) -> Result:
        """Draft the e-mail telling customers their order is on this truck."""
        if not self.available:
            return self.unavailable()
        if not customer_names:
            return Result.failure(
                "No customers found in the loading plan to notify.",
                kind=ResultKind.PRECONDITION,
            )

        prompt = SHIPPING_EMAIL_PROMPT_TEMPLATE.format(
            plan_id=plan.id,
            language=self.language,
            customer_names=", ".join(customer_names),
            plan_details=plan.plan_details,
            route=plan.optimized_route_description or "Details to follow",
        )
        generated = await self.generate_text(prompt, feature=SHIPPING_EMAIL_FEATURE)
        if not generated.ok:
            return generated

        text = generated.data.strip()
        if not text:
            return Result.empty(
                "The AI returned an empty e-mail draft.",
                data="",
                tokens_used=generated.tokens_used,
                latency_ms=generated.latency_ms,
            )
        return Result.success(
            data=text,
            tokens_used=generated.tokens_used,
            latency_ms=generated.latency_ms,
        )
