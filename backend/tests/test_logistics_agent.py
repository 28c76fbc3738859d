"""Tests for the LogisticsAgent advice, cost estimate and e-mail helpers."""

import pytest

from pohi_platform.agents.logistics_agent import LogisticsAgent
from pohi_platform.domain.enums import ResultKind
from pohi_platform.domain.schemas import CostEstimate, LoadingPlan, LoadingPlanItem, LoadingPlanResponse, RouteStop


class TestLineLists:

    @pytest.mark.asyncio
    async def test_freight_tips(self, fake_generator):
        generator = fake_generator("- Consolidate partial loads\n- Book return freight\n- Plan around tolls")
        agent = LogisticsAgent(generator, language="Hungarian", timeout_seconds=5)

        result = await agent.freight_tips()

        assert result.ok
        assert len(result.data) == 3
        assert "Hungarian" in generator.calls[0]["prompt"]
        assert generator.calls[0]["structured_output"] is False

    @pytest.mark.asyncio
    async def test_waybill_checklist_without_list_is_empty(self, fake_generator):
        agent = LogisticsAgent(fake_generator("Check everything carefully."), timeout_seconds=5)
        result = await agent.waybill_checklist()
        assert result.ok
        assert result.kind == ResultKind.EMPTY
        assert result.data == []

    @pytest.mark.asyncio
    async def test_missing_client(self):
        result = await LogisticsAgent(None).freight_tips()
        assert result.kind == ResultKind.PRECONDITION


class TestCostEstimate:

    @pytest.mark.asyncio
    async def test_parsed_estimate(self, fake_generator):
        generator = fake_generator(
            '```json\n{"totalCost": "450-550 EUR", "factors": ["Fuel price", "Road tolls"]}\n```'
        )
        agent = LogisticsAgent(generator, timeout_seconds=5)

        result = await agent.estimate_cost(distance_km=200, country="Slovakia")

        assert result.ok
        assert isinstance(result.data, CostEstimate)
        assert result.data.total_cost == "450-550 EUR"
        assert "200 km" in generator.calls[0]["prompt"]
        assert "Slovakia" in generator.calls[0]["prompt"]

    @pytest.mark.asyncio
    async def test_malformed_estimate(self, fake_generator):
        agent = LogisticsAgent(fake_generator("about 500 euros"), timeout_seconds=5)
        result = await agent.estimate_cost()
        assert result.kind == ResultKind.DECODE


class TestLoadingPlanRequest:

    @pytest.mark.asyncio
    async def test_returns_raw_plan_response(self, fake_generator):
        generator = fake_generator('{"planDetails": "One stop", "items": [], "capacityUsed": 12}')
        agent = LogisticsAgent(generator, timeout_seconds=5)
        pickups = [RouteStop(company_name="Akác Fűrészüzem", address="Nyíregyháza, Hungary")]

        result = await agent.generate_loading_plan(pickups, [], 25.0)

        assert result.ok
        assert isinstance(result.data, LoadingPlanResponse)
        assert result.data.capacity_used == "12"
        assert "Akác Fűrészüzem" in generator.calls[0]["prompt"]


class TestShippingEmail:

    @pytest.mark.asyncio
    async def test_draft(self, fake_generator):
        generator = fake_generator("  Dear customers,\nyour order ships soon.  ")
        agent = LogisticsAgent(generator, timeout_seconds=5)
        plan = LoadingPlan(
            id="PLAN-1",
            plan_details="Two drops",
            items=[LoadingPlanItem(name="Posts", destination_name="Kertész Kft")],
        )

        result = await agent.draft_shipping_email(plan, ["Kertész Kft"])

        assert result.ok
        assert result.data == "Dear customers,\nyour order ships soon."
        prompt = generator.calls[0]["prompt"]
        assert "PLAN-1" in prompt and "Kertész Kft" in prompt and "Details to follow" in prompt

    @pytest.mark.asyncio
    async def test_no_customers(self, fake_generator):
        generator = fake_generator("text")
        result = await LogisticsAgent(generator, timeout_seconds=5).draft_shipping_email(LoadingPlan(), [])
        assert result.kind == ResultKind.PRECONDITION
        assert generator.calls == []
