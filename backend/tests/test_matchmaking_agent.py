"""Tests for the MatchmakingAgent: preconditions, transport failures and interpretation."""

import json

import pytest

from pohi_platform.agents.matchmaking_agent import MatchmakingAgent, interpret_suggestions
from pohi_platform.domain.enums import DemandStatus, MatchStrength, ResultKind, StockStatus, UserRole


def _pairing(demand_id="DEM-1", stock_id="STK-1", **extra):
    item = {"demandId": demand_id, "stockId": stock_id, "reason": "Identical dimensions, 40 km apart"}
    item.update(extra)
    return item


@pytest.fixture
def pool(make_demand, make_stock, make_company):
    demands = [make_demand("DEM-1"), make_demand("DEM-2", status=DemandStatus.PROCESSING)]
    stock = [make_stock("STK-1"), make_stock("STK-2", status=StockStatus.SOLD)]
    companies = [
        make_company("CUST-1", UserRole.CUSTOMER, city="Debrecen"),
        make_company("MANU-1", UserRole.MANUFACTURER, city="Nyíregyháza"),
    ]
    return demands, stock, companies


# ---------------------------------------------------------------------------
# interpret_suggestions
# ---------------------------------------------------------------------------


class TestInterpretSuggestions:

    def test_valid_and_invalid_items(self):
        text = json.dumps(
            [
                _pairing(matchStrength="High", similarityScore=0.92),
                {"demandId": "DEM-2", "stockId": "STK-2"},
                _pairing("DEM-3", "STK-3", matchStrength="Excellent"),
            ]
        )
        result = interpret_suggestions(text, tokens_used=10, latency_ms=5)

        assert result.ok
        assert result.kind == ResultKind.ITEMS
        assert result.dropped_count == 1
        assert result.tokens_used == 10
        assert [s.match_strength for s in result.data] == [MatchStrength.HIGH, MatchStrength.MEDIUM]

    def test_empty_array(self):
        result = interpret_suggestions("```json\n[]\n```")
        assert result.ok
        assert result.kind == ResultKind.EMPTY
        assert result.data == []

    def test_all_invalid_keeps_raw_prefix(self):
        text = json.dumps([{"demandId": "DEM-1"}, {"stockId": "STK-1"}])
        result = interpret_suggestions(text)

        assert not result.ok
        assert result.kind == ResultKind.ALL_INVALID
        assert result.dropped_count == 2
        assert result.raw_response_prefix == text

    def test_pathological_json_is_decode_failure(self):
        result = interpret_suggestions("[" * 200000 + "]" * 200000)
        assert not result.ok
        assert result.kind == ResultKind.DECODE

    def test_decode_failure(self):
        result = interpret_suggestions("Sorry, I cannot help with that.")
        assert result.kind == ResultKind.DECODE
        assert result.raw_response_prefix.startswith("Sorry")


# ---------------------------------------------------------------------------
# suggest_pairings
# ---------------------------------------------------------------------------


class TestSuggestPairings:

    @pytest.mark.asyncio
    async def test_missing_client_is_precondition(self, pool):
        agent = MatchmakingAgent(None)
        result = await agent.suggest_pairings(*pool)
        assert result.kind == ResultKind.PRECONDITION

    @pytest.mark.asyncio
    async def test_prompt_contains_only_open_records(self, pool, fake_generator):
        generator = fake_generator(json.dumps([_pairing()]))
        agent = MatchmakingAgent(generator, language="Hungarian", timeout_seconds=5)

        result = await agent.suggest_pairings(*pool)

        assert result.ok
        call = generator.calls[0]
        assert call["structured_output"] is True
        assert call["system_instruction"]
        assert "DEM-1" in call["prompt"] and "DEM-2" not in call["prompt"]
        assert "STK-1" in call["prompt"] and "STK-2" not in call["prompt"]
        assert "Hungarian" in call["prompt"]
        assert "Debrecen, Hungary" in call["prompt"]

    @pytest.mark.asyncio
    async def test_items_are_capped(self, make_demand, make_stock, fake_generator):
        generator = fake_generator("[]")
        agent = MatchmakingAgent(generator, max_items=2, timeout_seconds=5)
        demands = [make_demand(f"DEM-{i}") for i in range(5)]
        stock = [make_stock(f"STK-{i}") for i in range(5)]

        await agent.suggest_pairings(demands, stock, [])

        prompt = generator.calls[0]["prompt"]
        assert "DEM-1" in prompt and "DEM-2" not in prompt
        assert "STK-1" in prompt and "STK-2" not in prompt

    @pytest.mark.asyncio
    async def test_nothing_to_pair_skips_the_call(self, make_demand, fake_generator):
        generator = fake_generator("[]")
        agent = MatchmakingAgent(generator, timeout_seconds=5)

        result = await agent.suggest_pairings([make_demand()], [], [])

        assert result.kind == ResultKind.EMPTY
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_transport_error(self, pool, fake_generator):
        agent = MatchmakingAgent(fake_generator(error=RuntimeError("503 from upstream")), timeout_seconds=5)
        result = await agent.suggest_pairings(*pool)
        assert not result.ok
        assert result.kind == ResultKind.TRANSPORT

    @pytest.mark.asyncio
    async def test_timeout_is_transport(self, pool, fake_generator):
        agent = MatchmakingAgent(fake_generator("[]", delay=1.0), timeout_seconds=0.01)
        result = await agent.suggest_pairings(*pool)
        assert result.kind == ResultKind.TRANSPORT


# ---------------------------------------------------------------------------
# suggest_dispute_resolutions
# ---------------------------------------------------------------------------


class TestDisputeResolutions:

    @pytest.mark.asyncio
    async def test_line_list(self, fake_generator):
        agent = MatchmakingAgent(
            fake_generator("- Bring in a mediator\n- Commission an independent grading\nThanks!"),
            timeout_seconds=5,
        )
        result = await agent.suggest_dispute_resolutions("Customer says 20% of posts are cracked.")
        assert result.ok
        assert result.data == ["Bring in a mediator", "Commission an independent grading"]

    @pytest.mark.asyncio
    async def test_short_details_rejected_before_call(self, fake_generator):
        generator = fake_generator("- anything")
        agent = MatchmakingAgent(generator, timeout_seconds=5)

        result = await agent.suggest_dispute_resolutions("cracked")

        assert result.kind == ResultKind.PRECONDITION
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_prose_answer_is_empty(self, fake_generator):
        agent = MatchmakingAgent(fake_generator("Talk to each other."), timeout_seconds=5)
        result = await agent.suggest_dispute_resolutions("Delivery arrived two weeks late.")
        assert result.ok
        assert result.kind == ResultKind.EMPTY
