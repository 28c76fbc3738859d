"""Tests for the key-value stores and the MarketplaceRepository."""

import asyncio
import json

import pytest

from pohi_platform.domain.enums import DemandStatus
from pohi_platform.domain.schemas import MatchInterest
from pohi_platform.infra.kv_store import (
    CONFIRMED_MATCHES_KEY,
    CUSTOMER_DEMANDS_KEY,
    InMemoryKeyValueStore,
    SqlKeyValueStore,
)
from pohi_platform.infra.repository import ChangeSet, MarketplaceRepository, RepositoryError


class TestSqlKeyValueStore:

    @pytest.mark.asyncio
    async def test_round_trip_and_overwrite(self, kv_session_factory):
        store = SqlKeyValueStore(kv_session_factory)

        assert await store.get("missing") is None
        await store.set("k", "v1")
        await store.set("k", "v2")
        assert await store.get("k") == "v2"

    @pytest.mark.asyncio
    async def test_set_many(self, kv_session_factory):
        store = SqlKeyValueStore(kv_session_factory)
        await store.set_many({"a": "1", "b": "2"})
        assert (await store.get("a"), await store.get("b")) == ("1", "2")

    @pytest.mark.asyncio
    async def test_repository_over_sql_store(self, kv_session_factory, make_demand):
        repository = MarketplaceRepository(SqlKeyValueStore(kv_session_factory))
        await repository.commit(ChangeSet(demands=[make_demand()]))

        demands = await repository.load_demands()
        assert [d.id for d in demands] == ["DEM-1"]


class TestRepository:

    @pytest.mark.asyncio
    async def test_blobs_use_camel_case_keys(self, repository, memory_store, make_demand):
        await repository.commit(ChangeSet(demands=[make_demand()]))

        stored = json.loads(await memory_store.get(CUSTOMER_DEMANDS_KEY))
        assert stored[0]["submittedByCompanyId"] == "CUST-1"
        assert stored[0]["cubicMeters"] > 0

    @pytest.mark.asyncio
    async def test_upsert_replaces_by_id_and_prepends_new(self, repository, make_demand):
        await repository.commit(ChangeSet(demands=[make_demand("DEM-1"), make_demand("DEM-2")]))
        updated = make_demand("DEM-1", status=DemandStatus.CANCELLED)
        await repository.commit(ChangeSet(demands=[updated, make_demand("DEM-3")]))

        demands = await repository.load_demands()
        assert [d.id for d in demands] == ["DEM-3", "DEM-1", "DEM-2"]
        assert demands[1].status == DemandStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_concurrent_commits_do_not_lose_updates(self, repository, make_demand):
        await asyncio.gather(
            *(repository.commit(ChangeSet(demands=[make_demand(f"DEM-{i}")])) for i in range(10))
        )
        assert len(await repository.load_demands()) == 10

    @pytest.mark.asyncio
    async def test_multi_collection_commit_is_one_write(self, make_demand, make_stock, make_match):
        calls = []
        store = InMemoryKeyValueStore()
        original = store.set_many

        async def recording_set_many(entries):
            calls.append(sorted(entries))
            await original(entries)

        store.set_many = recording_set_many
        repository = MarketplaceRepository(store)

        await repository.commit(
            ChangeSet(demands=[make_demand()], stock=[make_stock()], confirmed_matches=[make_match()])
        )

        assert len(calls) == 1
        assert CONFIRMED_MATCHES_KEY in calls[0]

    @pytest.mark.asyncio
    async def test_corrupt_blob_raises(self, memory_store):
        await memory_store.set(CUSTOMER_DEMANDS_KEY, '{"not": "a list"')
        repository = MarketplaceRepository(memory_store)
        with pytest.raises(RepositoryError):
            await repository.load_demands()

    @pytest.mark.asyncio
    async def test_interests_added_and_cleared(self, repository):
        await repository.commit(
            ChangeSet(added_interests=[MatchInterest(match_id="SUG-1", company_id="CUST-1")])
        )
        await repository.commit(
            ChangeSet(added_interests=[MatchInterest(match_id="SUG-2", company_id="MANU-1")])
        )
        await repository.commit(ChangeSet(cleared_interest_match_ids={"SUG-1"}))

        assert [i.match_id for i in await repository.load_interests()] == ["SUG-2"]

    @pytest.mark.asyncio
    async def test_with_lock_serialises_same_entity(self, repository):
        order = []

        async def worker(name):
            async with repository.with_lock("STK-1", "DEM-1"):
                order.append(f"{name}-in")
                await asyncio.sleep(0.01)
                order.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert order in (
            ["a-in", "a-out", "b-in", "b-out"],
            ["b-in", "b-out", "a-in", "a-out"],
        )
