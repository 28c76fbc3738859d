"""Typed repository over the key-value store.

``MarketplaceRepository`` reads whole collections and writes change
sets. Two guards keep concurrent callers honest:

- ``with_lock(*entity_ids)`` serialises operations touching the same
  demand/stock/match ids (locks taken in sorted order, so two callers
  locking overlapping ids cannot deadlock).
- ``commit`` re-reads the touched collections under a write lock and
  upserts by id, so two operations on different entities never
  overwrite each other's blob.
"""

import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, TypeVar

from pydantic import TypeAdapter, ValidationError

from pohi_platform.domain.schemas import (
    Company,
    ConfirmedMatch,
    DemandRecord,
    MatchInterest,
    StockRecord,
)
from pohi_platform.infra.kv_store import (
    COMPANIES_KEY,
    CONFIRMED_MATCHES_KEY,
    CUSTOMER_DEMANDS_KEY,
    MANUFACTURER_STOCK_KEY,
    MATCH_INTERESTS_KEY,
    KeyValueStore,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DEMANDS = TypeAdapter(list[DemandRecord])
_STOCK = TypeAdapter(list[StockRecord])
_COMPANIES = TypeAdapter(list[Company])
_MATCHES = TypeAdapter(list[ConfirmedMatch])
_INTERESTS = TypeAdapter(list[MatchInterest])


class RepositoryError(Exception):
    """Raised when a stored collection cannot be decoded or written."""


@dataclass
class ChangeSet:
    """Records to upsert (by id) and interests to add/remove, written as one unit."""

    demands: list[DemandRecord] = field(default_factory=list)
    stock: list[StockRecord] = field(default_factory=list)
    companies: list[Company] = field(default_factory=list)
    confirmed_matches: list[ConfirmedMatch] = field(default_factory=list)
    added_interests: list[MatchInterest] = field(default_factory=list)
    cleared_interest_match_ids: set[str] = field(default_factory=set)

    @property
    def touches_interests(self) -> bool:
        return bool(self.added_interests or self.cleared_interest_match_ids)


def _upsert(existing: list[T], updates: list[T]) -> list[T]:
    """Replace records with matching ids in place; prepend new ones."""
    by_id = {record.id: record for record in updates}
    merged = [by_id.pop(record.id, record) for record in existing]
    new_records = [record for record in updates if record.id in by_id]
    return new_records + merged


class MarketplaceRepository:
    """Load and persist marketplace collections."""

    def __init__(self, store: KeyValueStore):
        self.store = store
        self._entity_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._write_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def with_lock(self, *entity_ids: str) -> AsyncIterator[None]:
        """Hold the per-entity locks for ``entity_ids`` for the block's duration."""
        locks = [self._entity_locks[entity_id] for entity_id in sorted(set(entity_ids))]
        acquired: list[asyncio.Lock] = []
        try:
            for lock in locks:
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _load(self, key: str, adapter: TypeAdapter) -> list:
        raw = await self.store.get(key)
        if not raw:
            return []
        try:
            return adapter.validate_json(raw)
        except ValidationError as exc:
            logger.error("Stored collection %s is corrupt: %s", key, exc)
            raise RepositoryError(f"Stored collection '{key}' could not be decoded") from exc

    async def load_demands(self) -> list[DemandRecord]:
        return await self._load(CUSTOMER_DEMANDS_KEY, _DEMANDS)

    async def load_stock(self) -> list[StockRecord]:
        return await self._load(MANUFACTURER_STOCK_KEY, _STOCK)

    async def load_companies(self) -> list[Company]:
        return await self._load(COMPANIES_KEY, _COMPANIES)

    async def load_confirmed_matches(self) -> list[ConfirmedMatch]:
        return await self._load(CONFIRMED_MATCHES_KEY, _MATCHES)

    async def load_interests(self) -> list[MatchInterest]:
        return await self._load(MATCH_INTERESTS_KEY, _INTERESTS)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def commit(self, changes: ChangeSet) -> None:
        """Apply ``changes`` to the stored collections in one ``set_many`` call."""
        async with self._write_lock:
            entries: dict[str, str] = {}
            if changes.demands:
                merged = _upsert(await self.load_demands(), changes.demands)
                entries[CUSTOMER_DEMANDS_KEY] = _DEMANDS.dump_json(merged, by_alias=True).decode()
            if changes.stock:
                merged = _upsert(await self.load_stock(), changes.stock)
                entries[MANUFACTURER_STOCK_KEY] = _STOCK.dump_json(merged, by_alias=True).decode()
            if changes.companies:
                merged = _upsert(await self.load_companies(), changes.companies)
                entries[COMPANIES_KEY] = _COMPANIES.dump_json(merged, by_alias=True).decode()
            if changes.confirmed_matches:
                merged = _upsert(await self.load_confirmed_matches(), changes.confirmed_matches)
                entries[CONFIRMED_MATCHES_KEY] = _MATCHES.dump_json(merged, by_alias=True).decode()
            if changes.touches_interests:
                interests = [
                    i for i in await self.load_interests()
                    if i.match_id not in changes.cleared_interest_match_ids
                ]
                for interest in changes.added_interests:
                    if interest.match_id in changes.cleared_interest_match_ids:
                        continue
                    if interest not in interests:
                        interests.append(interest)
                entries[MATCH_INTERESTS_KEY] = _INTERESTS.dump_json(interests, by_alias=True).decode()

            if not entries:
                return
            try:
                await self.store.set_many(entries)
            except Exception as exc:
                logger.error("Failed to write collections %s: %s", sorted(entries), exc)
                raise RepositoryError("Failed to write marketplace collections") from exc
