"""Key-value store boundary.

Domain collections are serialised as whole-collection JSON strings under
fixed keys. There are no partial reads or writes; ``set_many`` is the
only way to write several collections as one unit.
"""

from typing import Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pohi_platform.domain.models import KeyValueEntry

CUSTOMER_DEMANDS_KEY = "pohi-ai-customer-demands"
MANUFACTURER_STOCK_KEY = "pohi-ai-manufacturer-stock"
COMPANIES_KEY = "pohi-ai-mock-companies"
CONFIRMED_MATCHES_KEY = "pohi-ai-confirmed-matches"
MATCH_INTERESTS_KEY = "pohi-ai-match-interests"


class KeyValueStore(Protocol):
    """String store addressed by key."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...

    async def set_many(self, entries: dict[str, str]) -> None:
        ...


class InMemoryKeyValueStore:
    """Process-local store used by tests and demo runs."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def set_many(self, entries: dict[str, str]) -> None:
        self._data.update(entries)


class SqlKeyValueStore:
    """Store backed by the ``kv_entries`` table.

    Each call opens its own session; ``set_many`` commits every entry in
    a single transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get(self, key: str) -> Optional[str]:
        async with self.session_factory() as session:
            entry = await session.get(KeyValueEntry, key)
            return entry.value if entry else None

    async def set(self, key: str, value: str) -> None:
        await self.set_many({key: value})

    async def set_many(self, entries: dict[str, str]) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                for key, value in entries.items():
                    await session.merge(KeyValueEntry(key=key, value=value))
