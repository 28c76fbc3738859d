"""Shared test infrastructure for the Pohi platform test suite.

Provides:
- kv_session_factory: async SQLite in-memory session factory with all tables created
- memory_store / repository: in-memory key-value store and repository over it
- FakeTextGenerator: scripted stand-in for the Gemini boundary
- make_company / make_demand / make_stock / make_match: record factories
"""

import asyncio
from typing import Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Import Base first, then models to register all tables
from pohi_platform.infra.database import Base

import pohi_platform.domain.models  # noqa: F401

from pohi_platform.domain.enums import UserRole
from pohi_platform.domain.schemas import (
    Company,
    CompanyAddress,
    ConfirmedMatch,
    DemandRecord,
    StockRecord,
)
from pohi_platform.infra.gemini_client import GenerationResponse
from pohi_platform.infra.kv_store import InMemoryKeyValueStore
from pohi_platform.infra.repository import ChangeSet, MarketplaceRepository


# ---------------------------------------------------------------------------
# Fake model boundary
# ---------------------------------------------------------------------------


class FakeTextGenerator:
    """Returns scripted responses in order; the last one repeats.

    Records every call in ``.calls`` so tests can inspect prompts.
    """

    def __init__(self, *responses: str, error: Optional[Exception] = None, delay: float = 0.0):
        self.responses = list(responses) or [""]
        self.error = error
        self.delay = delay
        self.calls: list[dict] = []

    async def generate(self, prompt, *, structured_output=False, system_instruction=None):
        self.calls.append(
            {
                "prompt": prompt,
                "structured_output": structured_output,
                "system_instruction": system_instruction,
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        text = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        return GenerationResponse(text=text, tokens_used=42)


@pytest.fixture
def fake_generator():
    """Factory fixture: ``fake_generator("[...]")`` builds a FakeTextGenerator."""
    return FakeTextGenerator


# ---------------------------------------------------------------------------
# Storage fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def kv_session_factory():
    """Async SQLite in-memory session factory with all tables created.

    StaticPool keeps every session on the same connection so they all see
    the same in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def memory_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def repository(memory_store):
    return MarketplaceRepository(memory_store)


# ---------------------------------------------------------------------------
# Record factories
# ---------------------------------------------------------------------------


def _make_company(
    company_id: str = "CUST-1",
    role: UserRole = UserRole.CUSTOMER,
    name: Optional[str] = None,
    city: Optional[str] = "Debrecen",
    **kwargs,
) -> Company:
    address = None
    if city is not None:
        address = CompanyAddress(
            street=kwargs.pop("street", "Fő utca 1"),
            zip_code=kwargs.pop("zip_code", "4025"),
            city=city,
            country=kwargs.pop("country", "Hungary"),
        )
    return Company(
        id=company_id,
        company_name=name or f"{role.value} {company_id}",
        role=role,
        address=address,
        **kwargs,
    )


def _make_demand(demand_id: str = "DEM-1", company_id: str = "CUST-1", **kwargs) -> DemandRecord:
    defaults = {
        "id": demand_id,
        "product_name": "Acacia post",
        "diameter_from": 14,
        "diameter_to": 18,
        "length": 3,
        "quantity": 100,
        "submitted_by_company_id": company_id,
        "submitted_by_company_name": f"Customer {company_id}",
    }
    defaults.update(kwargs)
    return DemandRecord(**defaults)


def _make_stock(stock_id: str = "STK-1", company_id: str = "MANU-1", **kwargs) -> StockRecord:
    defaults = {
        "id": stock_id,
        "product_name": "Acacia post",
        "diameter_from": 14,
        "diameter_to": 18,
        "length": 3,
        "quantity": 100,
        "price": "20 EUR/db",
        "uploaded_by_company_id": company_id,
        "uploaded_by_company_name": f"Manufacturer {company_id}",
    }
    defaults.update(kwargs)
    return StockRecord(**defaults)


def _make_match(
    demand: Optional[DemandRecord] = None,
    stock: Optional[StockRecord] = None,
    **kwargs,
) -> ConfirmedMatch:
    demand = demand or _make_demand()
    stock = stock or _make_stock()
    return ConfirmedMatch(
        demand_id=demand.id,
        demand_details=demand,
        stock_id=stock.id,
        stock_details=stock,
        **kwargs,
    )


@pytest.fixture
def make_company():
    """Factory for Company entries.

    Usage:
        manufacturer = make_company("MANU-1", UserRole.MANUFACTURER, city="Eger")
    """
    return _make_company


@pytest.fixture
def make_demand():
    """Factory for DemandRecord (Ø14-18cm, 3m, 100 pcs by default)."""
    return _make_demand


@pytest.fixture
def make_stock():
    """Factory for StockRecord priced "20 EUR/db" by default."""
    return _make_stock


@pytest.fixture
def make_match():
    """Factory for ConfirmedMatch from a demand and a stock record."""
    return _make_match


@pytest.fixture
def seed(repository):
    """Store records through the repository.

    Usage:
        await seed(demands=[...], stock=[...], companies=[...], matches=[...])
    """
    async def _factory(demands=(), stock=(), companies=(), matches=()):
        await repository.commit(
            ChangeSet(
                demands=list(demands),
                stock=list(stock),
                companies=list(companies),
                confirmed_matches=list(matches),
            )
        )
        return repository

    return _factory
