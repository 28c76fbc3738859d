"""Mock confirmed matches for the truck-planning simulation.

Used only when there are too few real unbilled matches to plan a
consolidated load and the caller explicitly asks for a simulation.
"""

import random
from datetime import datetime, timedelta, timezone
from typing import Optional

from pohi_platform.domain.enums import DemandStatus, StockStatus, UserRole
from pohi_platform.domain.schemas import (
    Company,
    CompanyAddress,
    ConfirmedMatch,
    DemandRecord,
    StockRecord,
)

DEFAULT_PRODUCT_NAME = "Acacia debarked sanded post"

_FALLBACK_CITY = {
    UserRole.CUSTOMER: "Debrecen",
    UserRole.MANUFACTURER: "Nyíregyháza",
}
_FALLBACK_COUNTRY = "Hungary"


def _company_for(index: int, companies: list[Company], role: UserRole) -> Company:
    """Pick a company round-robin, or invent a placeholder when there is none."""
    if companies:
        company = companies[index % len(companies)]
        if company.address is None:
            company = company.model_copy(
                update={
                    "address": CompanyAddress(
                        city=_FALLBACK_CITY[role], country=_FALLBACK_COUNTRY
                    )
                }
            )
        return company
    return Company(
        id=f"{role.value[:4].upper()}-MOCK-{index}",
        company_name=f"{role.value} {index + 1}",
        role=role,
        address=CompanyAddress(city=_FALLBACK_CITY[role], country=_FALLBACK_COUNTRY),
    )


def mock_directory(
    count: int,
    customers: list[Company],
    manufacturers: list[Company],
) -> list[Company]:
    """Companies referenced by ``generate_mock_confirmed_matches(count, ...)``, addresses filled in."""
    directory: dict[str, Company] = {}
    for i in range(count):
        for company in (
            _company_for(i, customers, UserRole.CUSTOMER),
            _company_for(i, manufacturers, UserRole.MANUFACTURER),
        ):
            directory.setdefault(company.id, company)
    return list(directory.values())


def generate_mock_confirmed_matches(
    count: int,
    customers: list[Company],
    manufacturers: list[Company],
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> list[ConfirmedMatch]:
    """Generate ``count`` plausible unbilled ConfirmedMatch records.

    Dimensions are drawn from realistic acacia post ranges: 20-100 pieces,
    2.0-4.0 m long, 10-20 cm diameter with a 2-6 cm spread. Pass a seeded
    ``rng`` for reproducible output.
    """
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)
    matches: list[ConfirmedMatch] = []

    for i in range(count):
        customer = _company_for(i, customers, UserRole.CUSTOMER)
        manufacturer = _company_for(i, manufacturers, UserRole.MANUFACTURER)

        quantity = rng.randint(20, 100)
        length = round(rng.uniform(2.0, 4.0), 1)
        diameter_from = rng.randint(10, 20)
        diameter_to = diameter_from + rng.randint(2, 6)

        demand = DemandRecord(
            id=f"MOCK-DEM-{i + 1}",
            product_name=DEFAULT_PRODUCT_NAME,
            diameter_from=diameter_from,
            diameter_to=diameter_to,
            length=length,
            quantity=quantity,
            notes=f"Simulated demand (Mock {i + 1})",
            status=DemandStatus.RECEIVED,
            submission_date=now - timedelta(days=rng.uniform(0, 5)),
            submitted_by_company_id=customer.id,
            submitted_by_company_name=customer.company_name,
        )
        stock = StockRecord(
            id=f"MOCK-STK-{i + 1}",
            product_name=DEFAULT_PRODUCT_NAME,
            diameter_from=diameter_from,
            diameter_to=diameter_to,
            length=length,
            quantity=quantity + rng.randint(-5, 4),
            price=f"{rng.randint(15, 25)} EUR/db",
            notes=f"Simulated stock (Mock {i + 1})",
            sustainability_info="PEFC Mock",
            status=StockStatus.AVAILABLE,
            upload_date=now - timedelta(days=rng.uniform(0, 10)),
            uploaded_by_company_id=manufacturer.id,
            uploaded_by_company_name=manufacturer.company_name,
        )
        matches.append(
            ConfirmedMatch(
                id=f"MOCK-CONF-{i + 1}",
                demand_id=demand.id,
                demand_details=demand,
                stock_id=stock.id,
                stock_details=stock,
                match_date=now,
                commission_rate=0.05,
                commission_amount=round(demand.cubic_meters * rng.uniform(10, 15), 2),
            )
        )
    return matches
