"""Test configuration and shared fixtures.

Services run against the in-memory record store and sequence generator,
with reference data and rate tables seeded the same way a fresh database
would be. Time is driven by a deterministic clock.
"""

from collections.abc import Awaitable, Callable, Iterator
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

import pytest
import pytest_asyncio
from attrs import frozen

from motor_core.core.config import Settings, clear_settings_cache
from motor_core.core.locks import EntityLocks
from motor_core.core.sequences import InMemorySequenceGenerator
from motor_core.core.store import InMemoryRecordStore
from motor_core.models.policy import Policy
from motor_core.models.quote import QuoteCreate, VehicleDetails
from motor_core.models.rating import DistributorType, FuelType
from motor_core.models.reference import (
    Client,
    Currency,
    Distributor,
    MotorCoverage,
    MotorProduct,
    VehicleCategory,
    VehicleMake,
    VehicleModel,
)
from motor_core.services.claim_service import ClaimService
from motor_core.services.policy_service import PolicyService
from motor_core.services.quote_service import QuoteService
from motor_core.services.rating.rate_tables import RateTableRepository
from motor_core.services.rating.rating_engine import RatingEngine
from motor_core.services.reference_data import REFERENCE_TABLES, ReferenceDataProvider
from motor_core.services.seed_data import (
    seed_rate_tables,
    seed_reference_data,
    store_reference,
)

FIXED_NOW = datetime(2025, 3, 15, 10, 0, tzinfo=timezone.utc)
POLICY_START = date(2025, 4, 1)


class FixedClock:
    """Deterministic clock that tests move forward explicitly."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


@frozen
class SeededReference:
    """Reference entities available to every lifecycle test."""

    client: Client
    other_client: Client
    broker: Distributor
    agent: Distributor
    product: MotorProduct
    coverages: dict[str, MotorCoverage]
    category: VehicleCategory
    make: VehicleMake
    model: VehicleModel
    currency: Currency


@frozen
class Services:
    quotes: QuoteService
    policies: PolicyService
    claims: ClaimService


@pytest.fixture(autouse=True)
def isolated_settings() -> Iterator[None]:
    """Never leak a cached Settings instance between tests."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(FIXED_NOW)


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def sequences() -> InMemorySequenceGenerator:
    return InMemorySequenceGenerator()


@pytest.fixture
def locks() -> EntityLocks:
    return EntityLocks()


@pytest_asyncio.fixture
async def reference(store: InMemoryRecordStore) -> SeededReference:
    """Seed reference data plus a few clients and distributors."""
    await seed_reference_data(store)
    await seed_rate_tables(store)

    client = Client(reference_number="CLI-0001", first_name="Awa", last_name="Kone")
    other_client = Client(
        reference_number="CLI-0002", first_name="Yao", last_name="Kouassi"
    )
    broker = Distributor(
        code="BRK01", name="Courtage Lagune", distributor_type=DistributorType.BROKER
    )
    agent = Distributor(
        code="AGT01",
        name="Agence Plateau",
        distributor_type=DistributorType.INTERNAL_AGENT,
    )
    for entity in (client, other_client, broker, agent):
        await store_reference(store, entity)

    provider = ReferenceDataProvider(store)
    coverages = {c.section_letter: c for c in await provider.list_coverages()}
    product = await provider.get_product_by_code("MOTOR_COMP")
    assert product is not None

    category = VehicleCategory.model_validate(
        (await store.list_all(REFERENCE_TABLES[VehicleCategory]))[0]
    )
    make = VehicleMake.model_validate(
        (await store.find(REFERENCE_TABLES[VehicleMake], code="TOY"))[0]
    )
    model = (await provider.list_vehicle_models(make.id))[0]
    currency = next(c for c in await provider.list_currencies() if c.code == "XOF")

    return SeededReference(
        client=client,
        other_client=other_client,
        broker=broker,
        agent=agent,
        product=product,
        coverages=coverages,
        category=category,
        make=make,
        model=model,
        currency=currency,
    )


@pytest.fixture
def reference_data(
    store: InMemoryRecordStore, reference: SeededReference
) -> ReferenceDataProvider:
    return ReferenceDataProvider(store)


@pytest.fixture
def rating_engine(
    store: InMemoryRecordStore, reference_data: ReferenceDataProvider
) -> RatingEngine:
    return RatingEngine(reference_data, RateTableRepository(store))


@pytest.fixture
def build_services(
    store: InMemoryRecordStore,
    sequences: InMemorySequenceGenerator,
    reference_data: ReferenceDataProvider,
    rating_engine: RatingEngine,
    clock: FixedClock,
) -> Callable[..., Services]:
    """Wire the lifecycle services against one store, optionally with settings."""

    def _build(settings: Settings | None = None) -> Services:
        settings = settings or Settings()
        quotes = QuoteService(
            store,
            sequences,
            rating_engine,
            reference_data,
            settings=settings,
            clock=clock,
        )
        policies = PolicyService(
            store,
            sequences,
            quotes,
            reference_data,
            rating_engine,
            settings=settings,
            clock=clock,
        )
        claims = ClaimService(
            store, sequences, policies, settings=settings, clock=clock
        )
        return Services(quotes=quotes, policies=policies, claims=claims)

    return _build


@pytest.fixture
def services(build_services: Callable[..., Services]) -> Services:
    return build_services()


@pytest.fixture
def make_quote_request(reference: SeededReference) -> Callable[..., QuoteCreate]:
    """Quote input for a 5,000,000 XOF, 9hp petrol car over twelve months."""

    def _make(**overrides: Any) -> QuoteCreate:
        vehicle = VehicleDetails(
            vehicle_category_id=reference.category.id,
            vehicle_make_id=reference.make.id,
            vehicle_model_id=reference.model.id,
            registration_number="AB-1234-CI",
            chassis_number="JTDBR32E720123456",
            year_of_manufacture=2021,
            horsepower=9,
            fuel_type=FuelType.ESSENCE,
            vehicle_value=Decimal("5000000"),
        )
        data: dict[str, Any] = {
            "client_id": reference.client.id,
            "product_id": reference.product.id,
            "currency_id": reference.currency.id,
            "vehicle": vehicle,
            "policy_start_date": POLICY_START,
            "duration_months": 12,
        }
        data.update(overrides)
        return QuoteCreate(**data)

    return _make


@pytest.fixture
def issue_policy(
    make_quote_request: Callable[..., QuoteCreate],
    reference: SeededReference,
) -> Callable[..., Awaitable[Policy]]:
    """Quote, accept, convert and (by default) activate a policy.

    The policy carries coverages A (0) and B (5,000), so its total premium
    is 155,000 net + 22,475 tax + 3,000 policy cost = 180,475.
    """

    async def _issue(
        services: Services, activate: bool = True, **overrides: Any
    ) -> Policy:
        overrides.setdefault(
            "coverage_ids",
            [reference.coverages["A"].id, reference.coverages["B"].id],
        )
        quote = (await services.quotes.create_quote(make_quote_request(**overrides))).unwrap()
        (await services.quotes.accept_quote(quote.id)).unwrap()
        policy = (await services.policies.convert_quote_to_policy(quote.id)).unwrap()
        if activate:
            policy = (
                await services.policies.activate_policy(policy.id, "PAY-0001")
            ).unwrap()
        return policy

    return _issue
