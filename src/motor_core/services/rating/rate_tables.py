# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Rate tables and their persistence.

This module holds the five lookup tables consumed by the rating engine and
the tax/commission calculators, the seeded default values, and the
repository that loads them from the record store with a Redis cache in
front.
"""

from decimal import Decimal
from typing import Any

from beartype import beartype
from pydantic import Field, ValidationError

from ...core.cache import Cache
from ...core.logging_utils import get_logger
from ...core.store import RecordStore
from ...models.base import BaseModelConfig
from ...models.rating import (
    CommissionRate,
    DistributorType,
    FuelType,
    PolicyCostBracket,
    ProductTaxRate,
    ProductType,
    RatingFactor,
    ShortTermFactor,
)
from ..cache_keys import CacheKeys

logger = get_logger(__name__)

# Fallbacks used when the commission table has no row for a channel.
DEFAULT_COMMISSION_RATES: dict[DistributorType, Decimal] = {
    DistributorType.INTERNAL_AGENT: Decimal("0.10"),
    DistributorType.BROKER: Decimal("0.125"),
    DistributorType.GENERAL_AGENT: Decimal("0.15"),
    DistributorType.BANCASSURANCE: Decimal("0.08"),
}
FALLBACK_COMMISSION_RATE = Decimal("0.10")

TAX_LABEL = "Taxes"
CONTROL_FEE_LABEL = "Frais de contrôle"
CONTROL_FEE_RATE = Decimal("0.0125")
STANDARD_TAX_RATE = Decimal("0.145")

# CIMA defaults per product line, as (tax name, rate, is_fee).
DEFAULT_TAX_RATES: dict[ProductType, list[tuple[str, Decimal, bool]]] = {
    ProductType.MOTOR: [
        (TAX_LABEL, STANDARD_TAX_RATE, False),
        (CONTROL_FEE_LABEL, CONTROL_FEE_RATE, True),
    ],
    ProductType.FIRE: [
        (TAX_LABEL, Decimal("0.25"), False),
        (CONTROL_FEE_LABEL, CONTROL_FEE_RATE, True),
    ],
    ProductType.LIABILITY: [
        (TAX_LABEL, STANDARD_TAX_RATE, False),
        (CONTROL_FEE_LABEL, CONTROL_FEE_RATE, True),
    ],
    ProductType.TRANSPORT: [
        (TAX_LABEL, STANDARD_TAX_RATE, False),
        (CONTROL_FEE_LABEL, CONTROL_FEE_RATE, True),
    ],
}

_HORSEPOWER_BANDS: list[tuple[int, int, str]] = [
    (4, 7, "2.50"),
    (8, 9, "3.00"),
    (10, 11, "3.50"),
    (12, 14, "4.00"),
    (15, 20, "5.00"),
    (21, 999, "6.00"),
]

_SHORT_TERM: list[tuple[int, str]] = [
    (1, "0.25"),
    (3, "0.40"),
    (6, "0.70"),
    (9, "0.85"),
    (12, "1.00"),
]

_MOTOR_POLICY_COSTS: list[tuple[str, str | None, str]] = [
    ("0", "25000", "1000"),
    ("25001", "50000", "1500"),
    ("50001", "75000", "2000"),
    ("75001", "100000", "2500"),
    ("100001", None, "3000"),
]


@beartype
def default_tax_rates(product_type: ProductType) -> list[ProductTaxRate]:
    """CIMA default tax rows for a product line."""
    rows = DEFAULT_TAX_RATES.get(product_type, DEFAULT_TAX_RATES[ProductType.MOTOR])
    return [
        ProductTaxRate(product_type=product_type, tax_name=name, rate=rate, is_fee=is_fee)
        for name, rate, is_fee in rows
    ]


@beartype
class RateTables(BaseModelConfig):
    """Snapshot of every rating lookup table."""

    rating_factors: list[RatingFactor] = Field(default_factory=list)
    short_term_factors: list[ShortTermFactor] = Field(default_factory=list)
    policy_cost_brackets: list[PolicyCostBracket] = Field(default_factory=list)
    commission_rates: list[CommissionRate] = Field(default_factory=list)
    product_tax_rates: list[ProductTaxRate] = Field(default_factory=list)

    @classmethod
    def default(cls) -> "RateTables":
        """Seeded tables."""
        rating_factors = [
            RatingFactor(
                horsepower_min=low,
                horsepower_max=high,
                fuel_type=fuel,
                rate_percentage=Decimal(rate),
            )
            for fuel in (FuelType.ESSENCE, FuelType.DIESEL)
            for low, high, rate in _HORSEPOWER_BANDS
        ]
        short_term_factors = [
            ShortTermFactor(months=months, coefficient=Decimal(coefficient))
            for months, coefficient in _SHORT_TERM
        ]
        policy_cost_brackets = [
            PolicyCostBracket(
                net_premium_min=Decimal(low),
                net_premium_max=Decimal(high) if high is not None else None,
                cost_amount=Decimal(cost),
                product_code="MOTOR",
            )
            for low, high, cost in _MOTOR_POLICY_COSTS
        ]
        commission_rates = [
            CommissionRate(
                distributor_type=distributor_type,
                product_type=ProductType.MOTOR,
                rate=rate,
                description=f"{distributor_type.value} - Motor",
            )
            for distributor_type, rate in DEFAULT_COMMISSION_RATES.items()
        ]
        product_tax_rates = [
            row
            for product_type in (ProductType.MOTOR, ProductType.FIRE, ProductType.LIABILITY)
            for row in default_tax_rates(product_type)
        ]
        return cls(
            rating_factors=rating_factors,
            short_term_factors=short_term_factors,
            policy_cost_brackets=policy_cost_brackets,
            commission_rates=commission_rates,
            product_tax_rates=product_tax_rates,
        )

    def rating_factor(self, horsepower: int, fuel_type: FuelType) -> Decimal | None:
        """Rate percentage of the first band containing the horsepower."""
        for factor in self.rating_factors:
            if factor.matches(horsepower, fuel_type):
                return factor.rate_percentage
        return None

    def short_term_coefficient(self, months: int) -> Decimal | None:
        for factor in self.short_term_factors:
            if factor.months == months:
                return factor.coefficient
        return None

    def policy_cost(self, net_premium: Decimal, product_code: str) -> Decimal | None:
        """Cost of the bracket containing the net premium."""
        for bracket in self.policy_cost_brackets:
            if bracket.product_code == product_code and bracket.contains(net_premium):
                return bracket.cost_amount
        return None

    def commission_rate(
        self, distributor_type: DistributorType, product_type: ProductType
    ) -> Decimal:
        """Configured rate, else the per-channel default."""
        for row in self.commission_rates:
            if row.distributor_type == distributor_type and row.product_type == product_type:
                return row.rate
        return DEFAULT_COMMISSION_RATES.get(distributor_type, FALLBACK_COMMISSION_RATE)

    def tax_rates(self, product_type: ProductType) -> list[ProductTaxRate]:
        """Configured rows for the product line, else the CIMA defaults."""
        rows = [row for row in self.product_tax_rates if row.product_type == product_type]
        return rows or default_tax_rates(product_type)

    def premium_tax_rate(self, product_type: ProductType) -> Decimal:
        """Rate of the first non-fee tax row for the product line."""
        for row in self.tax_rates(product_type):
            if not row.is_fee:
                return row.rate
        return STANDARD_TAX_RATE

    def consistency_errors(self) -> list[str]:
        """Overlapping horsepower bands and policy cost brackets."""
        errors: list[str] = []

        by_fuel: dict[FuelType, list[RatingFactor]] = {}
        for factor in self.rating_factors:
            if factor.is_active:
                by_fuel.setdefault(factor.fuel_type, []).append(factor)
        for fuel, factors in by_fuel.items():
            ordered = sorted(factors, key=lambda f: f.horsepower_min)
            for previous, current in zip(ordered, ordered[1:]):
                if current.horsepower_min <= previous.horsepower_max:
                    errors.append(
                        f"{fuel.value}: horsepower bands "
                        f"{previous.horsepower_min}-{previous.horsepower_max} and "
                        f"{current.horsepower_min}-{current.horsepower_max} overlap"
                    )

        by_product: dict[str, list[PolicyCostBracket]] = {}
        for bracket in self.policy_cost_brackets:
            by_product.setdefault(bracket.product_code, []).append(bracket)
        for code, brackets in by_product.items():
            ordered_brackets = sorted(brackets, key=lambda b: b.net_premium_min)
            for prev_bracket, bracket in zip(ordered_brackets, ordered_brackets[1:]):
                if (
                    prev_bracket.net_premium_max is None
                    or bracket.net_premium_min <= prev_bracket.net_premium_max
                ):
                    errors.append(
                        f"{code}: policy cost brackets starting at "
                        f"{prev_bracket.net_premium_min} and {bracket.net_premium_min} overlap"
                    )

        months = [factor.months for factor in self.short_term_factors]
        if len(months) != len(set(months)):
            errors.append("short term factors contain duplicate durations")

        return errors


@beartype
class RateTableRepository:
    """Loads rate tables from the record store, cached in Redis."""

    TABLE = "rate_tables"
    SECTIONS = (
        "rating_factors",
        "short_term_factors",
        "policy_cost_brackets",
        "commission_rates",
        "product_tax_rates",
    )

    def __init__(self, store: RecordStore, cache: Cache | None = None) -> None:
        self._store = store
        self._cache = cache

    def _cache_ready(self) -> bool:
        return self._cache is not None and self._cache.is_connected

    async def load(self) -> RateTables:
        """Assemble the tables in force, falling back to defaults per section."""
        if self._cache_ready():
            cached = await self._cache.get(CacheKeys.active_rate_tables())  # type: ignore[union-attr]
            if cached is not None:
                try:
                    return RateTables.model_validate(cached)
                except ValidationError:
                    logger.warning("Discarding malformed cached rate tables")

        defaults = RateTables.default()
        sections: dict[str, Any] = {}
        for section in self.SECTIONS:
            record = await self._store.get(self.TABLE, section)
            if record is None:
                logger.debug("Rate table %s not stored, using defaults", section)
                sections[section] = getattr(defaults, section)
            else:
                sections[section] = record["rows"]

        tables = RateTables.model_validate(sections)

        if self._cache_ready():
            await self._cache.set(  # type: ignore[union-attr]
                CacheKeys.active_rate_tables(), tables.model_dump(mode="json")
            )
        return tables

    async def save(self, tables: RateTables) -> None:
        """Store every section and drop the cached snapshot."""
        payload = tables.model_dump(mode="json")
        for section in self.SECTIONS:
            record = {"id": section, "name": section, "rows": payload[section]}
            if await self._store.get(self.TABLE, section) is None:
                await self._store.insert(self.TABLE, section, record)
            else:
                await self._store.update(self.TABLE, section, record)

        await self.invalidate()
        logger.info("Rate tables saved")

    async def invalidate(self) -> None:
        if self._cache_ready():
            await self._cache.delete(CacheKeys.active_rate_tables())  # type: ignore[union-attr]
