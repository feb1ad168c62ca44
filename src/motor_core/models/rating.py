# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Rate table rows, rating inputs and itemized premium outputs.

All monetary amounts and rates are ``Decimal``. Rates stored as fractions
(commission, tax) are applied directly; ``rate_percentage`` on rating
factors is a percentage and is divided by 100 by the engine.
"""

from decimal import Decimal
from enum import Enum
from typing import Self
from uuid import UUID

from beartype import beartype
from pydantic import Field, model_validator

from .base import BaseModelConfig


class FuelType(str, Enum):
    """Fuel types carried by horsepower rating bands."""

    ESSENCE = "Essence"
    DIESEL = "Diesel"


class ProductType(str, Enum):
    """Insurance product lines used by tax and commission tables."""

    MOTOR = "Motor"
    FIRE = "Fire"
    LIABILITY = "Liability"
    TRANSPORT = "Transport"
    HEALTH = "Health"


class DistributorType(str, Enum):
    """Distribution channels."""

    INTERNAL_AGENT = "InternalAgent"
    GENERAL_AGENT = "GeneralAgent"
    BROKER = "Broker"
    BANCASSURANCE = "Bancassurance"


@beartype
class RatingFactor(BaseModelConfig):
    """Horsepower band rate for one fuel type."""

    horsepower_min: int = Field(..., ge=0, description="Lower fiscal horsepower bound")
    horsepower_max: int = Field(..., ge=0, description="Upper fiscal horsepower bound")
    fuel_type: FuelType = Field(...)
    rate_percentage: Decimal = Field(
        ..., gt=Decimal("0"), description="Rate in percent, e.g. 2.50 for 2.50%"
    )
    is_active: bool = Field(default=True)

    @model_validator(mode="after")
    def validate_range(self) -> Self:
        if self.horsepower_min > self.horsepower_max:
            raise ValueError("horsepower_min must be <= horsepower_max")
        return self

    def matches(self, horsepower: int, fuel_type: FuelType) -> bool:
        return (
            self.is_active
            and self.fuel_type == fuel_type
            and self.horsepower_min <= horsepower <= self.horsepower_max
        )


@beartype
class ShortTermFactor(BaseModelConfig):
    """Coefficient applied to contracts shorter than a year."""

    months: int = Field(..., ge=1, le=12)
    coefficient: Decimal = Field(..., gt=Decimal("0"), le=Decimal("1"))


@beartype
class PolicyCostBracket(BaseModelConfig):
    """Flat policy cost for a net premium bracket."""

    net_premium_min: Decimal = Field(..., ge=Decimal("0"))
    net_premium_max: Decimal | None = Field(
        default=None, description="Upper bound, None means unbounded"
    )
    cost_amount: Decimal = Field(..., ge=Decimal("0"))
    product_code: str = Field(..., min_length=1, max_length=50)

    @model_validator(mode="after")
    def validate_bounds(self) -> Self:
        if self.net_premium_max is not None and self.net_premium_max < self.net_premium_min:
            raise ValueError("net_premium_max must be >= net_premium_min")
        return self

    def contains(self, net_premium: Decimal) -> bool:
        if net_premium < self.net_premium_min:
            return False
        return self.net_premium_max is None or net_premium <= self.net_premium_max


@beartype
class CommissionRate(BaseModelConfig):
    """Commission rate for a distributor channel and product line."""

    distributor_type: DistributorType = Field(...)
    product_type: ProductType = Field(...)
    rate: Decimal = Field(
        ..., ge=Decimal("0"), le=Decimal("1"), description="Fraction, 0.10 = 10%"
    )
    description: str = Field(default="", max_length=200)


@beartype
class ProductTaxRate(BaseModelConfig):
    """Tax or control fee applied to the net premium of a product line."""

    product_type: ProductType = Field(...)
    tax_name: str = Field(..., min_length=1, max_length=100)
    rate: Decimal = Field(..., ge=Decimal("0"), le=Decimal("1"))
    is_fee: bool = Field(default=False)


@beartype
class RatingRequest(BaseModelConfig):
    """Inputs of a premium calculation."""

    vehicle_value: Decimal = Field(..., gt=Decimal("0"), description="Vehicle value")
    horsepower: int = Field(..., gt=0, le=9999, description="Fiscal horsepower")
    fuel_type: FuelType = Field(...)
    duration_months: int = Field(default=12, ge=1, le=12)
    coverage_ids: list[UUID] = Field(default_factory=list)
    professional_discount_percent: Decimal = Field(
        default=Decimal("0"), ge=Decimal("0"), le=Decimal("100")
    )
    commercial_discount_percent: Decimal = Field(
        default=Decimal("0"), ge=Decimal("0"), le=Decimal("100")
    )
    distributor_id: UUID | None = Field(default=None)

    @model_validator(mode="after")
    def validate_discounts(self) -> Self:
        total = self.professional_discount_percent + self.commercial_discount_percent
        if total > Decimal("100"):
            raise ValueError("Combined discounts cannot exceed 100%")
        return self


@beartype
class CoverageCalculation(BaseModelConfig):
    """Premium line for one selected coverage."""

    coverage_id: UUID = Field(...)
    code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    section_letter: str = Field(default="")
    premium_amount: Decimal = Field(..., ge=Decimal("0"))


@beartype
class PremiumBreakdown(BaseModelConfig):
    """Every intermediate of the rating computation.

    Persisted verbatim on quotes and copied onto policies at conversion.
    """

    rating_factor_percent: Decimal
    base_premium: Decimal
    sections_premium: Decimal
    subtotal: Decimal
    professional_discount_percent: Decimal = Decimal("0")
    commercial_discount_percent: Decimal = Decimal("0")
    total_discount: Decimal
    net_premium_before_short_term: Decimal
    short_term_coefficient: Decimal = Decimal("1.0")
    net_premium: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    policy_cost_amount: Decimal
    total_premium: Decimal
    commission_rate: Decimal = Decimal("0")
    commission_amount: Decimal = Decimal("0")
    coverages: list[CoverageCalculation] = Field(default_factory=list)


@beartype
class TaxLine(BaseModelConfig):
    tax_name: str
    rate: Decimal
    amount: Decimal
    is_fee: bool = False

    @property
    def rate_percentage(self) -> Decimal:
        return self.rate * 100


@beartype
class TaxBreakdown(BaseModelConfig):
    """Taxes and fees applied to a net premium."""

    product_type: ProductType
    net_premium: Decimal
    taxes: list[TaxLine] = Field(default_factory=list)
    total_tax_amount: Decimal
    gross_premium: Decimal


@beartype
class CommissionBreakdown(BaseModelConfig):
    """Distributor commission with mandate tax."""

    distributor_type: DistributorType
    product_type: ProductType
    net_premium: Decimal
    life_premium: Decimal = Decimal("0")
    commissionable_amount: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    has_mandate_tax: bool = False
    mandate_tax_rate: Decimal = Decimal("0.075")
    mandate_tax_amount: Decimal = Decimal("0")
    net_commission: Decimal
