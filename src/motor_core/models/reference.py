# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Read-only reference data consumed by rating and the lifecycles."""

from decimal import Decimal
from enum import Enum
from uuid import UUID

from beartype import beartype
from pydantic import Field

from .base import IdentifiableModel
from .rating import DistributorType


class ClientType(str, Enum):
    INDIVIDUAL = "Individual"
    COMPANY = "Company"


@beartype
class Client(IdentifiableModel):
    """Insured party."""

    reference_number: str = Field(..., min_length=1, max_length=50)
    client_type: ClientType = Field(default=ClientType.INDIVIDUAL)
    email: str = Field(default="", max_length=255)
    phone_number: str = Field(default="", max_length=50)
    address: str = Field(default="", max_length=500)
    city: str = Field(default="", max_length=100)
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    profession: str | None = Field(default=None, max_length=100)
    company_name: str | None = Field(default=None, max_length=200)
    tax_id: str | None = Field(default=None, max_length=50)

    @property
    def full_name(self) -> str:
        if self.client_type == ClientType.INDIVIDUAL:
            return f"{self.first_name or ''} {self.last_name or ''}".strip()
        return self.company_name or ""


@beartype
class Distributor(IdentifiableModel):
    """Agent, broker or bank selling policies."""

    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    distributor_type: DistributorType = Field(...)
    email: str | None = Field(default=None)
    phone_number: str | None = Field(default=None)
    is_active: bool = Field(default=True)


@beartype
class MotorCoverage(IdentifiableModel):
    """Coverage section A-H with its flat premium."""

    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    section_letter: str = Field(..., pattern=r"^[A-H]$")
    description: str = Field(default="", max_length=500)
    fixed_premium: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    is_mandatory: bool = Field(default=False)


@beartype
class MotorProduct(IdentifiableModel):
    """Motor product bundling default coverages."""

    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=500)
    default_coverage_ids: list[UUID] = Field(default_factory=list)
    is_active: bool = Field(default=True)


@beartype
class VehicleCategory(IdentifiableModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=500)


@beartype
class VehicleMake(IdentifiableModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)


@beartype
class VehicleModel(IdentifiableModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    make_id: UUID = Field(...)


@beartype
class Currency(IdentifiableModel):
    code: str = Field(..., pattern=r"^[A-Z]{3}$")
    name: str = Field(..., min_length=1, max_length=100)
    symbol: str = Field(default="", max_length=10)


@beartype
class ProfessionalCategory(IdentifiableModel):
    """Profession entitled to a professional discount."""

    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    discount_rate: Decimal = Field(
        default=Decimal("0"),
        ge=Decimal("0"),
        le=Decimal("1"),
        description="Fraction, 0.20 = 20%",
    )

    @property
    def discount_percent(self) -> Decimal:
        """Discount as a percentage, the unit used by rating requests."""
        return self.discount_rate * 100
