# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Motor quote entity and creation request."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Self
from uuid import UUID

from beartype import beartype
from pydantic import Field, model_validator

from .base import BaseModelConfig, VersionedEntity
from .rating import CoverageCalculation, FuelType, PremiumBreakdown


class QuoteStatus(str, Enum):
    """Quote workflow states. EXPIRED is derived and never stored."""

    DRAFT = "Draft"
    GENERATED = "Generated"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    EXPIRED = "Expired"


@beartype
class VehicleDetails(BaseModelConfig):
    """Vehicle attributes shared by quotes and policies."""

    vehicle_category_id: UUID | None = Field(default=None)
    vehicle_make_id: UUID | None = Field(default=None)
    vehicle_model_id: UUID | None = Field(default=None)
    registration_number: str = Field(default="", max_length=50)
    chassis_number: str = Field(default="", max_length=50)
    year_of_manufacture: int | None = Field(default=None, ge=1900, le=2100)
    horsepower: int = Field(..., gt=0, le=9999)
    fuel_type: FuelType = Field(...)
    vehicle_value: Decimal = Field(..., gt=Decimal("0"))


@beartype
class QuoteCreate(BaseModelConfig):
    """Input for quote generation."""

    client_id: UUID = Field(...)
    product_id: UUID = Field(...)
    distributor_id: UUID | None = Field(default=None)
    currency_id: UUID | None = Field(default=None)
    vehicle: VehicleDetails = Field(...)
    policy_start_date: date = Field(...)
    policy_end_date: date | None = Field(
        default=None, description="Defaults to start date plus the duration"
    )
    duration_months: int = Field(default=12, ge=1, le=12)
    coverage_ids: list[UUID] = Field(default_factory=list)
    professional_discount_percent: Decimal = Field(
        default=Decimal("0"), ge=Decimal("0"), le=Decimal("100")
    )
    commercial_discount_percent: Decimal = Field(
        default=Decimal("0"), ge=Decimal("0"), le=Decimal("100")
    )
    notes: str | None = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def validate_period(self) -> Self:
        if self.policy_end_date is not None and self.policy_end_date <= self.policy_start_date:
            raise ValueError("policy_end_date must be after policy_start_date")
        return self

    @model_validator(mode="after")
    def validate_discounts(self) -> Self:
        total = self.professional_discount_percent + self.commercial_discount_percent
        if total > Decimal("100"):
            raise ValueError("Combined discounts cannot exceed 100%")
        return self


@beartype
class Quote(VersionedEntity):
    """Priced, time-bounded offer for motor coverage."""

    quote_number: str = Field(..., pattern=r"^QTE-\d{4}-\d{2}-\d{4,}$")
    quote_date: datetime = Field(...)
    expiry_date: datetime = Field(...)
    status: QuoteStatus = Field(default=QuoteStatus.GENERATED)

    client_id: UUID = Field(...)
    distributor_id: UUID | None = Field(default=None)
    product_id: UUID = Field(...)
    currency_id: UUID | None = Field(default=None)

    policy_start_date: date = Field(...)
    policy_end_date: date = Field(...)
    duration_months: int = Field(..., ge=1, le=12)

    vehicle: VehicleDetails = Field(...)
    premium: PremiumBreakdown = Field(...)
    notes: str | None = Field(default=None)

    @property
    def selected_coverages(self) -> list[CoverageCalculation]:
        return self.premium.coverages

    @property
    def total_premium(self) -> Decimal:
        return self.premium.total_premium

    def is_expired(self, now: datetime) -> bool:
        return now > self.expiry_date

    def effective_status(self, now: datetime) -> QuoteStatus:
        """Stored status, reported as EXPIRED once a generated quote lapses."""
        if self.status == QuoteStatus.GENERATED and self.is_expired(now):
            return QuoteStatus.EXPIRED
        return self.status
