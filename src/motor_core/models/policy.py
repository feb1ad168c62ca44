# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Motor policy, its coverages and endorsements."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Self
from uuid import UUID, uuid4

from beartype import beartype
from pydantic import Field, model_validator

from .base import BaseModelConfig, IdentifiableModel, VersionedEntity
from .quote import VehicleDetails
from .rating import PremiumBreakdown


class PolicyStatus(str, Enum):
    """Policy workflow states. EXPIRED is derived and never stored."""

    DRAFT = "Draft"
    ACTIVE = "Active"
    SUSPENDED = "Suspended"
    CANCELLED = "Cancelled"
    EXPIRED = "Expired"


class EndorsementType(str, Enum):
    ADD_COVERAGE = "AddCoverage"
    REMOVE_COVERAGE = "RemoveCoverage"
    CHANGE_VEHICLE_VALUE = "ChangeVehicleValue"
    SUSPENSION = "Suspension"
    CANCELLATION = "Cancellation"


REQUESTABLE_ENDORSEMENTS = frozenset(
    {
        EndorsementType.ADD_COVERAGE,
        EndorsementType.REMOVE_COVERAGE,
        EndorsementType.CHANGE_VEHICLE_VALUE,
    }
)


@beartype
class PolicyCoverage(BaseModelConfig):
    """Coverage attached to a policy."""

    id: UUID = Field(default_factory=uuid4)
    coverage_id: UUID = Field(...)
    code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    section_letter: str = Field(default="")
    premium_amount: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    is_active: bool = Field(default=True)


@beartype
class Endorsement(IdentifiableModel):
    """Append-only amendment record."""

    policy_id: UUID = Field(...)
    endorsement_number: str = Field(..., pattern=r"^AVE-\d{4}-\d{2}-\d{4,}$")
    endorsement_date: datetime = Field(...)
    endorsement_type: EndorsementType = Field(...)
    description: str = Field(default="", max_length=1000)
    premium_adjustment: Decimal = Field(...)
    new_total_premium: Decimal = Field(...)
    effective_date: date = Field(...)
    reason: str | None = Field(default=None, max_length=1000)


@beartype
class EndorsementRequest(BaseModelConfig):
    """Amendment requested on an active policy."""

    endorsement_type: EndorsementType = Field(...)
    coverage_ids_to_add: list[UUID] = Field(default_factory=list)
    coverage_ids_to_remove: list[UUID] = Field(default_factory=list)
    new_vehicle_value: Decimal | None = Field(default=None, gt=Decimal("0"))
    effective_date: date | None = Field(default=None)
    description: str = Field(default="", max_length=1000)
    reason: str | None = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def validate_payload(self) -> Self:
        if self.endorsement_type not in REQUESTABLE_ENDORSEMENTS:
            raise ValueError(
                f"{self.endorsement_type.value} endorsements are issued by suspend/cancel"
            )
        if (
            self.endorsement_type == EndorsementType.CHANGE_VEHICLE_VALUE
            and self.new_vehicle_value is None
        ):
            raise ValueError("new_vehicle_value is required for ChangeVehicleValue")
        return self


@beartype
class Policy(VersionedEntity):
    """Binding contract derived from an accepted quote."""

    policy_number: str = Field(..., pattern=r"^POL-\d{4}-\d{2}-\d{4,}$")
    policy_date: datetime = Field(...)
    issue_date: datetime = Field(...)
    status: PolicyStatus = Field(default=PolicyStatus.DRAFT)

    quote_id: UUID | None = Field(default=None)
    quote_number: str | None = Field(default=None)
    client_id: UUID = Field(...)
    distributor_id: UUID | None = Field(default=None)
    product_id: UUID = Field(...)
    currency_id: UUID | None = Field(default=None)

    policy_start_date: date = Field(...)
    policy_end_date: date = Field(...)
    duration_months: int = Field(..., ge=1, le=12)

    vehicle: VehicleDetails = Field(...)
    premium: PremiumBreakdown = Field(...)

    is_paid: bool = Field(default=False)
    payment_date: datetime | None = Field(default=None)
    payment_reference: str | None = Field(default=None, max_length=100)
    notes: str | None = Field(default=None)

    coverages: list[PolicyCoverage] = Field(default_factory=list)
    endorsements: list[Endorsement] = Field(
        default_factory=list, description="Append-only, oldest first"
    )

    @property
    def total_premium(self) -> Decimal:
        return self.premium.total_premium

    @property
    def active_coverages(self) -> list[PolicyCoverage]:
        return [coverage for coverage in self.coverages if coverage.is_active]

    def is_expired(self, today: date) -> bool:
        return today > self.policy_end_date

    def covers(self, day: date) -> bool:
        return self.policy_start_date <= day <= self.policy_end_date

    def effective_status(self, today: date) -> PolicyStatus:
        if self.status == PolicyStatus.ACTIVE and self.is_expired(today):
            return PolicyStatus.EXPIRED
        return self.status
