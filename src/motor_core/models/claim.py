# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Claim entity with its documents, third parties and audit trail.

Shared adjudication fields live on :class:`Claim`. Product-specific fields
sit in ``details``, a variant tagged by ``kind`` so the workflow logic stays
in one place regardless of the product line.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Literal
from uuid import UUID, uuid4

from beartype import beartype
from pydantic import Field

from .base import BaseModelConfig, VersionedEntity, utc_now
from .rating import ProductType


class ClaimStatus(str, Enum):
    """Enumeration of claim processing states."""

    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    UNDER_REVIEW = "UnderReview"
    INVESTIGATING = "Investigating"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    SETTLED = "Settled"
    CLOSED = "Closed"


class ClaimType(str, Enum):
    """Enumeration of motor claim types."""

    ACCIDENT = "Accident"
    THEFT = "Theft"
    FIRE = "Fire"
    VANDALISM = "Vandalism"
    NATURAL_DISASTER = "NaturalDisaster"
    GLASS_BREAKAGE = "GlassBreakage"
    OTHER = "Other"


class ClaimAction(str, Enum):
    """History action types."""

    CLAIM_CREATED = "ClaimCreated"
    CLAIM_UPDATED = "ClaimUpdated"
    CLAIM_SUBMITTED = "ClaimSubmitted"
    REVIEW_STARTED = "ReviewStarted"
    EXPERT_ASSIGNED = "ExpertAssigned"
    EXPERTISE_SUBMITTED = "ExpertiseSubmitted"
    CLAIM_APPROVED = "ClaimApproved"
    CLAIM_REJECTED = "ClaimRejected"
    CLAIM_SETTLED = "ClaimSettled"
    CLAIM_CLOSED = "ClaimClosed"
    DOCUMENT_UPLOADED = "DocumentUploaded"
    NOTES_UPDATED = "NotesUpdated"


class ThirdPartyInput(BaseModelConfig):
    """Third party involved in a motor claim."""

    full_name: str = Field(..., min_length=1, max_length=200)
    phone_number: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=255)
    address: str | None = Field(default=None, max_length=500)
    vehicle_registration: str | None = Field(default=None, max_length=50)
    insurance_company: str | None = Field(default=None, max_length=200)
    policy_number: str | None = Field(default=None, max_length=100)
    is_at_fault: bool = Field(default=False)
    fault_percentage: Decimal | None = Field(
        default=None, ge=Decimal("0"), le=Decimal("100")
    )
    damage_description: str | None = Field(default=None, max_length=2000)


class ThirdParty(ThirdPartyInput):
    id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=utc_now)


class DocumentUpload(BaseModelConfig):
    """Metadata of an uploaded claim document."""

    document_type: str = Field(..., min_length=1, max_length=100)
    file_name: str = Field(..., min_length=1, max_length=255)
    file_path: str = Field(..., min_length=1, max_length=1000)
    content_type: str = Field(default="application/octet-stream", max_length=100)
    file_size: int = Field(default=0, ge=0)
    description: str | None = Field(default=None, max_length=1000)


class ClaimDocument(DocumentUpload):
    id: UUID = Field(default_factory=uuid4)
    uploaded_at: datetime = Field(default_factory=utc_now)
    uploaded_by: str | None = Field(default=None)


class ClaimHistory(BaseModelConfig):
    """Immutable audit entry."""

    id: UUID = Field(default_factory=uuid4)
    action_type: ClaimAction
    description: str
    old_status: ClaimStatus | None = None
    new_status: ClaimStatus | None = None
    performed_by: str | None = None
    comment: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)


class MotorClaimDetails(BaseModelConfig):
    """Motor-specific claim fields."""

    kind: Literal["motor"] = "motor"
    claim_type: ClaimType = Field(default=ClaimType.ACCIDENT)
    has_injuries: bool = Field(default=False)
    injury_count: int = Field(default=0, ge=0)
    has_police_report: bool = Field(default=False)
    police_report_number: str | None = Field(default=None, max_length=100)
    police_station: str | None = Field(default=None, max_length=200)
    third_parties: list[ThirdParty] = Field(default_factory=list)


ClaimDetails = MotorClaimDetails


@beartype
class ClaimCreate(BaseModelConfig):
    """Loss declaration against an active policy."""

    policy_id: UUID = Field(...)
    claim_date: date = Field(..., description="Date of the loss event")
    claim_type: ClaimType = Field(default=ClaimType.ACCIDENT)
    location: str = Field(default="", max_length=500)
    description: str = Field(..., min_length=1, max_length=5000)
    circumstances: str | None = Field(default=None, max_length=5000)
    claimed_amount: Decimal = Field(..., ge=Decimal("0"))
    has_injuries: bool = Field(default=False)
    injury_count: int = Field(default=0, ge=0)
    has_police_report: bool = Field(default=False)
    police_report_number: str | None = Field(default=None, max_length=100)
    police_station: str | None = Field(default=None, max_length=200)
    third_parties: list[ThirdPartyInput] = Field(default_factory=list)


class ExpertAssignment(BaseModelConfig):
    expert_name: str = Field(..., min_length=1, max_length=200)
    expertise_date: date | None = Field(default=None)
    notes: str | None = Field(default=None, max_length=2000)


class ExpertiseReport(BaseModelConfig):
    estimated_amount: Decimal = Field(..., ge=Decimal("0"))
    expertise_report: str = Field(..., min_length=1, max_length=10000)
    recommended_deductible: Decimal | None = Field(default=None, ge=Decimal("0"))


class ClaimApproval(BaseModelConfig):
    approved_amount: Decimal = Field(..., ge=Decimal("0"))
    deductible: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    comments: str | None = Field(default=None, max_length=2000)


class ClaimRejection(BaseModelConfig):
    rejection_reason: str = Field(..., min_length=1, max_length=2000)
    comments: str | None = Field(default=None, max_length=2000)


class ClaimSettlement(BaseModelConfig):
    payment_reference: str = Field(..., min_length=1, max_length=100)
    payment_method: str = Field(..., min_length=1, max_length=50)
    settlement_date: date | None = Field(default=None)
    comments: str | None = Field(default=None, max_length=2000)


@beartype
class Claim(VersionedEntity):
    """Reported loss under a policy, tracked through adjudication."""

    claim_number: str = Field(..., pattern=r"^SIN-\d{4}-\d{2}-\d{4,}$")
    policy_id: UUID = Field(...)
    client_id: UUID = Field(...)
    product_type: ProductType = Field(default=ProductType.MOTOR)
    claim_date: date = Field(...)
    reported_date: datetime = Field(...)
    location: str = Field(default="")
    status: ClaimStatus = Field(default=ClaimStatus.DRAFT)
    description: str = Field(default="")
    circumstances: str | None = Field(default=None)

    claimed_amount: Decimal = Field(..., ge=Decimal("0"))
    estimated_amount: Decimal | None = Field(default=None)
    approved_amount: Decimal | None = Field(default=None)
    deductible: Decimal | None = Field(default=None)
    net_payable_amount: Decimal | None = Field(default=None)

    assigned_expert: str | None = Field(default=None)
    expertise_date: date | None = Field(default=None)
    expertise_report: str | None = Field(default=None)
    approval_date: datetime | None = Field(default=None)
    approved_by: str | None = Field(default=None)
    settlement_date: date | None = Field(default=None)
    payment_reference: str | None = Field(default=None)
    payment_method: str | None = Field(default=None)
    closed_date: datetime | None = Field(default=None)
    rejection_reason: str | None = Field(default=None)
    internal_notes: str | None = Field(default=None)

    details: ClaimDetails = Field(default_factory=MotorClaimDetails)
    documents: list[ClaimDocument] = Field(default_factory=list)
    history: list[ClaimHistory] = Field(
        default_factory=list, description="Append-only, oldest first"
    )

    @property
    def third_parties(self) -> list[ThirdParty]:
        return self.details.third_parties
