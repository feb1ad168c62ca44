# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Domain models."""

from .base import BaseModelConfig, IdentifiableModel, VersionedEntity, utc_now
from .claim import (
    Claim,
    ClaimAction,
    ClaimApproval,
    ClaimCreate,
    ClaimDocument,
    ClaimHistory,
    ClaimRejection,
    ClaimSettlement,
    ClaimStatus,
    ClaimType,
    DocumentUpload,
    ExpertAssignment,
    ExpertiseReport,
    MotorClaimDetails,
    ThirdParty,
    ThirdPartyInput,
)
from .policy import (
    Endorsement,
    EndorsementRequest,
    EndorsementType,
    Policy,
    PolicyCoverage,
    PolicyStatus,
)
from .quote import Quote, QuoteCreate, QuoteStatus, VehicleDetails
from .rating import (
    CommissionBreakdown,
    CommissionRate,
    CoverageCalculation,
    DistributorType,
    FuelType,
    PolicyCostBracket,
    PremiumBreakdown,
    ProductTaxRate,
    ProductType,
    RatingFactor,
    RatingRequest,
    ShortTermFactor,
    TaxBreakdown,
    TaxLine,
)
from .reference import (
    Client,
    ClientType,
    Currency,
    Distributor,
    MotorCoverage,
    MotorProduct,
    ProfessionalCategory,
    VehicleCategory,
    VehicleMake,
    VehicleModel,
)

__all__ = [
    "BaseModelConfig",
    "IdentifiableModel",
    "VersionedEntity",
    "utc_now",
    "Claim",
    "ClaimAction",
    "ClaimApproval",
    "ClaimCreate",
    "ClaimDocument",
    "ClaimHistory",
    "ClaimRejection",
    "ClaimSettlement",
    "ClaimStatus",
    "ClaimType",
    "DocumentUpload",
    "ExpertAssignment",
    "ExpertiseReport",
    "MotorClaimDetails",
    "ThirdParty",
    "ThirdPartyInput",
    "Endorsement",
    "EndorsementRequest",
    "EndorsementType",
    "Policy",
    "PolicyCoverage",
    "PolicyStatus",
    "Quote",
    "QuoteCreate",
    "QuoteStatus",
    "VehicleDetails",
    "CommissionBreakdown",
    "CommissionRate",
    "CoverageCalculation",
    "DistributorType",
    "FuelType",
    "PolicyCostBracket",
    "PremiumBreakdown",
    "ProductTaxRate",
    "ProductType",
    "RatingFactor",
    "RatingRequest",
    "ShortTermFactor",
    "TaxBreakdown",
    "TaxLine",
    "Client",
    "ClientType",
    "Currency",
    "Distributor",
    "MotorCoverage",
    "MotorProduct",
    "ProfessionalCategory",
    "VehicleCategory",
    "VehicleMake",
    "VehicleModel",
]
