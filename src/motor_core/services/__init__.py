# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Business logic service layer."""

from motor_core.core.result_types import Err, Ok, Result

from .claim_service import ClaimService
from .policy_service import PolicyService
from .quote_service import QuoteService
from .reference_data import ReferenceDataProvider

__all__ = [
    "Result",
    "Ok",
    "Err",
    "QuoteService",
    "PolicyService",
    "ClaimService",
    "ReferenceDataProvider",
]
