# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Rating engine, rate tables and premium calculators."""

from .commissions import CommissionCalculator
from .rate_tables import RateTableRepository, RateTables
from .rating_engine import RatingEngine, rate_premium
from .taxes import TaxCalculator

__all__ = [
    "CommissionCalculator",
    "RateTableRepository",
    "RateTables",
    "RatingEngine",
    "TaxCalculator",
    "rate_premium",
]
