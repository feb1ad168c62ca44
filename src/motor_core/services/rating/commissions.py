# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Distributor commission computation."""

from decimal import Decimal

from beartype import beartype

from ...core.errors import DomainError, InvariantViolationError
from ...core.result_types import Err, Ok, Result
from ...models.rating import CommissionBreakdown, DistributorType, ProductType
from ..performance_monitor import performance_monitor
from .rate_tables import RateTables

MANDATE_TAX_RATE = Decimal("0.075")

# Channels acting under an agency mandate pay the mandate tax.
MANDATED_CHANNELS = frozenset(
    {DistributorType.INTERNAL_AGENT, DistributorType.GENERAL_AGENT}
)


class CommissionCalculator:
    """Commission = (net premium - life premium) x rate."""

    @beartype
    @staticmethod
    @performance_monitor("calculate_commission")
    def calculate(
        tables: RateTables,
        net_premium: Decimal,
        distributor_type: DistributorType,
        product_type: ProductType = ProductType.MOTOR,
        life_premium: Decimal = Decimal("0"),
    ) -> Result[CommissionBreakdown, DomainError]:
        if life_premium < 0:
            return Err(InvariantViolationError("Life premium cannot be negative"))
        if life_premium > net_premium:
            return Err(
                InvariantViolationError("Life premium cannot exceed the net premium")
            )

        rate = tables.commission_rate(distributor_type, product_type)
        commissionable = net_premium - life_premium
        commission = commissionable * rate

        has_mandate_tax = distributor_type in MANDATED_CHANNELS
        mandate_tax = commission * MANDATE_TAX_RATE if has_mandate_tax else Decimal("0")

        return Ok(
            CommissionBreakdown(
                distributor_type=distributor_type,
                product_type=product_type,
                net_premium=net_premium,
                life_premium=life_premium,
                commissionable_amount=commissionable,
                commission_rate=rate,
                commission_amount=commission,
                has_mandate_tax=has_mandate_tax,
                mandate_tax_rate=MANDATE_TAX_RATE,
                mandate_tax_amount=mandate_tax,
                net_commission=commission - mandate_tax,
            )
        )
