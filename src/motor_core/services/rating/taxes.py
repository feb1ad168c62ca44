# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Tax and control fee computation on net premiums."""

from decimal import Decimal

from beartype import beartype

from ...core.errors import DomainError, InvariantViolationError
from ...core.result_types import Err, Ok, Result
from ...models.rating import ProductType, TaxBreakdown, TaxLine
from ..performance_monitor import performance_monitor
from .rate_tables import RateTables


class TaxCalculator:
    """Applies every tax and fee row of a product line to a net premium."""

    @beartype
    @staticmethod
    @performance_monitor("calculate_taxes")
    def calculate(
        tables: RateTables,
        net_premium: Decimal,
        product_type: ProductType = ProductType.MOTOR,
    ) -> Result[TaxBreakdown, DomainError]:
        """Compute taxes, their total and the gross premium.

        Rows missing from the tables fall back to the CIMA defaults of the
        product line.
        """
        if net_premium < 0:
            return Err(InvariantViolationError("Net premium cannot be negative"))

        lines = [
            TaxLine(
                tax_name=row.tax_name,
                rate=row.rate,
                amount=net_premium * row.rate,
                is_fee=row.is_fee,
            )
            for row in tables.tax_rates(product_type)
        ]
        total = sum((line.amount for line in lines), Decimal("0"))

        return Ok(
            TaxBreakdown(
                product_type=product_type,
                net_premium=net_premium,
                taxes=lines,
                total_tax_amount=total,
                gross_premium=net_premium + total,
            )
        )
