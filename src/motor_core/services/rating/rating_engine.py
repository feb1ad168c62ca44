# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Motor premium rating engine.

The computation itself (:func:`rate_premium`) is a pure function over a
rate table snapshot and the resolved coverages. :class:`RatingEngine`
resolves coverages and the distributor from reference data, loads the
tables in force and delegates to it.

Every lookup has a default so quoting stays available when reference rows
are missing. All amounts are exact ``Decimal`` values, never rounded.
"""

from decimal import Decimal

from beartype import beartype

from ...core.config import Settings, get_settings
from ...core.errors import DomainError
from ...core.logging_utils import get_logger
from ...core.result_types import Err, Ok, Result
from ...models.rating import (
    CoverageCalculation,
    DistributorType,
    PremiumBreakdown,
    ProductType,
    RatingRequest,
)
from ...models.reference import MotorCoverage
from ..performance_monitor import performance_monitor
from ..reference_data import ReferenceDataProvider
from .rate_tables import RateTableRepository, RateTables

logger = get_logger(__name__)

HUNDRED = Decimal("100")


@beartype
def rate_premium(
    tables: RateTables,
    request: RatingRequest,
    coverages: list[MotorCoverage],
    distributor_type: DistributorType | None = None,
    settings: Settings | None = None,
) -> PremiumBreakdown:
    """Compute the itemized premium. Order of steps is significant."""
    settings = settings or get_settings()

    rating_factor = tables.rating_factor(request.horsepower, request.fuel_type)
    if rating_factor is None:
        logger.debug(
            "No rating band for %shp %s, using default",
            request.horsepower,
            request.fuel_type.value,
        )
        rating_factor = settings.default_rating_factor_percent

    base_premium = request.vehicle_value * rating_factor / HUNDRED

    coverage_lines = [
        CoverageCalculation(
            coverage_id=coverage.id,
            code=coverage.code,
            name=coverage.name,
            section_letter=coverage.section_letter,
            premium_amount=coverage.fixed_premium,
        )
        for coverage in coverages
    ]
    sections_premium = sum((line.premium_amount for line in coverage_lines), Decimal("0"))

    subtotal = base_premium + sections_premium
    discount_percent = (
        request.professional_discount_percent + request.commercial_discount_percent
    )
    total_discount = subtotal * discount_percent / HUNDRED
    net_before_short_term = subtotal - total_discount

    coefficient = tables.short_term_coefficient(request.duration_months)
    if coefficient is None:
        coefficient = settings.default_short_term_coefficient
    net_premium = net_before_short_term * coefficient

    tax_rate = tables.premium_tax_rate(ProductType.MOTOR)
    tax_amount = net_premium * tax_rate

    policy_cost = tables.policy_cost(net_premium, settings.motor_product_code)
    if policy_cost is None:
        policy_cost = settings.default_policy_cost_amount

    total_premium = net_premium + tax_amount + policy_cost

    commission_rate = Decimal("0")
    commission_amount = Decimal("0")
    if distributor_type is not None:
        commission_rate = tables.commission_rate(distributor_type, ProductType.MOTOR)
        commission_amount = net_premium * commission_rate

    return PremiumBreakdown(
        rating_factor_percent=rating_factor,
        base_premium=base_premium,
        sections_premium=sections_premium,
        subtotal=subtotal,
        professional_discount_percent=request.professional_discount_percent,
        commercial_discount_percent=request.commercial_discount_percent,
        total_discount=total_discount,
        net_premium_before_short_term=net_before_short_term,
        short_term_coefficient=coefficient,
        net_premium=net_premium,
        tax_rate=tax_rate,
        tax_amount=tax_amount,
        policy_cost_amount=policy_cost,
        total_premium=total_premium,
        commission_rate=commission_rate,
        commission_amount=commission_amount,
        coverages=coverage_lines,
    )


@beartype
class RatingEngine:
    """Prices rating requests against the rate tables in force."""

    def __init__(
        self,
        reference_data: ReferenceDataProvider,
        rate_tables: RateTableRepository,
        settings: Settings | None = None,
    ) -> None:
        self._reference_data = reference_data
        self._rate_tables = rate_tables
        self._settings = settings or get_settings()

    @performance_monitor("calculate_premium")
    async def calculate(
        self, request: RatingRequest
    ) -> Result[PremiumBreakdown, DomainError]:
        """Resolve coverages and distributor, then rate the request.

        Unknown coverage or distributor ids are reported as NotFound.
        """
        coverages = await self._reference_data.get_coverages(request.coverage_ids)
        if isinstance(coverages, Err):
            return coverages

        distributor_type: DistributorType | None = None
        if request.distributor_id is not None:
            distributor = await self._reference_data.get_distributor(
                request.distributor_id
            )
            if isinstance(distributor, Err):
                return distributor
            distributor_type = distributor.value.distributor_type

        tables = await self._rate_tables.load()
        breakdown = rate_premium(
            tables,
            request,
            coverages.value,
            distributor_type,
            self._settings,
        )
        return Ok(breakdown)
