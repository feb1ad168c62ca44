"""Unit tests for the tax and commission calculators."""

from decimal import Decimal

import pytest

from motor_core.core.errors import ErrorKind
from motor_core.models.rating import DistributorType, ProductType
from motor_core.services.rating.commissions import CommissionCalculator
from motor_core.services.rating.rate_tables import RateTables
from motor_core.services.rating.taxes import TaxCalculator


@pytest.fixture
def tables() -> RateTables:
    return RateTables.default()


class TestTaxCalculator:
    """Test tax and control fee computation."""

    def test_motor_taxes(self, tables):
        breakdown = TaxCalculator.calculate(tables, Decimal("100000")).unwrap()

        assert [(line.tax_name, line.amount) for line in breakdown.taxes] == [
            ("Taxes", Decimal("14500")),
            ("Frais de contrôle", Decimal("1250")),
        ]
        assert breakdown.total_tax_amount == Decimal("15750")
        assert breakdown.gross_premium == Decimal("115750")
        assert breakdown.taxes[0].rate_percentage == Decimal("14.5")

    def test_fire_taxes(self, tables):
        breakdown = TaxCalculator.calculate(
            tables, Decimal("100000"), ProductType.FIRE
        ).unwrap()

        assert breakdown.total_tax_amount == Decimal("26250")

    def test_missing_rows_use_defaults(self):
        breakdown = TaxCalculator.calculate(
            RateTables(), Decimal("200000"), ProductType.TRANSPORT
        ).unwrap()

        assert breakdown.total_tax_amount == Decimal("31500")

    def test_negative_premium_rejected(self, tables):
        result = TaxCalculator.calculate(tables, Decimal("-1"))

        assert result.is_err()
        assert result.unwrap_err().kind == ErrorKind.INVARIANT_VIOLATION


class TestCommissionCalculator:
    """Test commissions and the mandate tax."""

    def test_internal_agent_pays_mandate_tax(self, tables):
        breakdown = CommissionCalculator.calculate(
            tables, Decimal("100000"), DistributorType.INTERNAL_AGENT
        ).unwrap()

        assert breakdown.commission_rate == Decimal("0.10")
        assert breakdown.commission_amount == Decimal("10000")
        assert breakdown.has_mandate_tax
        assert breakdown.mandate_tax_amount == Decimal("750")
        assert breakdown.net_commission == Decimal("9250")

    def test_broker_has_no_mandate_tax(self, tables):
        breakdown = CommissionCalculator.calculate(
            tables, Decimal("100000"), DistributorType.BROKER
        ).unwrap()

        assert breakdown.commission_amount == Decimal("12500")
        assert not breakdown.has_mandate_tax
        assert breakdown.net_commission == Decimal("12500")

    def test_life_premium_excluded_from_base(self, tables):
        breakdown = CommissionCalculator.calculate(
            tables,
            Decimal("100000"),
            DistributorType.GENERAL_AGENT,
            life_premium=Decimal("20000"),
        ).unwrap()

        assert breakdown.commissionable_amount == Decimal("80000")
        assert breakdown.commission_amount == Decimal("12000")
        assert breakdown.mandate_tax_amount == Decimal("900")
        assert breakdown.net_commission == Decimal("11100")

    @pytest.mark.parametrize("life_premium", ["-1", "100001"])
    def test_invalid_life_premium(self, tables, life_premium):
        result = CommissionCalculator.calculate(
            tables,
            Decimal("100000"),
            DistributorType.BROKER,
            life_premium=Decimal(life_premium),
        )

        assert result.is_err()
        assert result.unwrap_err().kind == ErrorKind.INVARIANT_VIOLATION
