"""Unit tests for the motor premium rating engine."""

from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from motor_core.core.config import Settings
from motor_core.core.errors import ErrorKind
from motor_core.models.rating import DistributorType, FuelType, RatingRequest
from motor_core.models.reference import MotorCoverage
from motor_core.services.rating.rate_tables import RateTables
from motor_core.services.rating.rating_engine import rate_premium


def _request(**overrides) -> RatingRequest:
    data = {
        "vehicle_value": Decimal("5000000"),
        "horsepower": 9,
        "fuel_type": FuelType.ESSENCE,
        "duration_months": 12,
    }
    data.update(overrides)
    return RatingRequest(**data)


def _coverage(letter: str, premium: str) -> MotorCoverage:
    return MotorCoverage(
        code=f"SECTION_{letter}",
        name=f"Section {letter}",
        section_letter=letter,
        fixed_premium=Decimal(premium),
    )


@pytest.fixture
def tables() -> RateTables:
    return RateTables.default()


class TestRatePremium:
    """Test the pure rating computation."""

    def test_annual_contract(self, tables):
        """5,000,000 XOF, 9hp petrol, no coverages, twelve months."""
        breakdown = rate_premium(tables, _request(), [])

        assert breakdown.rating_factor_percent == Decimal("3.00")
        assert breakdown.base_premium == Decimal("150000")
        assert breakdown.sections_premium == Decimal("0")
        assert breakdown.subtotal == Decimal("150000")
        assert breakdown.total_discount == Decimal("0")
        assert breakdown.net_premium == Decimal("150000")
        assert breakdown.tax_rate == Decimal("0.145")
        assert breakdown.tax_amount == Decimal("21750")
        assert breakdown.policy_cost_amount == Decimal("3000")
        assert breakdown.total_premium == Decimal("174750")

    def test_three_month_contract(self, tables):
        """The short-term coefficient 0.40 moves the premium to a lower bracket."""
        breakdown = rate_premium(tables, _request(duration_months=3), [])

        assert breakdown.short_term_coefficient == Decimal("0.40")
        assert breakdown.net_premium == Decimal("60000")
        assert breakdown.tax_amount == Decimal("8700")
        assert breakdown.policy_cost_amount == Decimal("2000")
        assert breakdown.total_premium == Decimal("70700")

    def test_coverages_discounts_and_short_term(self, tables):
        breakdown = rate_premium(
            tables,
            _request(
                vehicle_value=Decimal("1000000"),
                horsepower=5,
                duration_months=6,
                professional_discount_percent=Decimal("10"),
                commercial_discount_percent=Decimal("5"),
            ),
            [_coverage("B", "5000"), _coverage("E", "5000")],
        )

        assert breakdown.base_premium == Decimal("25000")
        assert breakdown.sections_premium == Decimal("10000")
        assert breakdown.subtotal == Decimal("35000")
        assert breakdown.total_discount == Decimal("5250")
        assert breakdown.net_premium_before_short_term == Decimal("29750")
        assert breakdown.net_premium == Decimal("20825")
        assert breakdown.tax_amount == Decimal("3019.625")
        assert breakdown.policy_cost_amount == Decimal("1000")
        assert breakdown.total_premium == Decimal("24844.625")
        assert [line.section_letter for line in breakdown.coverages] == ["B", "E"]

    def test_identities_hold_exactly(self, tables):
        breakdown = rate_premium(
            tables,
            _request(
                vehicle_value=Decimal("3333333.33"),
                horsepower=13,
                fuel_type=FuelType.DIESEL,
                duration_months=9,
                professional_discount_percent=Decimal("7.5"),
                commercial_discount_percent=Decimal("3.3"),
            ),
            [_coverage("G", "3000"), _coverage("H", "8000")],
        )

        assert breakdown.base_premium + breakdown.sections_premium == breakdown.subtotal
        assert (
            breakdown.subtotal - breakdown.total_discount
            == breakdown.net_premium_before_short_term
        )
        assert (
            breakdown.net_premium + breakdown.tax_amount + breakdown.policy_cost_amount
            == breakdown.total_premium
        )

    def test_deterministic(self, tables):
        request = _request(horsepower=17, duration_months=1)
        coverages = [_coverage("B", "5000")]

        assert rate_premium(tables, request, coverages) == rate_premium(
            tables, request, coverages
        )

    def test_unmatched_horsepower_uses_default_rate(self, tables):
        breakdown = rate_premium(tables, _request(horsepower=3), [])

        assert breakdown.rating_factor_percent == Decimal("2.50")
        assert breakdown.base_premium == Decimal("125000")

    def test_unmatched_duration_uses_full_year_coefficient(self, tables):
        breakdown = rate_premium(tables, _request(duration_months=2), [])

        assert breakdown.short_term_coefficient == Decimal("1.0")
        assert breakdown.net_premium == Decimal("150000")

    def test_bracket_gap_uses_default_policy_cost(self, tables):
        """A net premium between 25,000 and 25,001 matches no bracket."""
        breakdown = rate_premium(
            tables, _request(vehicle_value=Decimal("1000020"), horsepower=5), []
        )

        assert breakdown.net_premium == Decimal("25000.5")
        assert breakdown.policy_cost_amount == Decimal("1000")

    def test_defaults_come_from_settings(self, tables):
        settings = Settings(
            default_rating_factor_percent=Decimal("4"),
            default_policy_cost_amount=Decimal("1234"),
        )
        breakdown = rate_premium(
            RateTables(), _request(horsepower=3), [], settings=settings
        )

        assert breakdown.rating_factor_percent == Decimal("4")
        assert breakdown.policy_cost_amount == Decimal("1234")
        # Empty tax table falls back to the CIMA motor rate
        assert breakdown.tax_rate == Decimal("0.145")

    def test_commission_applies_fraction_directly(self, tables):
        breakdown = rate_premium(tables, _request(), [], DistributorType.BROKER)

        assert breakdown.commission_rate == Decimal("0.125")
        assert breakdown.commission_amount == Decimal("18750")

    def test_no_distributor_no_commission(self, tables):
        breakdown = rate_premium(tables, _request(), [])

        assert breakdown.commission_rate == Decimal("0")
        assert breakdown.commission_amount == Decimal("0")


class TestRatingRequestValidation:
    """Input shape errors are rejected before rating."""

    @pytest.mark.parametrize(
        "overrides",
        [
            {"vehicle_value": Decimal("0")},
            {"vehicle_value": Decimal("-1")},
            {"horsepower": 0},
            {"duration_months": 13},
            {"professional_discount_percent": Decimal("101")},
            {"commercial_discount_percent": Decimal("-1")},
            {
                "professional_discount_percent": Decimal("60"),
                "commercial_discount_percent": Decimal("50"),
            },
        ],
    )
    def test_invalid_inputs(self, overrides):
        with pytest.raises(ValidationError):
            _request(**overrides)


class TestRatingEngine:
    """Test reference resolution around the computation."""

    async def test_calculate_with_coverages_and_distributor(
        self, rating_engine, reference
    ):
        result = await rating_engine.calculate(
            _request(
                coverage_ids=[reference.coverages["B"].id, reference.coverages["H"].id],
                distributor_id=reference.agent.id,
            )
        )

        breakdown = result.unwrap()
        assert breakdown.sections_premium == Decimal("13000")
        assert breakdown.net_premium == Decimal("163000")
        assert breakdown.commission_rate == Decimal("0.10")
        assert breakdown.commission_amount == Decimal("16300")
        assert {line.name for line in breakdown.coverages} == {
            "Défense et Recours",
            "Individuelle Conducteur",
        }

    async def test_unknown_coverage(self, rating_engine, reference):
        result = await rating_engine.calculate(_request(coverage_ids=[uuid4()]))

        assert result.is_err()
        assert result.unwrap_err().kind == ErrorKind.NOT_FOUND

    async def test_unknown_distributor(self, rating_engine, reference):
        result = await rating_engine.calculate(_request(distributor_id=uuid4()))

        assert result.is_err()
        assert result.unwrap_err().entity == "Distributor"
