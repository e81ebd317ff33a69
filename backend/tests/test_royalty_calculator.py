# Overview: Pytest coverage for royalty arithmetic (rates, rounding).

from decimal import Decimal
from types import SimpleNamespace

import pytest

from royalty_engine.errors import ValidationError
from royalty_engine.services.royalty_calculator import (
    RoyaltyCalculationError,
    calculate_royalty_cents,
    rate_to_bps,
    resolve_rate_bps,
    round_half_up_div,
)


class TestRateConversion:

    def test_decimal_rate(self):
        assert rate_to_bps(Decimal("0.0800")) == 800

    def test_float_rate_has_no_binary_error(self):
        assert rate_to_bps(0.1) == 1000
        assert rate_to_bps(0.07) == 700

    def test_string_rate(self):
        assert rate_to_bps("0.125") == 1250

    def test_fractional_bps_rounds_half_up(self):
        assert rate_to_bps(Decimal("0.08125")) == 813

    def test_out_of_range_rejected(self):
        with pytest.raises(RoyaltyCalculationError):
            rate_to_bps(Decimal("1.5"))
        with pytest.raises(RoyaltyCalculationError):
            rate_to_bps(Decimal("-0.01"))

    def test_missing_rate_rejected(self):
        with pytest.raises(RoyaltyCalculationError):
            rate_to_bps(None)

    def test_rate_errors_are_validation_errors(self):
        with pytest.raises(ValidationError, match="rate must be between 0 and 1"):
            rate_to_bps(Decimal("10"))


class TestResolveRate:

    def test_tenant_override_wins(self):
        tenant = SimpleNamespace(royalty_rate=Decimal("0.0850"))
        assert resolve_rate_bps(tenant, 1000) == 850

    def test_default_when_no_override(self):
        tenant = SimpleNamespace(royalty_rate=None)
        assert resolve_rate_bps(tenant, 1000) == 1000

    def test_default_when_no_tenant(self):
        assert resolve_rate_bps(None, 900) == 900


class TestRoyaltyCents:

    def test_ten_percent_of_net(self):
        assert calculate_royalty_cents(520000, 1000) == 52000

    def test_half_cent_rounds_up(self):
        # 15 * 10% = 1.5 cents
        assert calculate_royalty_cents(15, 1000) == 2
        # 5 * 10% = 0.5 cents
        assert calculate_royalty_cents(5, 1000) == 1

    def test_below_half_rounds_down(self):
        assert calculate_royalty_cents(14, 1000) == 1

    def test_negative_net_rounds_away_from_zero(self):
        assert calculate_royalty_cents(-15, 1000) == -2
        assert calculate_royalty_cents(-10000, 1000) == -1000

    def test_zero_revenue(self):
        assert calculate_royalty_cents(0, 1000) == 0

    def test_zero_rate(self):
        assert calculate_royalty_cents(520000, 0) == 0

    def test_negative_rate_rejected(self):
        with pytest.raises(RoyaltyCalculationError):
            calculate_royalty_cents(1000, -1)

    def test_large_amount_is_exact(self):
        # 12,345,678.91 at 8.75%
        assert calculate_royalty_cents(1234567891, 875) == 108024690


class TestRoundHalfUpDiv:

    def test_exact(self):
        assert round_half_up_div(10, 2) == 5

    def test_half_rounds_up(self):
        assert round_half_up_div(5, 2) == 3

    def test_zero_denominator(self):
        assert round_half_up_div(100, 0) == 0
