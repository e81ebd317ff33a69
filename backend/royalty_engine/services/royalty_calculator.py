# Overview: Pure royalty arithmetic; rate conversion, rate resolution and royalty rounding.

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from royalty_engine.errors import ValidationError


BPS_PER_UNIT = 10000


class RoyaltyCalculationError(ValidationError):
    """Raised when a rate or amount cannot be used for a royalty computation."""


def rate_to_bps(rate) -> int:
    """
    Convert a decimal fraction (0.08) into basis points (800), rounding half up.

    Accepts Decimal, str, int or float; floats go through str() so 0.1 stays 1000.
    """
    if rate is None:
        raise RoyaltyCalculationError("rate is required")
    if isinstance(rate, float):
        rate = str(rate)
    value = Decimal(rate) * BPS_PER_UNIT
    bps = int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if bps < 0 or bps > BPS_PER_UNIT:
        raise RoyaltyCalculationError("rate must be between 0 and 1")
    return bps


def resolve_rate_bps(tenant, default_bps: int) -> int:
    """Tenant override when set, otherwise the configured default."""
    if tenant is not None and tenant.royalty_rate is not None:
        return rate_to_bps(tenant.royalty_rate)
    return int(default_bps)


def calculate_royalty_cents(net_revenue_cents: int, rate_bps: int) -> int:
    """
    round_half_up(net * bps / 10000) in integer cents.

    Computed with Decimal so there is no float error; halves round away from
    zero, so a negative net (refunds exceeding gross) mirrors the positive case.
    """
    if rate_bps < 0:
        raise RoyaltyCalculationError("rate_bps must be non-negative")
    exact = Decimal(int(net_revenue_cents)) * Decimal(int(rate_bps)) / Decimal(BPS_PER_UNIT)
    return int(exact.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def round_half_up_div(numerator: int, denominator: int) -> int:
    """Integer division rounded half up; 0 when denominator is 0."""
    if not denominator:
        return 0
    exact = Decimal(int(numerator)) / Decimal(int(denominator))
    return int(exact.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
