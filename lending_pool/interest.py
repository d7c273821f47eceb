"""
interest.py - Discrete Compound Interest

Pure calculation functions. All inputs explicit, no store, no clock.

Key Formulas:
    multiplier = (1 + rate) ** elapsed - 1
    accrued    = principal + principal * multiplier
    apy        = (1 + rate) ** periods_per_year - 1

Interest compounds once per height, not continuously. All arithmetic is
saturating fixed point (see fixed_point.py), so very long elapsed periods
clamp at the representable maximum instead of raising.
"""

from __future__ import annotations

from .fixed_point import FixedPoint


def compound_multiplier(rate: FixedPoint, periods: int) -> FixedPoint:
    """
    Growth factor minus one over a number of periods.

    PURE FUNCTION - All inputs explicit.

    Args:
        rate: Interest per period
        periods: Number of compounding periods (non-negative)

    Returns:
        (1 + rate) ** periods - 1, saturating
    """
    one = FixedPoint.one(rate.decimals, rate.bits)
    return one.saturating_add(rate).saturating_pow(periods).saturating_sub(one)


def accrue(principal: FixedPoint, anchor: int, now: int, rate: FixedPoint) -> FixedPoint:
    """
    Principal plus interest compounded from anchor to now.

    PURE FUNCTION - All inputs explicit.

    Args:
        principal: Principal as of the anchor height
        anchor: Height of the last adjustment
        now: Current height
        rate: Interest per height

    Returns:
        principal * (1 + rate) ** (now - anchor), saturating.
        A zero principal returns zero without computing the multiplier.

    Raises:
        ValueError: If now < anchor
    """
    if principal.is_zero():
        return principal

    elapsed = now - anchor
    if elapsed < 0:
        raise ValueError(f"Accrual anchor {anchor} is ahead of current height {now}")

    multiplier = compound_multiplier(rate, elapsed)
    return principal.saturating_add(principal.saturating_mul(multiplier))


def annualized_yield(rate: FixedPoint, periods_per_year: int) -> FixedPoint:
    """
    Annual yield of a per-period rate: (1 + rate) ** periods_per_year - 1.

    PURE FUNCTION - All inputs explicit.
    """
    if periods_per_year < 0:
        raise ValueError(f"periods_per_year cannot be negative, got {periods_per_year}")
    return compound_multiplier(rate, periods_per_year)
