"""
fixed_point.py - Saturating Unsigned Fixed-Point Decimals

A FixedPoint is an integer numerator (``inner``) over a fixed power of ten
(``10 ** decimals``), bounded by an unsigned backing width (``bits``):

    value = inner / 10**decimals,   0 <= inner <= 2**bits - 1

Every arithmetic operation saturates at the representable bounds instead of
raising: subtraction floors at zero, addition/multiplication/exponentiation
clamp at the maximum. Multiplication and division truncate toward zero.

The width is a parameter, not a property of the type, so the same code runs
against 64-bit or 128-bit (or wider) backing integers. Values with different
``decimals`` or ``bits`` never mix; doing so raises ValueError.

Exponentiation:
    saturating_pow() uses repeated squaring, O(log n) multiplications.
    saturating_pow_linear() multiplies n times and is kept as the reference.
    Both return the exact power truncated once to the storage scale. Each
    carries a lower and an upper bound chain at a guarded working scale and
    falls back to exact integer arithmetic when the bounds straddle a stored
    unit, so they agree bit for bit.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN, localcontext
from functools import total_ordering
from typing import Union


DEFAULT_DECIMALS = 18
DEFAULT_BITS = 128

# Minimum extra decimals carried through the exponentiation chains.
GUARD_DIGITS = 18

DecimalLike = Union[Decimal, int, str]


def _mul_down(a: int, b: int, unit: int, ceiling: int) -> int:
    return min(a * b // unit, ceiling)


def _mul_up(a: int, b: int, unit: int, ceiling: int) -> int:
    return min(-(-a * b // unit), ceiling)


@total_ordering
@dataclass(frozen=True, slots=True)
class FixedPoint:
    """
    Unsigned fixed-point decimal with saturating arithmetic.

    Attributes:
        inner: Integer numerator, 0 <= inner <= 2**bits - 1.
        decimals: Number of decimal places (scale is 10**decimals).
        bits: Width of the backing unsigned integer.

    This class is immutable (frozen=True) and memory-optimized (slots=True).
    All fields are validated in __post_init__.
    """
    inner: int
    decimals: int = DEFAULT_DECIMALS
    bits: int = DEFAULT_BITS

    def __post_init__(self):
        if isinstance(self.inner, bool) or not isinstance(self.inner, int):
            raise ValueError(f"FixedPoint inner must be int, got {type(self.inner)}")
        if self.decimals < 0:
            raise ValueError(f"decimals cannot be negative, got {self.decimals}")
        if self.bits <= 0:
            raise ValueError(f"bits must be positive, got {self.bits}")
        if self.inner < 0 or self.inner > (1 << self.bits) - 1:
            raise ValueError(
                f"inner {self.inner} outside [0, 2**{self.bits} - 1]"
            )

    # ------------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------------

    @classmethod
    def zero(cls, decimals: int = DEFAULT_DECIMALS, bits: int = DEFAULT_BITS) -> FixedPoint:
        return cls(0, decimals, bits)

    @classmethod
    def one(cls, decimals: int = DEFAULT_DECIMALS, bits: int = DEFAULT_BITS) -> FixedPoint:
        return cls._clamped(10 ** decimals, decimals, bits)

    @classmethod
    def max_value(cls, decimals: int = DEFAULT_DECIMALS, bits: int = DEFAULT_BITS) -> FixedPoint:
        return cls((1 << bits) - 1, decimals, bits)

    @classmethod
    def from_decimal(cls, value: DecimalLike, decimals: int = DEFAULT_DECIMALS,
                     bits: int = DEFAULT_BITS) -> FixedPoint:
        """
        Convert a Decimal (or int/str) to fixed point.

        Digits beyond ``decimals`` are truncated toward zero. Values above the
        representable maximum saturate to it.

        Raises:
            ValueError: If the value is negative, NaN or infinite.
        """
        if isinstance(value, FixedPoint):
            raise ValueError("from_decimal() expects a Decimal, got FixedPoint")
        if isinstance(value, float):
            value = str(value)
        if not isinstance(value, Decimal):
            value = Decimal(value)
        if value.is_nan() or value.is_infinite():
            raise ValueError(f"Fixed-point value must be finite, got {value}")
        if value < 0:
            raise ValueError(f"Fixed-point value cannot be negative, got {value}")
        with localcontext() as ctx:
            ctx.prec = max(ctx.prec, len(value.as_tuple().digits) + decimals + 2)
            scaled = value.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN)
        return cls._clamped(int(scaled), decimals, bits)

    @classmethod
    def _clamped(cls, inner: int, decimals: int, bits: int) -> FixedPoint:
        return cls(min(max(inner, 0), (1 << bits) - 1), decimals, bits)

    # ------------------------------------------------------------------------
    # Properties and conversions
    # ------------------------------------------------------------------------

    @property
    def scale(self) -> int:
        return 10 ** self.decimals

    @property
    def max_inner(self) -> int:
        return (1 << self.bits) - 1

    def is_zero(self) -> bool:
        return self.inner == 0

    def is_max(self) -> bool:
        return self.inner == self.max_inner

    def to_decimal(self) -> Decimal:
        """Exact Decimal value of this fixed-point number."""
        with localcontext() as ctx:
            ctx.prec = max(ctx.prec, len(str(self.inner)) + 2)
            return Decimal(self.inner).scaleb(-self.decimals)

    def like(self, inner: int) -> FixedPoint:
        """A value with the same parameters, clamped into range."""
        return FixedPoint._clamped(inner, self.decimals, self.bits)

    # ------------------------------------------------------------------------
    # Saturating arithmetic
    # ------------------------------------------------------------------------

    def _check_compatible(self, other: FixedPoint) -> None:
        if not isinstance(other, FixedPoint):
            raise ValueError(f"Expected FixedPoint, got {type(other)}")
        if other.decimals != self.decimals or other.bits != self.bits:
            raise ValueError(
                f"Incompatible fixed-point parameters: "
                f"({self.decimals}, {self.bits}) vs ({other.decimals}, {other.bits})"
            )

    def saturating_add(self, other: FixedPoint) -> FixedPoint:
        self._check_compatible(other)
        return self.like(self.inner + other.inner)

    def saturating_sub(self, other: FixedPoint) -> FixedPoint:
        self._check_compatible(other)
        return self.like(self.inner - other.inner)

    def saturating_mul(self, other: FixedPoint) -> FixedPoint:
        self._check_compatible(other)
        return self.like(self.inner * other.inner // self.scale)

    def saturating_div(self, other: FixedPoint) -> FixedPoint:
        """
        Divide, truncating toward zero.

        Division by zero saturates: max for a non-zero numerator, zero for 0/0.
        """
        self._check_compatible(other)
        if other.inner == 0:
            return self.like(self.max_inner if self.inner else 0)
        return self.like(self.inner * self.scale // other.inner)

    def _guard_scale(self, exponent: int) -> int:
        # Bound chains drift apart by at most ~2 * n * log2(n) working units
        # per unit of magnitude; the guard covers that plus GUARD_DIGITS.
        magnitude = max(0, len(str(self.max_inner)) - self.decimals)
        drift = len(str(2 * exponent * max(1, exponent.bit_length())))
        return 10 ** (GUARD_DIGITS + magnitude + drift)

    def _settle(self, low: int, high: int, guard: int, exponent: int) -> FixedPoint:
        # low <= exact <= high at the guarded scale, so equal floors are exact
        if low // guard == high // guard:
            return self.like(low // guard)
        return self.like(self.inner ** exponent // self.scale ** (exponent - 1))

    def saturating_pow(self, exponent: int) -> FixedPoint:
        """
        Raise to a non-negative integer power by repeated squaring.

        O(log exponent) multiplications. The result is the exact power
        truncated toward zero and clamped at the maximum, the same value
        saturating_pow_linear() returns.

        Lower and upper bound chains are carried at a guarded working scale.
        When both truncate to the same stored value that value is exact;
        otherwise the exact rational power is computed directly.
        """
        if exponent < 0:
            raise ValueError(f"exponent cannot be negative, got {exponent}")
        if exponent == 0:
            return FixedPoint.one(self.decimals, self.bits)

        guard = self._guard_scale(exponent)
        unit = self.scale * guard
        ceiling = self.max_inner * guard + guard - 1
        low = high = unit
        power_low = power_high = self.inner * guard
        remaining = exponent
        while remaining:
            if remaining & 1:
                low = _mul_down(low, power_low, unit, ceiling)
                high = _mul_up(high, power_high, unit, ceiling)
            remaining >>= 1
            if remaining:
                power_low = _mul_down(power_low, power_low, unit, ceiling)
                power_high = _mul_up(power_high, power_high, unit, ceiling)
        return self._settle(low, high, guard, exponent)

    def saturating_pow_linear(self, exponent: int) -> FixedPoint:
        """
        Raise to a non-negative integer power by repeated multiplication.

        O(exponent). Reference implementation for saturating_pow().
        """
        if exponent < 0:
            raise ValueError(f"exponent cannot be negative, got {exponent}")
        if exponent == 0:
            return FixedPoint.one(self.decimals, self.bits)

        guard = self._guard_scale(exponent)
        unit = self.scale * guard
        ceiling = self.max_inner * guard + guard - 1
        base = self.inner * guard
        low = high = unit
        for _ in range(exponent):
            low = _mul_down(low, base, unit, ceiling)
            high = _mul_up(high, base, unit, ceiling)
        return self._settle(low, high, guard, exponent)

    # ------------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------------

    def __lt__(self, other: FixedPoint) -> bool:
        if not isinstance(other, FixedPoint):
            return NotImplemented
        self._check_compatible(other)
        return self.inner < other.inner

    def __repr__(self) -> str:
        return f"FixedPoint({self.to_decimal()})"

    def __str__(self) -> str:
        return format(self.to_decimal(), 'f')
