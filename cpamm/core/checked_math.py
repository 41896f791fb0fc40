"""Fixed-width checked integer arithmetic.

Python ints never wrap, so every bound the ledger's integer types impose is
enforced here explicitly. Amounts are u64; products that feed a division are
formed in a u128 intermediate and narrowed back to u64 with `to_u64`. Any step
that leaves its width raises `PoolError(MATH_OVERFLOW)` instead of producing a
silently wrapped or oversized value.
"""

from __future__ import annotations

import math

from .errors import PoolError, PoolErrorCode

U8_MAX: int = (1 << 8) - 1
U64_MAX: int = (1 << 64) - 1
U128_MAX: int = (1 << 128) - 1


def _overflow(detail: str) -> PoolError:
    return PoolError(PoolErrorCode.MATH_OVERFLOW, detail)


def _require_unsigned(name: str, value: int, bound: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0 or value > bound:
        raise _overflow(f"{name}={value} outside [0, {bound}]")


def to_u64(value: int) -> int:
    """Narrow a wide intermediate to u64."""
    _require_unsigned("value", value, U128_MAX)
    if value > U64_MAX:
        raise _overflow(f"{value} does not fit in u64")
    return value


def checked_add_u64(a: int, b: int) -> int:
    _require_unsigned("a", a, U64_MAX)
    _require_unsigned("b", b, U64_MAX)
    total = a + b
    if total > U64_MAX:
        raise _overflow(f"{a} + {b} exceeds u64")
    return total


def checked_mul_u128(a: int, b: int) -> int:
    _require_unsigned("a", a, U128_MAX)
    _require_unsigned("b", b, U128_MAX)
    product = a * b
    if product > U128_MAX:
        raise _overflow(f"{a} * {b} exceeds u128")
    return product


def checked_div(numerator: int, denominator: int) -> int:
    """Floor division; a zero denominator is reported as an overflow."""
    if denominator == 0:
        raise _overflow("division by zero")
    return numerator // denominator


def mul_div_u64(a: int, b: int, denominator: int) -> int:
    """`floor(a * b / denominator)` with a u128 intermediate, narrowed to u64."""
    _require_unsigned("a", a, U64_MAX)
    _require_unsigned("b", b, U64_MAX)
    return to_u64(checked_div(checked_mul_u128(a, b), denominator))


def isqrt_u128(value: int) -> int:
    """Exact integer square root (floor) of a u128 value."""
    _require_unsigned("value", value, U128_MAX)
    return math.isqrt(value)
