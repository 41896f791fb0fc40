"""
Constant Product Market Maker (CPMM) math for a two-asset pool.

This module implements the pool's pricing and share accounting with
deterministic integer rounding. Every rule here is value-critical: a rounding
or check-ordering slip is directly exploitable, so all divisions floor toward
the pool and every multiply that feeds a division goes through a u128
intermediate (see `checked_math`).

Algorithm Design:
- Type: Fixed-Point Integer Arithmetic / Deterministic Rounding
- Time Complexity: O(1) per operation
- Space Complexity: O(1) auxiliary
- Invariant: After each swap, x' * y' >= x * y (fee and truncation stay in the pool)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .checked_math import U64_MAX, checked_add_u64, isqrt_u128, mul_div_u64, to_u64
from .errors import PoolError, PoolErrorCode, ProgramError, ProgramErrorCode

# Smallest LP supply a pool may be bootstrapped with.
MINIMUM_LIQUIDITY = 1000

BPS_DENOM = 10_000
MAX_FEE_RATE = BPS_DENOM

Amount = int


@dataclass(frozen=True)
class SwapQuote:
    amount_in: Amount
    amount_in_with_fee: Amount
    amount_out: Amount
    reserve_in: Amount
    reserve_out: Amount

    @property
    def new_reserve_in(self) -> Amount:
        return self.reserve_in + self.amount_in

    @property
    def new_reserve_out(self) -> Amount:
        return self.reserve_out - self.amount_out


def validate_fee_rate(fee_rate: int) -> int:
    if not isinstance(fee_rate, int) or isinstance(fee_rate, bool):
        raise TypeError("fee_rate must be an int")
    if not (0 <= fee_rate <= MAX_FEE_RATE):
        raise PoolError(PoolErrorCode.INVALID_FEE_RATE, f"fee_rate must be in [0, {MAX_FEE_RATE}]: {fee_rate}")
    return fee_rate


def compute_bootstrap_lp(amount_a: Amount, amount_b: Amount) -> Amount:
    """
    LP minted by the first deposit into an empty pool.

        lp = floor(sqrt(amount_a * amount_b))

    The square root is exact (`math.isqrt`), never a float approximation.

    Raises:
        PoolError(INVALID_AMOUNT): the product is not positive
        PoolError(INSUFFICIENT_LIQUIDITY): lp < MINIMUM_LIQUIDITY
    """
    product = amount_a * amount_b
    if product <= 0:
        raise PoolError(PoolErrorCode.INVALID_AMOUNT, f"deposit product must be positive: {product}")
    lp = isqrt_u128(product)
    if lp < MINIMUM_LIQUIDITY:
        raise PoolError(
            PoolErrorCode.INSUFFICIENT_LIQUIDITY,
            f"initial liquidity {lp} below minimum {MINIMUM_LIQUIDITY}",
        )
    return to_u64(lp)


def compute_proportional_lp(
    amount_a: Amount,
    amount_b: Amount,
    reserve_a: Amount,
    reserve_b: Amount,
    lp_supply: Amount,
) -> Tuple[Amount, Amount]:
    """
    LP claimable by each side of a deposit into a funded pool.

        lp_from_a = floor(amount_a * lp_supply / reserve_a)
        lp_from_b = floor(amount_b * lp_supply / reserve_b)

    Raises:
        PoolError(INVALID_POOL_STATE): a reserve or the LP supply is zero
        PoolError(MATH_OVERFLOW): a share does not fit in u64
    """
    if reserve_a == 0 or reserve_b == 0 or lp_supply == 0:
        raise PoolError(
            PoolErrorCode.INVALID_POOL_STATE,
            f"reserves ({reserve_a}, {reserve_b}) and lp_supply {lp_supply} must all be non-zero",
        )
    lp_from_a = mul_div_u64(amount_a, lp_supply, reserve_a)
    lp_from_b = mul_div_u64(amount_b, lp_supply, reserve_b)
    return lp_from_a, lp_from_b


def compute_lp_mint(
    amount_a: Amount,
    amount_b: Amount,
    reserve_a: Amount,
    reserve_b: Amount,
    lp_supply: Amount,
) -> Amount:
    """
    Compute LP tokens to mint for a liquidity deposit.

    For an empty pool (reserve_a == 0 and reserve_b == 0):
        lp = floor(sqrt(amount_a * amount_b))

    Otherwise:
        lp = min(lp_from_a, lp_from_b)

    Taking the minimum means an off-ratio deposit donates its excess to the
    pool instead of diluting existing providers.

    Args:
        amount_a: Deposit of asset A (> 0)
        amount_b: Deposit of asset B (> 0)
        reserve_a: Current vault balance of asset A
        reserve_b: Current vault balance of asset B
        lp_supply: Current LP mint supply

    Returns:
        LP tokens to mint (always > 0)

    Raises:
        PoolError: see `compute_bootstrap_lp` / `compute_proportional_lp`;
            INVALID_AMOUNT if an amount is zero or nothing would be minted
    """
    if amount_a <= 0 or amount_b <= 0:
        raise PoolError(PoolErrorCode.INVALID_AMOUNT, f"deposit amounts must be positive: ({amount_a}, {amount_b})")

    if reserve_a == 0 and reserve_b == 0:
        lp = compute_bootstrap_lp(amount_a, amount_b)
    else:
        lp = min(compute_proportional_lp(amount_a, amount_b, reserve_a, reserve_b, lp_supply))

    if lp == 0:
        raise PoolError(PoolErrorCode.INVALID_AMOUNT, "deposit too small to mint any LP")
    return lp


def compute_lp_burn(
    lp_tokens: Amount,
    reserve_a: Amount,
    reserve_b: Amount,
    lp_supply: Amount,
) -> Tuple[Amount, Amount]:
    """
    Compute asset amounts returned for redeeming LP tokens.

        amount_a = floor(lp_tokens * reserve_a / lp_supply)
        amount_b = floor(lp_tokens * reserve_b / lp_supply)

    Redeeming the whole supply is refused so that a pool is never drained to
    an undefined price.

    Raises:
        ProgramError(INSUFFICIENT_FUNDS): lp_supply is zero
        ProgramError(INVALID_ARGUMENT): lp_tokens >= lp_supply
        PoolError(MATH_OVERFLOW): an amount does not fit in u64
    """
    if lp_supply == 0:
        raise ProgramError(ProgramErrorCode.INSUFFICIENT_FUNDS, "pool has no LP supply")
    if lp_tokens >= lp_supply:
        raise ProgramError(
            ProgramErrorCode.INVALID_ARGUMENT,
            f"cannot redeem {lp_tokens} of {lp_supply} LP tokens",
        )
    amount_a = mul_div_u64(lp_tokens, reserve_a, lp_supply)
    amount_b = mul_div_u64(lp_tokens, reserve_b, lp_supply)
    return amount_a, amount_b


def apply_fee(amount_in: Amount, fee_rate: int) -> Amount:
    """`floor(amount_in * (10000 - fee_rate) / 10000)`."""
    validate_fee_rate(fee_rate)
    return mul_div_u64(amount_in, BPS_DENOM - fee_rate, BPS_DENOM)


def swap_exact_in(
    reserve_in: Amount,
    reserve_out: Amount,
    amount_in: Amount,
    fee_rate: int,
) -> SwapQuote:
    """
    Compute output amount for an exact-in swap.

    This implements the CPMM formula:
        amount_in_with_fee = floor(amount_in * (10000 - fee_rate) / 10000)
        amount_out = floor(amount_in_with_fee * reserve_out / (reserve_in + amount_in_with_fee))

    The whole `amount_in` (fee included) is added to the input reserve, so the
    fee accrues to liquidity providers and k never decreases. Because the
    denominator always exceeds `amount_in_with_fee`, `amount_out` is strictly
    below `reserve_out`. A dust input may quote zero output; the caller's
    `min_amount_out` decides whether that is acceptable.

    Args:
        reserve_in: Current reserve of the input asset
        reserve_out: Current reserve of the output asset
        amount_in: Exact input amount
        fee_rate: Fee in basis points (0-10000)

    Returns:
        SwapQuote

    Raises:
        PoolError(INVALID_AMOUNT): amount_in is zero
        PoolError(INSUFFICIENT_LIQUIDITY): a reserve is empty
        PoolError(MATH_OVERFLOW): an intermediate leaves its width
    """
    if amount_in <= 0:
        raise PoolError(PoolErrorCode.INVALID_AMOUNT, f"amount_in must be positive: {amount_in}")
    if amount_in > U64_MAX:
        raise PoolError(PoolErrorCode.MATH_OVERFLOW, f"amount_in exceeds u64: {amount_in}")
    if reserve_in == 0 or reserve_out == 0:
        raise PoolError(
            PoolErrorCode.INSUFFICIENT_LIQUIDITY,
            f"pool reserves must be non-zero: ({reserve_in}, {reserve_out})",
        )

    amount_in_with_fee = apply_fee(amount_in, fee_rate)
    denominator = checked_add_u64(reserve_in, amount_in_with_fee)
    amount_out = mul_div_u64(amount_in_with_fee, reserve_out, denominator)

    return SwapQuote(
        amount_in=amount_in,
        amount_in_with_fee=amount_in_with_fee,
        amount_out=amount_out,
        reserve_in=reserve_in,
        reserve_out=reserve_out,
    )
