"""
Core pool algorithms
"""

from .errors import AmmError, PoolError, PoolErrorCode, ProgramError, ProgramErrorCode
from .checked_math import U64_MAX, U128_MAX, checked_add_u64, mul_div_u64, to_u64
from .cpmm import (
    MINIMUM_LIQUIDITY,
    SwapQuote,
    compute_lp_burn,
    compute_lp_mint,
    swap_exact_in,
    validate_fee_rate,
)

__all__ = [
    "AmmError",
    "PoolError",
    "PoolErrorCode",
    "ProgramError",
    "ProgramErrorCode",
    "U64_MAX",
    "U128_MAX",
    "checked_add_u64",
    "mul_div_u64",
    "to_u64",
    "MINIMUM_LIQUIDITY",
    "SwapQuote",
    "compute_lp_burn",
    "compute_lp_mint",
    "swap_exact_in",
    "validate_fee_rate",
]
