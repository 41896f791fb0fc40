"""Error taxonomy for the pool engine.

Two families are surfaced to the host ledger:

- `PoolErrorCode`: pool-specific failures, reported as custom codes (0x0..0x9).
- `ProgramErrorCode`: structural failures shared with the host runtime (bad
  instruction data, missing accounts, wrong owner/size, ...). Their numeric code
  is the builtin index shifted into the upper 32 bits, so the two families never
  collide.

Nothing in the engine recovers from these; they propagate to the dispatcher,
which reports them and lets the host revert the transaction.
"""

from __future__ import annotations

from enum import IntEnum, unique


@unique
class PoolErrorCode(IntEnum):
    INVALID_AMOUNT = 0x0
    SLIPPAGE_EXCEEDED = 0x1
    INSUFFICIENT_LIQUIDITY = 0x2
    POOL_ALREADY_INITIALIZED = 0x3
    INVALID_FEE_RATE = 0x4
    MATH_OVERFLOW = 0x5
    INVALID_TOKEN_MINT = 0x6
    UNAUTHORIZED = 0x7
    INVALID_POOL_STATE = 0x8
    IDENTICAL_MINTS = 0x9

    def description(self) -> str:
        return _POOL_ERROR_DESCRIPTIONS[self]


_POOL_ERROR_DESCRIPTIONS = {
    PoolErrorCode.INVALID_AMOUNT: "Invalid amount provided",
    PoolErrorCode.SLIPPAGE_EXCEEDED: "Slippage exceeded the allowed limit",
    PoolErrorCode.INSUFFICIENT_LIQUIDITY: "Insufficient liquidity in the pool",
    PoolErrorCode.POOL_ALREADY_INITIALIZED: "The pool is already initialized",
    PoolErrorCode.INVALID_FEE_RATE: "Invalid fee rate provided",
    PoolErrorCode.MATH_OVERFLOW: "Math operation resulted in overflow",
    PoolErrorCode.INVALID_TOKEN_MINT: "Invalid token mint provided",
    PoolErrorCode.UNAUTHORIZED: "Unauthorized access",
    PoolErrorCode.INVALID_POOL_STATE: "The pool is in an invalid state",
    PoolErrorCode.IDENTICAL_MINTS: "Pool mints must be distinct",
}


@unique
class ProgramErrorCode(IntEnum):
    """Builtin error indices of the host runtime."""

    INVALID_ARGUMENT = 2
    INVALID_INSTRUCTION_DATA = 3
    INVALID_ACCOUNT_DATA = 4
    ACCOUNT_DATA_TOO_SMALL = 5
    INSUFFICIENT_FUNDS = 6
    INCORRECT_PROGRAM_ID = 7
    MISSING_REQUIRED_SIGNATURE = 8
    ACCOUNT_ALREADY_INITIALIZED = 9
    UNINITIALIZED_ACCOUNT = 10
    NOT_ENOUGH_ACCOUNT_KEYS = 11
    INVALID_SEEDS = 14
    ILLEGAL_OWNER = 18
    ARITHMETIC_OVERFLOW = 24
    IMMUTABLE = 25


class AmmError(Exception):
    """Base class for every rejection raised by the engine."""

    def __init__(self, error: PoolErrorCode | ProgramErrorCode, detail: str = "") -> None:
        self.error = error
        self.detail = detail
        message = self.error_name
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)

    @property
    def error_name(self) -> str:
        return "".join(part.capitalize() for part in self.error.name.split("_"))

    @property
    def code(self) -> int:
        """Numeric code reported to the host; custom codes are the bare discriminant."""
        return int(self.error)


class PoolError(AmmError):
    """Raised for pool-specific failures (custom codes)."""

    error: PoolErrorCode

    def __init__(self, error: PoolErrorCode, detail: str = "") -> None:
        super().__init__(error, detail or error.description())


class ProgramError(AmmError):
    """Raised for structural failures (builtin codes)."""

    error: ProgramErrorCode

    @property
    def code(self) -> int:
        return int(self.error) << 32
