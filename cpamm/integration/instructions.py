"""
Instruction wire format.

An instruction is one discriminator byte followed by a little-endian payload:

    0 Initialize       fee_rate: u16
    1 AddLiquidity     amount_a: u64, amount_b: u64, min_lp_amount: u64
    2 RemoveLiquidity  lp_tokens: u64, min_amount_a: u64, min_amount_b: u64
    3 Swap             amount_in: u64, min_amount_out: u64, swap_direction: u8

Decoding happens before any account is examined. Trailing bytes after the
payload are ignored.

The `*_accounts` builders return the positional account list each operation
expects (named accounts, then the reserved slot) for clients and tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Union

from construct import Int8ul, Int16ul, Int64ul, Struct
from solders.pubkey import Pubkey

from ..core.cpmm import validate_fee_rate
from ..core.errors import ProgramError, ProgramErrorCode
from ..core.types import AddLiquidityArgs, InitializeArgs, Operation, RemoveLiquidityArgs, SwapArgs
from ..state.accounts import AccountMeta
from ..state.addresses import associated_token_address, lp_mint_address, pool_address
from .config import EngineConfig

InitializePayload = Struct("fee_rate" / Int16ul)

AddLiquidityPayload = Struct(
    "amount_a" / Int64ul,
    "amount_b" / Int64ul,
    "min_lp_amount" / Int64ul,
)

RemoveLiquidityPayload = Struct(
    "lp_tokens" / Int64ul,
    "min_amount_a" / Int64ul,
    "min_amount_b" / Int64ul,
)

SwapPayload = Struct(
    "amount_in" / Int64ul,
    "min_amount_out" / Int64ul,
    "swap_direction" / Int8ul,
)

_PAYLOADS = {
    Operation.INITIALIZE: InitializePayload,
    Operation.ADD_LIQUIDITY: AddLiquidityPayload,
    Operation.REMOVE_LIQUIDITY: RemoveLiquidityPayload,
    Operation.SWAP: SwapPayload,
}

PAYLOAD_LEN = {op: layout.sizeof() for op, layout in _PAYLOADS.items()}

# Named accounts per operation; one reserved slot follows each list.
ACCOUNT_NAMES = {
    Operation.INITIALIZE: (
        "authority",
        "pool",
        "token_a_mint",
        "token_b_mint",
        "token_a_vault",
        "token_b_vault",
        "lp_mint",
        "token_a_program",
        "token_b_program",
        "token_program",
        "system_program",
        "associated_token_program",
    ),
    Operation.ADD_LIQUIDITY: (
        "user",
        "pool",
        "lp_mint",
        "token_a_vault",
        "token_b_vault",
        "user_token_a",
        "user_token_b",
        "user_lp_token",
        "token_a_mint",
        "token_b_mint",
        "token_program",
        "associated_token_program",
        "system_program",
    ),
    Operation.REMOVE_LIQUIDITY: (
        "user",
        "pool",
        "lp_mint",
        "token_a_vault",
        "token_b_vault",
        "user_token_a",
        "user_token_b",
        "user_lp_token",
        "token_a_mint",
        "token_b_mint",
        "token_program",
    ),
    Operation.SWAP: (
        "user",
        "pool",
        "token_a_vault",
        "token_b_vault",
        "user_token_a",
        "user_token_b",
        "token_a_mint",
        "token_b_mint",
        "token_program",
    ),
}

RESERVED_ACCOUNTS = 1


def required_accounts(operation: Operation) -> int:
    return len(ACCOUNT_NAMES[operation]) + RESERVED_ACCOUNTS


InstructionArgs = Union[InitializeArgs, AddLiquidityArgs, RemoveLiquidityArgs, SwapArgs]


@dataclass(frozen=True)
class Instruction:
    operation: Operation
    args: InstructionArgs


def decode_instruction(data: bytes) -> Instruction:
    """
    Split raw instruction data into operation and typed arguments.

    Raises:
        ProgramError(INVALID_INSTRUCTION_DATA): empty data, unknown
            discriminator or short payload.
        PoolError(INVALID_FEE_RATE): Initialize with fee_rate > 10000.
    """
    raw = bytes(data)
    if not raw:
        raise ProgramError(ProgramErrorCode.INVALID_INSTRUCTION_DATA, "empty instruction data")
    try:
        operation = Operation(raw[0])
    except ValueError:
        raise ProgramError(
            ProgramErrorCode.INVALID_INSTRUCTION_DATA,
            f"unknown discriminator {raw[0]}",
        ) from None

    payload = raw[1:]
    need = PAYLOAD_LEN[operation]
    if len(payload) < need:
        raise ProgramError(
            ProgramErrorCode.INVALID_INSTRUCTION_DATA,
            f"{operation.name} payload needs {need} bytes, got {len(payload)}",
        )
    c = _PAYLOADS[operation].parse(payload[:need])

    if operation == Operation.INITIALIZE:
        args: InstructionArgs = InitializeArgs(fee_rate=validate_fee_rate(int(c.fee_rate)))
    elif operation == Operation.ADD_LIQUIDITY:
        args = AddLiquidityArgs(
            amount_a=int(c.amount_a),
            amount_b=int(c.amount_b),
            min_lp_amount=int(c.min_lp_amount),
        )
    elif operation == Operation.REMOVE_LIQUIDITY:
        args = RemoveLiquidityArgs(
            lp_tokens=int(c.lp_tokens),
            min_amount_a=int(c.min_amount_a),
            min_amount_b=int(c.min_amount_b),
        )
    else:
        args = SwapArgs(
            amount_in=int(c.amount_in),
            min_amount_out=int(c.min_amount_out),
            a_to_b=c.swap_direction != 0,
        )
    return Instruction(operation=operation, args=args)


def _encode(operation: Operation, **values: int) -> bytes:
    return bytes([int(operation)]) + _PAYLOADS[operation].build(values)


def encode_initialize(fee_rate: int) -> bytes:
    return _encode(Operation.INITIALIZE, fee_rate=fee_rate)


def encode_add_liquidity(amount_a: int, amount_b: int, min_lp_amount: int = 0) -> bytes:
    return _encode(Operation.ADD_LIQUIDITY, amount_a=amount_a, amount_b=amount_b, min_lp_amount=min_lp_amount)


def encode_remove_liquidity(lp_tokens: int, min_amount_a: int = 0, min_amount_b: int = 0) -> bytes:
    return _encode(
        Operation.REMOVE_LIQUIDITY,
        lp_tokens=lp_tokens,
        min_amount_a=min_amount_a,
        min_amount_b=min_amount_b,
    )


def encode_swap(amount_in: int, min_amount_out: int = 0, *, a_to_b: bool = True) -> bytes:
    return _encode(
        Operation.SWAP,
        amount_in=amount_in,
        min_amount_out=min_amount_out,
        swap_direction=1 if a_to_b else 0,
    )


# ---------------------------------------------------------------------------
# Account list builders
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PoolAddresses:
    """Every derived address of one pool."""

    pool: Pubkey
    lp_mint: Pubkey
    token_a_vault: Pubkey
    token_b_vault: Pubkey
    bump: int
    lp_mint_bump: int

    @classmethod
    def derive(cls, token_a_mint: Pubkey, token_b_mint: Pubkey, config: EngineConfig) -> "PoolAddresses":
        pool, bump = pool_address(token_a_mint, token_b_mint, config.program_id)
        lp_mint, lp_mint_bump = lp_mint_address(pool, config.program_id)
        return cls(
            pool=pool,
            lp_mint=lp_mint,
            token_a_vault=_ata(pool, token_a_mint, config),
            token_b_vault=_ata(pool, token_b_mint, config),
            bump=bump,
            lp_mint_bump=lp_mint_bump,
        )


def _ata(owner: Pubkey, mint: Pubkey, config: EngineConfig) -> Pubkey:
    return associated_token_address(
        owner,
        mint,
        token_program_id=config.token_program_id,
        associated_token_program_id=config.associated_token_program_id,
    )


def _reserved(config: EngineConfig) -> AccountMeta:
    return AccountMeta(config.system_program_id)


def initialize_accounts(
    authority: Pubkey,
    token_a_mint: Pubkey,
    token_b_mint: Pubkey,
    config: EngineConfig,
) -> List[AccountMeta]:
    p = PoolAddresses.derive(token_a_mint, token_b_mint, config)
    return [
        AccountMeta(authority, is_signer=True, is_writable=True),
        AccountMeta(p.pool, is_writable=True),
        AccountMeta(token_a_mint),
        AccountMeta(token_b_mint),
        AccountMeta(p.token_a_vault, is_writable=True),
        AccountMeta(p.token_b_vault, is_writable=True),
        AccountMeta(p.lp_mint, is_writable=True),
        AccountMeta(config.token_program_id),
        AccountMeta(config.token_program_id),
        AccountMeta(config.token_program_id),
        AccountMeta(config.system_program_id),
        AccountMeta(config.associated_token_program_id),
        _reserved(config),
    ]


def _liquidity_accounts(
    user: Pubkey,
    token_a_mint: Pubkey,
    token_b_mint: Pubkey,
    config: EngineConfig,
) -> List[AccountMeta]:
    p = PoolAddresses.derive(token_a_mint, token_b_mint, config)
    return [
        AccountMeta(user, is_signer=True, is_writable=True),
        AccountMeta(p.pool),
        AccountMeta(p.lp_mint, is_writable=True),
        AccountMeta(p.token_a_vault, is_writable=True),
        AccountMeta(p.token_b_vault, is_writable=True),
        AccountMeta(_ata(user, token_a_mint, config), is_writable=True),
        AccountMeta(_ata(user, token_b_mint, config), is_writable=True),
        AccountMeta(_ata(user, p.lp_mint, config), is_writable=True),
        AccountMeta(token_a_mint),
        AccountMeta(token_b_mint),
        AccountMeta(config.token_program_id),
    ]


def add_liquidity_accounts(
    user: Pubkey,
    token_a_mint: Pubkey,
    token_b_mint: Pubkey,
    config: EngineConfig,
) -> List[AccountMeta]:
    return _liquidity_accounts(user, token_a_mint, token_b_mint, config) + [
        AccountMeta(config.associated_token_program_id),
        AccountMeta(config.system_program_id),
        _reserved(config),
    ]


def remove_liquidity_accounts(
    user: Pubkey,
    token_a_mint: Pubkey,
    token_b_mint: Pubkey,
    config: EngineConfig,
) -> List[AccountMeta]:
    return _liquidity_accounts(user, token_a_mint, token_b_mint, config) + [_reserved(config)]


def swap_accounts(
    user: Pubkey,
    token_a_mint: Pubkey,
    token_b_mint: Pubkey,
    config: EngineConfig,
) -> List[AccountMeta]:
    p = PoolAddresses.derive(token_a_mint, token_b_mint, config)
    return [
        AccountMeta(user, is_signer=True, is_writable=True),
        AccountMeta(p.pool),
        AccountMeta(p.token_a_vault, is_writable=True),
        AccountMeta(p.token_b_vault, is_writable=True),
        AccountMeta(_ata(user, token_a_mint, config), is_writable=True),
        AccountMeta(_ata(user, token_b_mint, config), is_writable=True),
        AccountMeta(token_a_mint),
        AccountMeta(token_b_mint),
        AccountMeta(config.token_program_id),
        _reserved(config),
    ]
