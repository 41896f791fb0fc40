"""
Fixed binary layouts of the accounts the pool reads and writes.

All layouts are little-endian with no padding. Decoders must check the exact
buffer length before parsing (see `require_len`); a layout change is a breaking
change because records carry no version tag.
"""

from __future__ import annotations

from construct import Bytes, Flag, Int8ul, Int16ul, Int32ul, Int64ul, Struct

from ..core.errors import ProgramError, ProgramErrorCode

PUBKEY_LAYOUT = Bytes(32)

# COption<T> is a u32 tag (0 = None, 1 = Some) followed by the full-width value.
COPTION_NONE = 0
COPTION_SOME = 1

PoolLayout = Struct(
    "authority" / PUBKEY_LAYOUT,
    "token_a_mint" / PUBKEY_LAYOUT,
    "token_b_mint" / PUBKEY_LAYOUT,
    "token_a_vault" / PUBKEY_LAYOUT,
    "token_b_vault" / PUBKEY_LAYOUT,
    "lp_mint" / PUBKEY_LAYOUT,
    "fee_rate" / Int16ul,
    "bump" / Int8ul,
    "lp_mint_bump" / Int8ul,
)

MintLayout = Struct(
    "mint_authority_option" / Int32ul,
    "mint_authority" / PUBKEY_LAYOUT,
    "supply" / Int64ul,
    "decimals" / Int8ul,
    "is_initialized" / Flag,
    "freeze_authority_option" / Int32ul,
    "freeze_authority" / PUBKEY_LAYOUT,
)

TokenAccountLayout = Struct(
    "mint" / PUBKEY_LAYOUT,
    "owner" / PUBKEY_LAYOUT,
    "amount" / Int64ul,
    "delegate_option" / Int32ul,
    "delegate" / PUBKEY_LAYOUT,
    "state" / Int8ul,
    "is_native_option" / Int32ul,
    "is_native" / Int64ul,
    "delegated_amount" / Int64ul,
    "close_authority_option" / Int32ul,
    "close_authority" / PUBKEY_LAYOUT,
)

POOL_LEN = PoolLayout.sizeof()
MINT_LEN = MintLayout.sizeof()
TOKEN_ACCOUNT_LEN = TokenAccountLayout.sizeof()


def require_len(data: bytes, expected: int, *, name: str) -> None:
    if len(data) != expected:
        raise ProgramError(
            ProgramErrorCode.INVALID_ACCOUNT_DATA,
            f"{name} must be {expected} bytes, got {len(data)}",
        )
