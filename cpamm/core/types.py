"""Data types for the pool engine.

All types are frozen dataclasses (immutable).

Units/conventions:
- amounts are u64 token base units;
- `fee_rate` is basis points (1/10_000);
- `signer_seeds` is empty when the authority signs the transaction itself, and
  holds the pool's seeds (bump included) when the pool authorizes as a PDA.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, unique
from typing import Optional, Tuple, Union

from solders.pubkey import Pubkey

from ..state.addresses import SignerSeeds
from ..state.pool import PoolRecord


@unique
class Operation(IntEnum):
    """One member per instruction; the value is its discriminator byte."""
    INITIALIZE = 0
    ADD_LIQUIDITY = 1
    REMOVE_LIQUIDITY = 2
    SWAP = 3


@dataclass(frozen=True)
class PoolReserves:
    """Vault balances and LP supply, read from the token ledger for one operation."""

    reserve_a: int
    reserve_b: int
    lp_supply: int


@dataclass(frozen=True)
class PoolKeys:
    pool: Pubkey
    lp_mint: Pubkey
    token_a_vault: Pubkey
    token_b_vault: Pubkey
    signer_seeds: SignerSeeds


@dataclass(frozen=True)
class UserKeys:
    user: Pubkey
    token_a: Pubkey
    token_b: Pubkey
    lp_token: Optional[Pubkey] = None


@dataclass(frozen=True)
class Transfer:
    source: Pubkey
    destination: Pubkey
    authority: Pubkey
    amount: int
    signer_seeds: SignerSeeds = ()


@dataclass(frozen=True)
class MintTo:
    mint: Pubkey
    destination: Pubkey
    authority: Pubkey
    amount: int
    signer_seeds: SignerSeeds = ()


@dataclass(frozen=True)
class Burn:
    mint: Pubkey
    source: Pubkey
    authority: Pubkey
    amount: int
    signer_seeds: SignerSeeds = ()


Directive = Union[Transfer, MintTo, Burn]


@dataclass(frozen=True)
class AddLiquidityArgs:
    amount_a: int
    amount_b: int
    min_lp_amount: int


@dataclass(frozen=True)
class RemoveLiquidityArgs:
    lp_tokens: int
    min_amount_a: int
    min_amount_b: int


@dataclass(frozen=True)
class SwapArgs:
    amount_in: int
    min_amount_out: int
    a_to_b: bool


@dataclass(frozen=True)
class InitializeArgs:
    fee_rate: int


@dataclass(frozen=True)
class Transition:
    """Outcome of a committed operation: ledger directives in execution order."""

    operation: Operation
    directives: Tuple[Directive, ...] = ()
    record: Optional[PoolRecord] = None
    lp_minted: int = 0
    lp_burned: int = 0
    amount_a_out: int = 0
    amount_b_out: int = 0
    amount_out: int = 0
