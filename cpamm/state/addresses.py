"""
Program-derived address (PDA) helpers.

A derived address is a pure function of a seed list and a program id. The
derivation appends a bump byte (255 downwards) until the hash falls off the
ed25519 curve, so no private key can ever sign for it; the owning program
proves authority instead by presenting the same seeds plus bump.

Seed schemes used by the pool:
    pool        = ["pool", token_a_mint, token_b_mint]
    lp mint     = ["lp_mint", pool]
    token vault = [owner, token_program_id, mint]   (associated-token program)
"""

from __future__ import annotations

from typing import Sequence, Tuple

from solders.pubkey import Pubkey

from ..core.errors import ProgramError, ProgramErrorCode

POOL_SEED = b"pool"
LP_MINT_SEED = b"lp_mint"

MAX_SEEDS = 16
MAX_SEED_LEN = 32

DEFAULT_PROGRAM_ID = Pubkey.from_string("jpJB1eJKD1rzvMkchc8Czzx8yx1wxJYBe3uDdUVF99K")
TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
ASSOCIATED_TOKEN_PROGRAM_ID = Pubkey.from_string("ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL")
SYSTEM_PROGRAM_ID = Pubkey.from_string("11111111111111111111111111111111")

SignerSeeds = Tuple[bytes, ...]


def _check_seeds(seeds: Sequence[bytes]) -> list[bytes]:
    out = [bytes(seed) for seed in seeds]
    if len(out) > MAX_SEEDS:
        raise ProgramError(ProgramErrorCode.INVALID_SEEDS, f"at most {MAX_SEEDS} seeds allowed")
    for seed in out:
        if len(seed) > MAX_SEED_LEN:
            raise ProgramError(ProgramErrorCode.INVALID_SEEDS, f"seed longer than {MAX_SEED_LEN} bytes")
    return out


def derive(seeds: Sequence[bytes], program_id: Pubkey) -> Tuple[Pubkey, int]:
    """Return the canonical (address, bump) for `seeds` under `program_id`."""
    return Pubkey.find_program_address(_check_seeds(seeds), program_id)


def create_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Pubkey:
    """Re-derive an address from seeds that already include the bump byte."""
    checked = _check_seeds(seeds)
    try:
        return Pubkey.create_program_address(checked, program_id)
    except Exception as exc:
        raise ProgramError(ProgramErrorCode.INVALID_SEEDS, f"seeds do not produce an off-curve address: {exc}") from exc


def verify_signer_seeds(seeds: Sequence[bytes], program_id: Pubkey, expected: Pubkey) -> bool:
    """True iff `seeds` (bump included) derive `expected` under `program_id`."""
    try:
        return create_program_address(seeds, program_id) == expected
    except ProgramError:
        return False


def pool_address(token_a_mint: Pubkey, token_b_mint: Pubkey, program_id: Pubkey) -> Tuple[Pubkey, int]:
    return derive([POOL_SEED, bytes(token_a_mint), bytes(token_b_mint)], program_id)


def lp_mint_address(pool: Pubkey, program_id: Pubkey) -> Tuple[Pubkey, int]:
    return derive([LP_MINT_SEED, bytes(pool)], program_id)


def associated_token_address(
    owner: Pubkey,
    mint: Pubkey,
    *,
    token_program_id: Pubkey = TOKEN_PROGRAM_ID,
    associated_token_program_id: Pubkey = ASSOCIATED_TOKEN_PROGRAM_ID,
) -> Pubkey:
    address, _ = derive([bytes(owner), bytes(token_program_id), bytes(mint)], associated_token_program_id)
    return address


def pool_signer_seeds(token_a_mint: Pubkey, token_b_mint: Pubkey, bump: int) -> SignerSeeds:
    return (POOL_SEED, bytes(token_a_mint), bytes(token_b_mint), bytes([bump]))


def lp_mint_signer_seeds(pool: Pubkey, bump: int) -> SignerSeeds:
    return (LP_MINT_SEED, bytes(pool), bytes([bump]))
