"""
Pool record: the persistent, fixed-layout state of one pool.

Reserves are deliberately absent. Vault balances and the LP supply live in
token-program accounts and are read fresh on every operation.
"""

from __future__ import annotations

from dataclasses import dataclass

from solders.pubkey import Pubkey

from ..core.checked_math import U8_MAX
from ..core.cpmm import validate_fee_rate
from ..core.errors import PoolError, PoolErrorCode
from .addresses import SignerSeeds, lp_mint_address, pool_address, pool_signer_seeds
from .layouts import POOL_LEN, PoolLayout, require_len


@dataclass(frozen=True)
class PoolRecord:
    """
    State of a constant-product pool.

    Attributes:
        authority: Account that created the pool (informational only)
        token_a_mint: First asset
        token_b_mint: Second asset (distinct from token_a_mint)
        token_a_vault: Pool-owned associated token account for token_a_mint
        token_b_vault: Pool-owned associated token account for token_b_mint
        lp_mint: Liquidity token mint, authority = pool address
        fee_rate: Swap fee in basis points (0-10000)
        bump: Bump of the pool address
        lp_mint_bump: Bump of the lp_mint address
    """

    authority: Pubkey
    token_a_mint: Pubkey
    token_b_mint: Pubkey
    token_a_vault: Pubkey
    token_b_vault: Pubkey
    lp_mint: Pubkey
    fee_rate: int
    bump: int
    lp_mint_bump: int

    LEN = POOL_LEN

    def __post_init__(self) -> None:
        if self.token_a_mint == self.token_b_mint:
            raise PoolError(PoolErrorCode.IDENTICAL_MINTS)
        validate_fee_rate(self.fee_rate)
        for name in ("bump", "lp_mint_bump"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or not (0 <= value <= U8_MAX):
                raise ValueError(f"{name} must be a u8: {value!r}")

    @classmethod
    def decode(cls, data: bytes) -> "PoolRecord":
        require_len(data, POOL_LEN, name="pool record")
        c = PoolLayout.parse(bytes(data))
        return cls(
            authority=Pubkey.from_bytes(c.authority),
            token_a_mint=Pubkey.from_bytes(c.token_a_mint),
            token_b_mint=Pubkey.from_bytes(c.token_b_mint),
            token_a_vault=Pubkey.from_bytes(c.token_a_vault),
            token_b_vault=Pubkey.from_bytes(c.token_b_vault),
            lp_mint=Pubkey.from_bytes(c.lp_mint),
            fee_rate=int(c.fee_rate),
            bump=int(c.bump),
            lp_mint_bump=int(c.lp_mint_bump),
        )

    def encode(self) -> bytes:
        return PoolLayout.build(
            dict(
                authority=bytes(self.authority),
                token_a_mint=bytes(self.token_a_mint),
                token_b_mint=bytes(self.token_b_mint),
                token_a_vault=bytes(self.token_a_vault),
                token_b_vault=bytes(self.token_b_vault),
                lp_mint=bytes(self.lp_mint),
                fee_rate=self.fee_rate,
                bump=self.bump,
                lp_mint_bump=self.lp_mint_bump,
            )
        )

    def signer_seeds(self) -> SignerSeeds:
        """Seeds (bump included) that authorize actions as the pool."""
        return pool_signer_seeds(self.token_a_mint, self.token_b_mint, self.bump)

    def verify_addresses(self, pool_key: Pubkey, program_id: Pubkey) -> bool:
        """
        Check the derived-address invariants:
            pool_key == derive(["pool", token_a_mint, token_b_mint])
            lp_mint == derive(["lp_mint", pool_key])
        with the stored bumps matching the canonical ones.
        """
        expected_pool, bump = pool_address(self.token_a_mint, self.token_b_mint, program_id)
        if expected_pool != pool_key or bump != self.bump:
            return False
        expected_lp, lp_bump = lp_mint_address(pool_key, program_id)
        return expected_lp == self.lp_mint and lp_bump == self.lp_mint_bump

    def __repr__(self) -> str:
        return (
            f"PoolRecord(mints=({str(self.token_a_mint)[:8]}..., {str(self.token_b_mint)[:8]}...), "
            f"lp_mint={str(self.lp_mint)[:8]}..., fee_rate={self.fee_rate})"
        )
