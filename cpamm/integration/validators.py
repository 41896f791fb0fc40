"""
Account validators.

Each check is a free function over one account plus the context it needs. The
processors call them eagerly, in a fixed order, while binding accounts; no
operation reaches the engine with an unvalidated account.
"""

from __future__ import annotations

from solders.pubkey import Pubkey

from ..core.errors import PoolError, PoolErrorCode, ProgramError, ProgramErrorCode
from ..state.accounts import AccountInfo
from ..state.addresses import associated_token_address, lp_mint_address, pool_address
from ..state.layouts import MINT_LEN, POOL_LEN, TOKEN_ACCOUNT_LEN
from ..state.pool import PoolRecord
from ..state.token import MintState, TokenAccountState
from .config import EngineConfig


def check_signer(account: AccountInfo) -> None:
    if not account.is_signer:
        raise PoolError(PoolErrorCode.UNAUTHORIZED, f"{account.key} must sign the transaction")


def check_mint(account: AccountInfo) -> None:
    if account.data_len != MINT_LEN:
        raise ProgramError(
            ProgramErrorCode.INVALID_ACCOUNT_DATA,
            f"{account.key} is not a mint ({account.data_len} bytes)",
        )


def check_program_owned(account: AccountInfo, program_id: Pubkey) -> None:
    if not account.is_owned_by(program_id):
        raise ProgramError(
            ProgramErrorCode.ILLEGAL_OWNER,
            f"{account.key} is owned by {account.owner}, expected {program_id}",
        )


def check_token_account(account: AccountInfo, config: EngineConfig) -> None:
    check_program_owned(account, config.token_program_id)
    if account.data_len != TOKEN_ACCOUNT_LEN:
        raise ProgramError(
            ProgramErrorCode.INVALID_ACCOUNT_DATA,
            f"{account.key} is not a token account ({account.data_len} bytes)",
        )


def check_associated_token_account(
    account: AccountInfo,
    owner: Pubkey,
    mint: Pubkey,
    config: EngineConfig,
) -> None:
    """The account must be the token account derived from [owner, token_program_id, mint]."""
    check_token_account(account, config)
    expected = associated_token_address(
        owner,
        mint,
        token_program_id=config.token_program_id,
        associated_token_program_id=config.associated_token_program_id,
    )
    if account.key != expected:
        raise ProgramError(
            ProgramErrorCode.INVALID_ACCOUNT_DATA,
            f"{account.key} is not the associated token account of {owner} for {mint}",
        )


def check_distinct_mints(token_a_mint: AccountInfo, token_b_mint: AccountInfo) -> None:
    if token_a_mint.key == token_b_mint.key:
        raise PoolError(PoolErrorCode.IDENTICAL_MINTS)


def check_pool_address(pool: AccountInfo, token_a_mint: Pubkey, token_b_mint: Pubkey, config: EngineConfig) -> int:
    """Returns the canonical bump."""
    expected, bump = pool_address(token_a_mint, token_b_mint, config.program_id)
    if pool.key != expected:
        raise ProgramError(
            ProgramErrorCode.INVALID_ACCOUNT_DATA,
            f"{pool.key} is not the pool address for this mint pair",
        )
    return bump


def check_lp_mint_address(lp_mint: AccountInfo, pool: Pubkey, config: EngineConfig) -> int:
    """Returns the canonical bump."""
    expected, bump = lp_mint_address(pool, config.program_id)
    if lp_mint.key != expected:
        raise ProgramError(
            ProgramErrorCode.INVALID_ACCOUNT_DATA,
            f"{lp_mint.key} is not the LP mint of pool {pool}",
        )
    return bump


def load_pool_record(pool: AccountInfo, config: EngineConfig) -> PoolRecord:
    check_program_owned(pool, config.program_id)
    if pool.data_len != POOL_LEN:
        raise ProgramError(
            ProgramErrorCode.UNINITIALIZED_ACCOUNT,
            f"{pool.key} does not hold a pool record",
        )
    return PoolRecord.decode(pool.data)


def check_pool_record_matches(record: PoolRecord, token_a_mint: Pubkey, token_b_mint: Pubkey) -> None:
    if record.token_a_mint != token_a_mint or record.token_b_mint != token_b_mint:
        raise PoolError(PoolErrorCode.INVALID_TOKEN_MINT, "mints do not match the pool record")


def check_vault(vault: AccountInfo, pool: Pubkey, mint: Pubkey) -> TokenAccountState:
    """Decode a vault and require it to be held by the pool for `mint`."""
    state = TokenAccountState.decode(vault.data)
    if state.owner != pool:
        raise ProgramError(ProgramErrorCode.INVALID_ACCOUNT_DATA, f"vault {vault.key} is not owned by the pool")
    if state.mint != mint:
        raise ProgramError(ProgramErrorCode.INVALID_ACCOUNT_DATA, f"vault {vault.key} does not hold {mint}")
    return state


def check_lp_mint_authority(lp_mint: AccountInfo, pool: Pubkey) -> MintState:
    state = MintState.decode(lp_mint.data)
    if state.mint_authority != pool:
        raise ProgramError(
            ProgramErrorCode.INVALID_ACCOUNT_DATA,
            f"LP mint {lp_mint.key} is not controlled by the pool",
        )
    return state


def check_key(account: AccountInfo, expected: Pubkey, *, name: str) -> None:
    if account.key != expected:
        raise ProgramError(ProgramErrorCode.INVALID_ACCOUNT_DATA, f"{name} {account.key} does not match {expected}")


def check_program_id(account: AccountInfo, expected: Pubkey) -> None:
    if account.key != expected:
        raise ProgramError(ProgramErrorCode.INCORRECT_PROGRAM_ID, f"expected program {expected}, got {account.key}")
