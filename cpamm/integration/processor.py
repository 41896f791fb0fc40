"""
Per-operation processors (the imperative shell around `core.engine`).

Each processor binds the positional accounts, validates them in a fixed order,
reads the reserves fresh from the vaults and the LP mint, calls the pure engine
and finally executes the returned directives through the ledger. The first
failing check raises; nothing is caught here.
"""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Sequence

from solders.pubkey import Pubkey

from ..core import engine
from ..core.errors import PoolError, PoolErrorCode, ProgramError, ProgramErrorCode
from ..core.types import (
    AddLiquidityArgs,
    Burn,
    Directive,
    InitializeArgs,
    MintTo,
    Operation,
    PoolKeys,
    PoolReserves,
    RemoveLiquidityArgs,
    SwapArgs,
    Transfer,
    Transition,
    UserKeys,
)
from ..state.accounts import AccountInfo
from ..state.addresses import lp_mint_signer_seeds, pool_signer_seeds
from ..state.layouts import MINT_LEN, POOL_LEN
from ..state.pool import PoolRecord
from .config import EngineConfig
from .instructions import ACCOUNT_NAMES, required_accounts
from .ledger import Ledger
from .validators import (
    check_associated_token_account,
    check_distinct_mints,
    check_key,
    check_lp_mint_address,
    check_lp_mint_authority,
    check_mint,
    check_pool_address,
    check_pool_record_matches,
    check_program_id,
    check_program_owned,
    check_signer,
    check_vault,
    load_pool_record,
)

logger = logging.getLogger(__name__)

Accounts = Dict[str, AccountInfo]


def bind_accounts(operation: Operation, accounts: Sequence[AccountInfo]) -> Accounts:
    """Name the positional accounts; extras past the reserved slot are ignored."""
    need = required_accounts(operation)
    if len(accounts) < need:
        raise ProgramError(
            ProgramErrorCode.NOT_ENOUGH_ACCOUNT_KEYS,
            f"{operation.name} needs {need} accounts, got {len(accounts)}",
        )
    return dict(zip(ACCOUNT_NAMES[operation], accounts))


def execute_directives(ledger: Ledger, directives: Sequence[Directive], accounts: Mapping[str, AccountInfo]) -> None:
    by_key: Dict[Pubkey, AccountInfo] = {}
    for info in accounts.values():
        by_key.setdefault(info.key, info)

    def lookup(key: Pubkey) -> AccountInfo:
        try:
            return by_key[key]
        except KeyError:
            raise ProgramError(ProgramErrorCode.NOT_ENOUGH_ACCOUNT_KEYS, f"account {key} was not supplied") from None

    for d in directives:
        logger.debug("executing %s", d)
        if isinstance(d, Transfer):
            ledger.transfer(lookup(d.source), lookup(d.destination), lookup(d.authority), d.amount, d.signer_seeds)
        elif isinstance(d, MintTo):
            ledger.mint_to(lookup(d.mint), lookup(d.destination), lookup(d.authority), d.amount, d.signer_seeds)
        elif isinstance(d, Burn):
            ledger.burn(lookup(d.mint), lookup(d.source), lookup(d.authority), d.amount, d.signer_seeds)
        else:
            raise TypeError(f"unsupported directive: {d!r}")


def _check_token_program(info: AccountInfo, config: EngineConfig) -> None:
    check_program_id(info, config.token_program_id)


def _read_pool(a: Accounts, config: EngineConfig) -> PoolRecord:
    """Load the record and authenticate the pool, its mints and its vaults."""
    record = load_pool_record(a["pool"], config)
    check_pool_record_matches(record, a["token_a_mint"].key, a["token_b_mint"].key)
    check_pool_address(a["pool"], record.token_a_mint, record.token_b_mint, config)
    check_key(a["token_a_vault"], record.token_a_vault, name="token_a_vault")
    check_key(a["token_b_vault"], record.token_b_vault, name="token_b_vault")
    check_associated_token_account(a["token_a_vault"], a["pool"].key, record.token_a_mint, config)
    check_associated_token_account(a["token_b_vault"], a["pool"].key, record.token_b_mint, config)
    return record


def _read_reserves(a: Accounts, record: PoolRecord, config: EngineConfig, *, with_lp: bool) -> PoolReserves:
    pool = a["pool"].key
    vault_a = check_vault(a["token_a_vault"], pool, record.token_a_mint)
    vault_b = check_vault(a["token_b_vault"], pool, record.token_b_mint)
    lp_supply = 0
    if with_lp:
        lp_mint = a["lp_mint"]
        check_lp_mint_address(lp_mint, pool, config)
        check_key(lp_mint, record.lp_mint, name="lp_mint")
        check_program_owned(lp_mint, config.token_program_id)
        check_mint(lp_mint)
        lp_supply = check_lp_mint_authority(lp_mint, pool).supply
    return PoolReserves(reserve_a=vault_a.amount, reserve_b=vault_b.amount, lp_supply=lp_supply)


def _pool_keys(a: Accounts, record: PoolRecord) -> PoolKeys:
    return PoolKeys(
        pool=a["pool"].key,
        lp_mint=record.lp_mint,
        token_a_vault=record.token_a_vault,
        token_b_vault=record.token_b_vault,
        signer_seeds=record.signer_seeds(),
    )


def _user_keys(a: Accounts, *, with_lp: bool) -> UserKeys:
    return UserKeys(
        user=a["user"].key,
        token_a=a["user_token_a"].key,
        token_b=a["user_token_b"].key,
        lp_token=a["user_lp_token"].key if with_lp else None,
    )


def process_initialize(
    config: EngineConfig,
    ledger: Ledger,
    accounts: Sequence[AccountInfo],
    args: InitializeArgs,
) -> Transition:
    a = bind_accounts(Operation.INITIALIZE, accounts)
    authority, pool, lp_mint = a["authority"], a["pool"], a["lp_mint"]
    mint_a, mint_b = a["token_a_mint"], a["token_b_mint"]

    check_signer(authority)
    check_mint(mint_a)
    check_mint(mint_b)
    check_distinct_mints(mint_a, mint_b)
    for name in ("token_a_program", "token_b_program", "token_program"):
        _check_token_program(a[name], config)
    check_program_id(a["system_program"], config.system_program_id)
    check_program_id(a["associated_token_program"], config.associated_token_program_id)

    bump = check_pool_address(pool, mint_a.key, mint_b.key, config)
    lp_mint_bump = check_lp_mint_address(lp_mint, pool.key, config)
    if pool.is_owned_by(config.program_id) and pool.data_len == POOL_LEN:
        raise PoolError(PoolErrorCode.POOL_ALREADY_INITIALIZED, f"pool {pool.key} already exists")

    transition = engine.initialize_pool(
        args,
        authority=authority.key,
        token_a_mint=mint_a.key,
        token_b_mint=mint_b.key,
        token_a_vault=a["token_a_vault"].key,
        token_b_vault=a["token_b_vault"].key,
        lp_mint=lp_mint.key,
        bump=bump,
        lp_mint_bump=lp_mint_bump,
    )

    ledger.create_account(authority, pool, config.program_id, POOL_LEN, pool_signer_seeds(mint_a.key, mint_b.key, bump))
    ledger.create_account(
        authority,
        lp_mint,
        config.token_program_id,
        MINT_LEN,
        lp_mint_signer_seeds(pool.key, lp_mint_bump),
    )
    ledger.initialize_mint(lp_mint, config.lp_mint_decimals, pool.key)
    ledger.create_associated_token_account(authority, a["token_a_vault"], pool.key, mint_a)
    ledger.create_associated_token_account(authority, a["token_b_vault"], pool.key, mint_b)

    if transition.record is None:
        raise ProgramError(ProgramErrorCode.INVALID_ACCOUNT_DATA, "initialize produced no pool record")
    pool.write_data(transition.record.encode())
    logger.info("initialized pool %s fee_rate=%d", pool.key, args.fee_rate)
    return transition


def _init_if_needed(ledger: Ledger, a: Accounts, name: str, mint: AccountInfo) -> None:
    account = a[name]
    if account.account.is_vacant():
        ledger.create_associated_token_account(a["user"], account, a["user"].key, mint)


def process_add_liquidity(
    config: EngineConfig,
    ledger: Ledger,
    accounts: Sequence[AccountInfo],
    args: AddLiquidityArgs,
) -> Transition:
    a = bind_accounts(Operation.ADD_LIQUIDITY, accounts)
    user = a["user"]

    check_signer(user)
    _check_token_program(a["token_program"], config)
    check_program_id(a["associated_token_program"], config.associated_token_program_id)
    check_program_id(a["system_program"], config.system_program_id)
    check_mint(a["token_a_mint"])
    check_mint(a["token_b_mint"])
    record = _read_pool(a, config)
    reserves = _read_reserves(a, record, config, with_lp=True)

    _init_if_needed(ledger, a, "user_token_a", a["token_a_mint"])
    _init_if_needed(ledger, a, "user_token_b", a["token_b_mint"])
    _init_if_needed(ledger, a, "user_lp_token", a["lp_mint"])
    check_associated_token_account(a["user_token_a"], user.key, record.token_a_mint, config)
    check_associated_token_account(a["user_token_b"], user.key, record.token_b_mint, config)
    check_associated_token_account(a["user_lp_token"], user.key, record.lp_mint, config)

    transition = engine.add_liquidity(
        args,
        reserves,
        _pool_keys(a, record),
        _user_keys(a, with_lp=True),
    )
    execute_directives(ledger, transition.directives, a)
    logger.debug("added liquidity to %s: minted %d LP", a["pool"].key, transition.lp_minted)
    return transition


def process_remove_liquidity(
    config: EngineConfig,
    ledger: Ledger,
    accounts: Sequence[AccountInfo],
    args: RemoveLiquidityArgs,
) -> Transition:
    a = bind_accounts(Operation.REMOVE_LIQUIDITY, accounts)
    user = a["user"]

    check_signer(user)
    _check_token_program(a["token_program"], config)
    check_mint(a["token_a_mint"])
    check_mint(a["token_b_mint"])
    record = _read_pool(a, config)
    reserves = _read_reserves(a, record, config, with_lp=True)
    check_associated_token_account(a["user_token_a"], user.key, record.token_a_mint, config)
    check_associated_token_account(a["user_token_b"], user.key, record.token_b_mint, config)
    check_associated_token_account(a["user_lp_token"], user.key, record.lp_mint, config)

    transition = engine.remove_liquidity(
        args,
        reserves,
        _pool_keys(a, record),
        _user_keys(a, with_lp=True),
    )
    execute_directives(ledger, transition.directives, a)
    logger.debug(
        "removed liquidity from %s: burned %d LP for %d / %d",
        a["pool"].key,
        transition.lp_burned,
        transition.amount_a_out,
        transition.amount_b_out,
    )
    return transition


def process_swap(
    config: EngineConfig,
    ledger: Ledger,
    accounts: Sequence[AccountInfo],
    args: SwapArgs,
) -> Transition:
    a = bind_accounts(Operation.SWAP, accounts)
    user = a["user"]

    check_signer(user)
    _check_token_program(a["token_program"], config)
    check_mint(a["token_a_mint"])
    check_mint(a["token_b_mint"])
    record = _read_pool(a, config)
    reserves = _read_reserves(a, record, config, with_lp=False)
    check_associated_token_account(a["user_token_a"], user.key, record.token_a_mint, config)
    check_associated_token_account(a["user_token_b"], user.key, record.token_b_mint, config)

    transition = engine.swap(
        args,
        record,
        reserves,
        _pool_keys(a, record),
        _user_keys(a, with_lp=False),
    )
    execute_directives(ledger, transition.directives, a)
    logger.debug(
        "swap on %s (%s): %d in, %d out",
        a["pool"].key,
        "a->b" if args.a_to_b else "b->a",
        args.amount_in,
        transition.amount_out,
    )
    return transition
