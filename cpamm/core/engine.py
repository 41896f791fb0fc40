"""Pool invariant engine.

One pure function per operation. Each takes the decoded arguments plus a fresh
read of the pool's reserves and returns a `Transition`: the ledger directives to
execute, in order, or raises on the first failed check. Nothing here touches
accounts; the processor binds accounts, calls in, and executes the directives.

Check order is part of the contract (the first failing check decides the
reported error), so each function documents it.
"""

from __future__ import annotations

from solders.pubkey import Pubkey

from ..state.pool import PoolRecord
from .cpmm import compute_lp_burn, compute_lp_mint, swap_exact_in, validate_fee_rate
from .errors import PoolError, PoolErrorCode, ProgramError, ProgramErrorCode
from .types import (
    AddLiquidityArgs,
    Burn,
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


def initialize_pool(
    args: InitializeArgs,
    *,
    authority: Pubkey,
    token_a_mint: Pubkey,
    token_b_mint: Pubkey,
    token_a_vault: Pubkey,
    token_b_vault: Pubkey,
    lp_mint: Pubkey,
    bump: int,
    lp_mint_bump: int,
) -> Transition:
    """
    Build the pool record written by Initialize.

    Checks: fee_rate in [0, 10000] (InvalidFeeRate), then distinct mints
    (IdenticalMints). No reserves exist yet, so no directives are produced.
    """
    validate_fee_rate(args.fee_rate)
    if token_a_mint == token_b_mint:
        raise PoolError(PoolErrorCode.IDENTICAL_MINTS)
    record = PoolRecord(
        authority=authority,
        token_a_mint=token_a_mint,
        token_b_mint=token_b_mint,
        token_a_vault=token_a_vault,
        token_b_vault=token_b_vault,
        lp_mint=lp_mint,
        fee_rate=args.fee_rate,
        bump=bump,
        lp_mint_bump=lp_mint_bump,
    )
    return Transition(operation=Operation.INITIALIZE, record=record)


def add_liquidity(
    args: AddLiquidityArgs,
    reserves: PoolReserves,
    pool: PoolKeys,
    user: UserKeys,
) -> Transition:
    """
    Deposit both assets and mint LP tokens.

    Checks, in order: amounts > 0; LP amount (bootstrap or proportional, see
    `compute_lp_mint`); LP amount >= min_lp_amount (SlippageExceeded).

    Directives: a -> vault_a, b -> vault_b (user-signed), then mint LP to the
    user (pool-signed).
    """
    if user.lp_token is None:
        raise ProgramError(ProgramErrorCode.NOT_ENOUGH_ACCOUNT_KEYS, "user LP token account required")

    minted = compute_lp_mint(
        args.amount_a,
        args.amount_b,
        reserves.reserve_a,
        reserves.reserve_b,
        reserves.lp_supply,
    )
    if minted < args.min_lp_amount:
        raise PoolError(
            PoolErrorCode.SLIPPAGE_EXCEEDED,
            f"would mint {minted} LP, minimum is {args.min_lp_amount}",
        )

    directives = (
        Transfer(source=user.token_a, destination=pool.token_a_vault, authority=user.user, amount=args.amount_a),
        Transfer(source=user.token_b, destination=pool.token_b_vault, authority=user.user, amount=args.amount_b),
        MintTo(
            mint=pool.lp_mint,
            destination=user.lp_token,
            authority=pool.pool,
            amount=minted,
            signer_seeds=pool.signer_seeds,
        ),
    )
    return Transition(operation=Operation.ADD_LIQUIDITY, directives=directives, lp_minted=minted)


def remove_liquidity(
    args: RemoveLiquidityArgs,
    reserves: PoolReserves,
    pool: PoolKeys,
    user: UserKeys,
) -> Transition:
    """
    Burn LP tokens and pay out the proportional share of both reserves.

    Checks, in order: LP supply > 0 (InsufficientFunds); lp_tokens < supply
    (InvalidArgument); amounts computed; each amount >= its floor
    (SlippageExceeded); not both amounts zero (InvalidArgument).

    Directives: burn LP (user-signed), then vault_a -> user, vault_b -> user
    (pool-signed).
    """
    if user.lp_token is None:
        raise ProgramError(ProgramErrorCode.NOT_ENOUGH_ACCOUNT_KEYS, "user LP token account required")

    amount_a, amount_b = compute_lp_burn(
        args.lp_tokens,
        reserves.reserve_a,
        reserves.reserve_b,
        reserves.lp_supply,
    )
    if amount_a < args.min_amount_a:
        raise PoolError(
            PoolErrorCode.SLIPPAGE_EXCEEDED,
            f"amount_a {amount_a} below minimum {args.min_amount_a}",
        )
    if amount_b < args.min_amount_b:
        raise PoolError(
            PoolErrorCode.SLIPPAGE_EXCEEDED,
            f"amount_b {amount_b} below minimum {args.min_amount_b}",
        )
    if amount_a == 0 and amount_b == 0:
        raise ProgramError(ProgramErrorCode.INVALID_ARGUMENT, "redemption would pay out nothing")

    directives = (
        Burn(mint=pool.lp_mint, source=user.lp_token, authority=user.user, amount=args.lp_tokens),
        Transfer(
            source=pool.token_a_vault,
            destination=user.token_a,
            authority=pool.pool,
            amount=amount_a,
            signer_seeds=pool.signer_seeds,
        ),
        Transfer(
            source=pool.token_b_vault,
            destination=user.token_b,
            authority=pool.pool,
            amount=amount_b,
            signer_seeds=pool.signer_seeds,
        ),
    )
    return Transition(
        operation=Operation.REMOVE_LIQUIDITY,
        directives=directives,
        lp_burned=args.lp_tokens,
        amount_a_out=amount_a,
        amount_b_out=amount_b,
    )


def swap(
    args: SwapArgs,
    record: PoolRecord,
    reserves: PoolReserves,
    pool: PoolKeys,
    user: UserKeys,
) -> Transition:
    """
    Exact-in swap against the constant-product curve.

    Checks, in order: amount_in > 0; quote (see `swap_exact_in`);
    amount_out >= min_amount_out (SlippageExceeded).

    Directives: user_in -> vault_in (user-signed), then vault_out -> user_out
    (pool-signed). The pool record is read for `fee_rate` only.
    """
    if args.a_to_b:
        reserve_in, reserve_out = reserves.reserve_a, reserves.reserve_b
        user_in, vault_in = user.token_a, pool.token_a_vault
        vault_out, user_out = pool.token_b_vault, user.token_b
    else:
        reserve_in, reserve_out = reserves.reserve_b, reserves.reserve_a
        user_in, vault_in = user.token_b, pool.token_b_vault
        vault_out, user_out = pool.token_a_vault, user.token_a

    quote = swap_exact_in(reserve_in, reserve_out, args.amount_in, record.fee_rate)
    if quote.amount_out < args.min_amount_out:
        raise PoolError(
            PoolErrorCode.SLIPPAGE_EXCEEDED,
            f"amount_out {quote.amount_out} below minimum {args.min_amount_out}",
        )

    directives = (
        Transfer(source=user_in, destination=vault_in, authority=user.user, amount=args.amount_in),
        Transfer(
            source=vault_out,
            destination=user_out,
            authority=pool.pool,
            amount=quote.amount_out,
            signer_seeds=pool.signer_seeds,
        ),
    )
    return Transition(operation=Operation.SWAP, directives=directives, amount_out=quote.amount_out)
