# [TESTER] v1

from __future__ import annotations

from dataclasses import replace

import pytest
from solders.pubkey import Pubkey

from cpamm.core import engine
from cpamm.core.errors import PoolErrorCode, ProgramError, ProgramErrorCode
from cpamm.core.types import Operation, Transition
from cpamm.integration.config import EngineConfig
from cpamm.integration.dispatcher import process_instruction, process_or_raise
from cpamm.integration.instructions import (
    PoolAddresses,
    add_liquidity_accounts,
    encode_add_liquidity,
    encode_initialize,
    encode_remove_liquidity,
    encode_swap,
    initialize_accounts,
    remove_liquidity_accounts,
    swap_accounts,
)
from cpamm.integration.ledger import InMemoryLedger
from cpamm.state.accounts import Account, AccountMeta
from cpamm.state.addresses import TOKEN_PROGRAM_ID, associated_token_address
from cpamm.state.pool import PoolRecord
from cpamm.state.token import MintState

CONFIG = EngineConfig()
AUTHORITY = Pubkey.from_bytes(bytes([0xA1]) * 32)
USER = Pubkey.from_bytes(bytes([0xB2]) * 32)
MINT_A = Pubkey.from_bytes(bytes([0x11]) * 32)
MINT_B = Pubkey.from_bytes(bytes([0x22]) * 32)
POOL = PoolAddresses.derive(MINT_A, MINT_B, CONFIG)

USER_A = associated_token_address(USER, MINT_A)
USER_B = associated_token_address(USER, MINT_B)
USER_LP = associated_token_address(USER, POOL.lp_mint)


def _ledger_with_mints() -> InMemoryLedger:
    ledger = InMemoryLedger(CONFIG)
    ledger.add_mint(MINT_A, mint_authority=AUTHORITY)
    ledger.add_mint(MINT_B, mint_authority=AUTHORITY)
    return ledger


def _initialized(fee_rate: int = 30, *, funds: int = 10_000_000) -> InMemoryLedger:
    ledger = _ledger_with_mints()
    result = ledger.execute(encode_initialize(fee_rate), initialize_accounts(AUTHORITY, MINT_A, MINT_B, CONFIG))
    assert result.ok, result.error
    ledger.add_associated_token_account(USER, MINT_A, funds)
    ledger.add_associated_token_account(USER, MINT_B, funds)
    return ledger


def _funded(fee_rate: int = 30, amount: int = 1_000_000) -> InMemoryLedger:
    ledger = _initialized(fee_rate)
    result = ledger.execute(encode_add_liquidity(amount, amount, 0), add_liquidity_accounts(USER, MINT_A, MINT_B, CONFIG))
    assert result.ok, result.error
    return ledger


def _reserves(ledger: InMemoryLedger) -> tuple[int, int, int]:
    return (
        ledger.token_balance(POOL.token_a_vault),
        ledger.token_balance(POOL.token_b_vault),
        ledger.mint_supply(POOL.lp_mint),
    )


# ---------------------------------------------------------------------------
# Initialize
# ---------------------------------------------------------------------------


def test_initialize_creates_pool_mint_and_vaults() -> None:
    ledger = _initialized(fee_rate=25)

    pool_account = ledger.get(POOL.pool)
    assert pool_account is not None
    assert pool_account.owner == CONFIG.program_id
    record = PoolRecord.decode(bytes(pool_account.data))
    assert record.fee_rate == 25
    assert (record.token_a_mint, record.token_b_mint) == (MINT_A, MINT_B)
    assert (record.token_a_vault, record.token_b_vault) == (POOL.token_a_vault, POOL.token_b_vault)
    assert (record.bump, record.lp_mint_bump) == (POOL.bump, POOL.lp_mint_bump)
    assert record.authority == AUTHORITY
    assert record.verify_addresses(POOL.pool, CONFIG.program_id)

    lp_mint = MintState.decode(bytes(ledger.get(POOL.lp_mint).data))
    assert lp_mint.mint_authority == POOL.pool
    assert lp_mint.decimals == CONFIG.lp_mint_decimals
    assert lp_mint.supply == 0
    assert _reserves(ledger) == (0, 0, 0)


@pytest.mark.parametrize("fee_rate", [0, 10_000])
def test_initialize_accepts_fee_bounds(fee_rate: int) -> None:
    ledger = _ledger_with_mints()
    result = ledger.execute(encode_initialize(fee_rate), initialize_accounts(AUTHORITY, MINT_A, MINT_B, CONFIG))
    assert result.ok
    assert result.operation == Operation.INITIALIZE


def test_initialize_rejects_fee_above_denominator_without_side_effects() -> None:
    ledger = _ledger_with_mints()
    result = ledger.execute(encode_initialize(10_001), initialize_accounts(AUTHORITY, MINT_A, MINT_B, CONFIG))
    assert not result.ok
    assert result.code == PoolErrorCode.INVALID_FEE_RATE
    assert ledger.get(POOL.pool) is None


def test_initialize_rejects_identical_mints() -> None:
    ledger = _ledger_with_mints()
    metas = initialize_accounts(AUTHORITY, MINT_A, MINT_B, CONFIG)
    metas[3] = AccountMeta(MINT_A)
    result = ledger.execute(encode_initialize(30), metas)
    assert result.error is not None
    assert result.error.error == PoolErrorCode.IDENTICAL_MINTS
    assert result.code == 9


def test_initialize_requires_authority_signature() -> None:
    ledger = _ledger_with_mints()
    metas = initialize_accounts(AUTHORITY, MINT_A, MINT_B, CONFIG)
    metas[0] = replace(metas[0], is_signer=False)
    result = ledger.execute(encode_initialize(30), metas)
    assert result.code == PoolErrorCode.UNAUTHORIZED


def test_initialize_twice_is_rejected() -> None:
    ledger = _initialized()
    result = ledger.execute(encode_initialize(30), initialize_accounts(AUTHORITY, MINT_A, MINT_B, CONFIG))
    assert result.code == PoolErrorCode.POOL_ALREADY_INITIALIZED


def test_initialize_without_record_is_rejected_and_rolled_back(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(engine, "initialize_pool", lambda *args, **kwargs: Transition(operation=Operation.INITIALIZE))
    ledger = _ledger_with_mints()
    result = ledger.execute(encode_initialize(30), initialize_accounts(AUTHORITY, MINT_A, MINT_B, CONFIG))
    assert result.code == ProgramErrorCode.INVALID_ACCOUNT_DATA << 32
    assert ledger.get(POOL.pool) is None
    assert ledger.get(POOL.lp_mint) is None


# ---------------------------------------------------------------------------
# Liquidity
# ---------------------------------------------------------------------------


def test_bootstrap_deposit_mints_geometric_mean() -> None:
    ledger = _initialized()
    result = ledger.execute(
        encode_add_liquidity(1_000_000, 1_000_000, 1_000_000),
        add_liquidity_accounts(USER, MINT_A, MINT_B, CONFIG),
    )
    assert result.ok, result.error
    assert result.transition.lp_minted == 1_000_000
    assert _reserves(ledger) == (1_000_000, 1_000_000, 1_000_000)
    assert ledger.token_balance(USER_LP) == 1_000_000
    assert ledger.token_balance(USER_A) == 9_000_000


def test_bootstrap_deposit_below_minimum_liquidity() -> None:
    ledger = _initialized()
    result = ledger.execute(encode_add_liquidity(1, 1, 0), add_liquidity_accounts(USER, MINT_A, MINT_B, CONFIG))
    assert result.code == PoolErrorCode.INSUFFICIENT_LIQUIDITY
    # The LP account created on the way in is rolled back too.
    assert ledger.token_balance(USER_LP) == 0
    assert ledger.get(USER_LP) is None


def test_add_liquidity_rejects_zero_amount() -> None:
    ledger = _initialized()
    result = ledger.execute(encode_add_liquidity(0, 1000, 0), add_liquidity_accounts(USER, MINT_A, MINT_B, CONFIG))
    assert result.code == PoolErrorCode.INVALID_AMOUNT


def test_proportional_deposit() -> None:
    ledger = _funded()
    result = ledger.execute(
        encode_add_liquidity(100_000, 100_000, 0),
        add_liquidity_accounts(USER, MINT_A, MINT_B, CONFIG),
    )
    assert result.ok, result.error
    assert result.transition.lp_minted == 100_000
    assert _reserves(ledger) == (1_100_000, 1_100_000, 1_100_000)


def test_add_liquidity_slippage_leaves_balances_untouched() -> None:
    ledger = _funded()
    before = _reserves(ledger)
    result = ledger.execute(
        encode_add_liquidity(100_000, 100_000, 100_001),
        add_liquidity_accounts(USER, MINT_A, MINT_B, CONFIG),
    )
    assert result.code == PoolErrorCode.SLIPPAGE_EXCEEDED
    assert _reserves(ledger) == before


def test_partial_failure_is_rolled_back() -> None:
    ledger = _funded()
    before_a = ledger.token_balance(USER_A)
    # The A leg succeeds, the B leg runs out of funds.
    result = ledger.execute(
        encode_add_liquidity(100_000, 50_000_000, 0),
        add_liquidity_accounts(USER, MINT_A, MINT_B, CONFIG),
    )
    assert not result.ok
    assert result.code == ProgramErrorCode.INSUFFICIENT_FUNDS << 32
    assert ledger.token_balance(USER_A) == before_a


def test_remove_liquidity_pays_out_pro_rata() -> None:
    ledger = _funded()
    result = ledger.execute(encode_remove_liquidity(250_000, 0, 0), remove_liquidity_accounts(USER, MINT_A, MINT_B, CONFIG))
    assert result.ok, result.error
    assert (result.transition.amount_a_out, result.transition.amount_b_out) == (250_000, 250_000)
    assert _reserves(ledger) == (750_000, 750_000, 750_000)
    assert ledger.token_balance(USER_LP) == 750_000


def test_remove_liquidity_rejects_whole_supply() -> None:
    ledger = _funded()
    result = ledger.execute(
        encode_remove_liquidity(1_000_000, 0, 0),
        remove_liquidity_accounts(USER, MINT_A, MINT_B, CONFIG),
    )
    assert result.code == ProgramErrorCode.INVALID_ARGUMENT << 32


def test_remove_liquidity_slippage() -> None:
    ledger = _funded()
    result = ledger.execute(
        encode_remove_liquidity(250_000, 250_001, 0),
        remove_liquidity_accounts(USER, MINT_A, MINT_B, CONFIG),
    )
    assert result.code == PoolErrorCode.SLIPPAGE_EXCEEDED
    assert ledger.token_balance(USER_LP) == 1_000_000


def test_remove_then_add_round_trip() -> None:
    ledger = _funded()
    removed = ledger.execute(encode_remove_liquidity(10_000, 0, 0), remove_liquidity_accounts(USER, MINT_A, MINT_B, CONFIG))
    assert removed.ok
    t = removed.transition
    added = ledger.execute(
        encode_add_liquidity(t.amount_a_out, t.amount_b_out, 0),
        add_liquidity_accounts(USER, MINT_A, MINT_B, CONFIG),
    )
    assert added.ok
    assert 10_000 - 1 <= added.transition.lp_minted <= 10_000


# ---------------------------------------------------------------------------
# Swap
# ---------------------------------------------------------------------------


def test_swap_a_to_b_moves_both_legs() -> None:
    ledger = _funded(fee_rate=30)
    result = ledger.execute(encode_swap(10_000, 0, a_to_b=True), swap_accounts(USER, MINT_A, MINT_B, CONFIG))
    assert result.ok, result.error
    out = result.transition.amount_out
    assert out == 9970 * 1_000_000 // (1_000_000 + 9970)
    reserve_a, reserve_b, _ = _reserves(ledger)
    assert (reserve_a, reserve_b) == (1_010_000, 1_000_000 - out)
    assert reserve_a * reserve_b > 1_000_000 * 1_000_000
    assert ledger.token_balance(USER_B) == 9_000_000 + out


def test_swap_b_to_a() -> None:
    ledger = _funded(fee_rate=0)
    result = ledger.execute(encode_swap(10_000, 0, a_to_b=False), swap_accounts(USER, MINT_A, MINT_B, CONFIG))
    assert result.ok, result.error
    reserve_a, reserve_b, _ = _reserves(ledger)
    assert reserve_b == 1_010_000
    assert reserve_a == 1_000_000 - result.transition.amount_out
    assert reserve_a * reserve_b >= 1_000_000 * 1_000_000


def test_swap_slippage() -> None:
    ledger = _funded()
    result = ledger.execute(encode_swap(10_000, 10_000), swap_accounts(USER, MINT_A, MINT_B, CONFIG))
    assert result.code == PoolErrorCode.SLIPPAGE_EXCEEDED
    assert _reserves(ledger) == (1_000_000, 1_000_000, 1_000_000)


def test_dust_swap_commits_with_zero_output() -> None:
    ledger = _funded(fee_rate=30)
    result = ledger.execute(encode_swap(1, 0), swap_accounts(USER, MINT_A, MINT_B, CONFIG))
    assert result.ok, result.error
    assert result.transition.amount_out == 0
    assert _reserves(ledger) == (1_000_001, 1_000_000, 1_000_000)
    assert ledger.token_balance(USER_A) == 9_000_000 - 1


def test_dust_swap_with_minimum_is_slippage() -> None:
    ledger = _funded(fee_rate=30)
    result = ledger.execute(encode_swap(1, 1), swap_accounts(USER, MINT_A, MINT_B, CONFIG))
    assert result.code == PoolErrorCode.SLIPPAGE_EXCEEDED
    assert _reserves(ledger) == (1_000_000, 1_000_000, 1_000_000)


def test_swap_on_empty_pool() -> None:
    ledger = _initialized()
    result = ledger.execute(encode_swap(10_000, 0), swap_accounts(USER, MINT_A, MINT_B, CONFIG))
    assert result.code == PoolErrorCode.INSUFFICIENT_LIQUIDITY


def test_swap_with_mints_out_of_order() -> None:
    ledger = _funded()
    metas = swap_accounts(USER, MINT_A, MINT_B, CONFIG)
    metas[6], metas[7] = metas[7], metas[6]
    result = ledger.execute(encode_swap(10_000, 0), metas)
    assert result.code == PoolErrorCode.INVALID_TOKEN_MINT


def test_swap_with_read_only_vault() -> None:
    ledger = _funded()
    metas = swap_accounts(USER, MINT_A, MINT_B, CONFIG)
    metas[2] = replace(metas[2], is_writable=False)
    result = ledger.execute(encode_swap(10_000, 0), metas)
    assert result.code == ProgramErrorCode.IMMUTABLE << 32
    assert ledger.token_balance(USER_A) == 9_000_000


@pytest.mark.parametrize("operation", ["add", "remove", "swap"])
def test_pool_operations_require_mint_accounts(operation: str) -> None:
    ledger = _funded()
    ledger.add_account(MINT_B, Account(owner=TOKEN_PROGRAM_ID, data=bytearray(10)))
    if operation == "add":
        data, metas = encode_add_liquidity(1000, 1000, 0), add_liquidity_accounts(USER, MINT_A, MINT_B, CONFIG)
    elif operation == "remove":
        data, metas = encode_remove_liquidity(100, 0, 0), remove_liquidity_accounts(USER, MINT_A, MINT_B, CONFIG)
    else:
        data, metas = encode_swap(10_000, 0), swap_accounts(USER, MINT_A, MINT_B, CONFIG)
    result = ledger.execute(data, metas)
    assert result.code == ProgramErrorCode.INVALID_ACCOUNT_DATA << 32
    assert "not a mint" in str(result.error)
    assert _reserves(ledger) == (1_000_000, 1_000_000, 1_000_000)


def test_swap_with_foreign_vault() -> None:
    ledger = _funded()
    metas = swap_accounts(USER, MINT_A, MINT_B, CONFIG)
    metas[2] = AccountMeta(USER_A, is_writable=True)
    result = ledger.execute(encode_swap(10_000, 0), metas)
    assert result.code == ProgramErrorCode.INVALID_ACCOUNT_DATA << 32


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def test_short_payload_rejected_before_accounts() -> None:
    ledger = _funded()
    result = ledger.execute(b"\x03" + bytes(16), [])
    assert result.code == ProgramErrorCode.INVALID_INSTRUCTION_DATA << 32
    assert result.operation == Operation.SWAP


def test_unknown_discriminator() -> None:
    result = process_instruction(CONFIG, InMemoryLedger(CONFIG), [], b"\x09")
    assert not result.ok
    assert result.operation is None
    assert result.code == ProgramErrorCode.INVALID_INSTRUCTION_DATA << 32


def test_not_enough_accounts() -> None:
    ledger = _funded()
    metas = swap_accounts(USER, MINT_A, MINT_B, CONFIG)[:-1]
    result = ledger.execute(encode_swap(10_000, 0), metas)
    assert result.code == ProgramErrorCode.NOT_ENOUGH_ACCOUNT_KEYS << 32


def test_extra_accounts_are_ignored() -> None:
    ledger = _funded()
    metas = swap_accounts(USER, MINT_A, MINT_B, CONFIG) + [AccountMeta(AUTHORITY), AccountMeta(MINT_A)]
    assert ledger.execute(encode_swap(10_000, 0), metas).ok


def test_user_must_sign() -> None:
    ledger = _funded()
    metas = swap_accounts(USER, MINT_A, MINT_B, CONFIG)
    metas[0] = replace(metas[0], is_signer=False)
    result = ledger.execute(encode_swap(10_000, 0), metas)
    assert result.code == PoolErrorCode.UNAUTHORIZED


def test_process_or_raise_propagates() -> None:
    with pytest.raises(ProgramError) as exc:
        process_or_raise(CONFIG, InMemoryLedger(CONFIG), [], b"")
    assert exc.value.error == ProgramErrorCode.INVALID_INSTRUCTION_DATA


def test_custom_program_id() -> None:
    config = EngineConfig(program_id=Pubkey.from_string("9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin"))
    ledger = InMemoryLedger(config)
    ledger.add_mint(MINT_A)
    ledger.add_mint(MINT_B)
    result = ledger.execute(encode_initialize(30), initialize_accounts(AUTHORITY, MINT_A, MINT_B, config))
    assert result.ok, result.error
    pool = PoolAddresses.derive(MINT_A, MINT_B, config).pool
    assert pool != POOL.pool
    assert ledger.get(pool).owner == config.program_id
