from __future__ import annotations

import pytest
from solders.pubkey import Pubkey

from cpamm.core.errors import PoolError, PoolErrorCode, ProgramError, ProgramErrorCode
from cpamm.core.types import AddLiquidityArgs, InitializeArgs, Operation, RemoveLiquidityArgs, SwapArgs
from cpamm.integration.config import EngineConfig
from cpamm.integration.instructions import (
    PAYLOAD_LEN,
    add_liquidity_accounts,
    decode_instruction,
    encode_add_liquidity,
    encode_initialize,
    encode_remove_liquidity,
    encode_swap,
    initialize_accounts,
    remove_liquidity_accounts,
    required_accounts,
    swap_accounts,
)


def _expect_invalid_data(data: bytes) -> None:
    with pytest.raises(ProgramError) as exc:
        decode_instruction(data)
    assert exc.value.error == ProgramErrorCode.INVALID_INSTRUCTION_DATA
    assert exc.value.code == 3 << 32


def test_payload_lengths() -> None:
    assert PAYLOAD_LEN == {
        Operation.INITIALIZE: 2,
        Operation.ADD_LIQUIDITY: 24,
        Operation.REMOVE_LIQUIDITY: 24,
        Operation.SWAP: 17,
    }


def test_empty_data_is_rejected() -> None:
    _expect_invalid_data(b"")


@pytest.mark.parametrize("tag", [4, 5, 0xFF])
def test_unknown_discriminator_is_rejected(tag: int) -> None:
    _expect_invalid_data(bytes([tag]) + bytes(32))


@pytest.mark.parametrize("operation", list(Operation))
def test_short_payload_is_rejected(operation: Operation) -> None:
    _expect_invalid_data(bytes([operation]) + bytes(PAYLOAD_LEN[operation] - 1))


def test_initialize_wire_format() -> None:
    assert encode_initialize(30) == b"\x00\x1e\x00"
    assert decode_instruction(b"\x00\x1e\x00").args == InitializeArgs(fee_rate=30)


@pytest.mark.parametrize("fee_rate", [10_001, 0xFFFF])
def test_initialize_rejects_fee_above_denominator(fee_rate: int) -> None:
    with pytest.raises(PoolError) as exc:
        decode_instruction(encode_initialize(fee_rate))
    assert exc.value.error == PoolErrorCode.INVALID_FEE_RATE
    assert exc.value.code == 4


def test_add_liquidity_wire_format() -> None:
    data = encode_add_liquidity(1, 2, 3)
    assert data == b"\x01" + (1).to_bytes(8, "little") + (2).to_bytes(8, "little") + (3).to_bytes(8, "little")
    ix = decode_instruction(data)
    assert ix.operation == Operation.ADD_LIQUIDITY
    assert ix.args == AddLiquidityArgs(amount_a=1, amount_b=2, min_lp_amount=3)


def test_remove_liquidity_decodes_u64_max() -> None:
    u64_max = (1 << 64) - 1
    ix = decode_instruction(encode_remove_liquidity(u64_max, 0, 1))
    assert ix.args == RemoveLiquidityArgs(lp_tokens=u64_max, min_amount_a=0, min_amount_b=1)


@pytest.mark.parametrize("direction,a_to_b", [(0, False), (1, True), (7, True)])
def test_swap_direction_byte(direction: int, a_to_b: bool) -> None:
    data = b"\x03" + (500).to_bytes(8, "little") + (9).to_bytes(8, "little") + bytes([direction])
    assert decode_instruction(data).args == SwapArgs(amount_in=500, min_amount_out=9, a_to_b=a_to_b)


def test_trailing_bytes_are_ignored() -> None:
    assert decode_instruction(encode_swap(10, 1, a_to_b=False) + b"junk").args == SwapArgs(10, 1, False)


def test_account_list_builders_match_required_counts() -> None:
    config = EngineConfig()
    user = Pubkey.from_bytes(bytes([1]) * 32)
    mint_a = Pubkey.from_bytes(bytes([2]) * 32)
    mint_b = Pubkey.from_bytes(bytes([3]) * 32)

    assert len(initialize_accounts(user, mint_a, mint_b, config)) == required_accounts(Operation.INITIALIZE) == 13
    assert len(add_liquidity_accounts(user, mint_a, mint_b, config)) == required_accounts(Operation.ADD_LIQUIDITY) == 14
    assert len(remove_liquidity_accounts(user, mint_a, mint_b, config)) == required_accounts(Operation.REMOVE_LIQUIDITY) == 12
    assert len(swap_accounts(user, mint_a, mint_b, config)) == required_accounts(Operation.SWAP) == 10
