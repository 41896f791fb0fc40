"""
Token-program account records (mints and token accounts).

Only the fields the pool relies on are interpreted; the rest round-trip
unchanged through `encode`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from solders.pubkey import Pubkey

from .layouts import (
    COPTION_NONE,
    COPTION_SOME,
    MINT_LEN,
    TOKEN_ACCOUNT_LEN,
    MintLayout,
    TokenAccountLayout,
    require_len,
)

_ZERO_KEY = bytes(32)

ACCOUNT_STATE_UNINITIALIZED = 0
ACCOUNT_STATE_INITIALIZED = 1
ACCOUNT_STATE_FROZEN = 2


def _option_key(tag: int, raw: bytes) -> Optional[Pubkey]:
    return Pubkey.from_bytes(raw) if tag == COPTION_SOME else None


def _option_fields(key: Optional[Pubkey]) -> tuple[int, bytes]:
    return (COPTION_NONE, _ZERO_KEY) if key is None else (COPTION_SOME, bytes(key))


@dataclass(frozen=True)
class MintState:
    mint_authority: Optional[Pubkey]
    supply: int
    decimals: int
    is_initialized: bool
    freeze_authority: Optional[Pubkey] = None

    @classmethod
    def decode(cls, data: bytes) -> "MintState":
        require_len(data, MINT_LEN, name="mint")
        c = MintLayout.parse(bytes(data))
        return cls(
            mint_authority=_option_key(c.mint_authority_option, c.mint_authority),
            supply=int(c.supply),
            decimals=int(c.decimals),
            is_initialized=bool(c.is_initialized),
            freeze_authority=_option_key(c.freeze_authority_option, c.freeze_authority),
        )

    def encode(self) -> bytes:
        auth_tag, auth = _option_fields(self.mint_authority)
        freeze_tag, freeze = _option_fields(self.freeze_authority)
        return MintLayout.build(
            dict(
                mint_authority_option=auth_tag,
                mint_authority=auth,
                supply=self.supply,
                decimals=self.decimals,
                is_initialized=self.is_initialized,
                freeze_authority_option=freeze_tag,
                freeze_authority=freeze,
            )
        )


@dataclass(frozen=True)
class TokenAccountState:
    mint: Pubkey
    owner: Pubkey
    amount: int
    state: int = ACCOUNT_STATE_INITIALIZED
    delegate: Optional[Pubkey] = None
    delegated_amount: int = 0
    is_native: Optional[int] = None
    close_authority: Optional[Pubkey] = None

    @property
    def is_initialized(self) -> bool:
        return self.state != ACCOUNT_STATE_UNINITIALIZED

    @property
    def is_frozen(self) -> bool:
        return self.state == ACCOUNT_STATE_FROZEN

    @classmethod
    def decode(cls, data: bytes) -> "TokenAccountState":
        require_len(data, TOKEN_ACCOUNT_LEN, name="token account")
        c = TokenAccountLayout.parse(bytes(data))
        return cls(
            mint=Pubkey.from_bytes(c.mint),
            owner=Pubkey.from_bytes(c.owner),
            amount=int(c.amount),
            state=int(c.state),
            delegate=_option_key(c.delegate_option, c.delegate),
            delegated_amount=int(c.delegated_amount),
            is_native=int(c.is_native) if c.is_native_option == COPTION_SOME else None,
            close_authority=_option_key(c.close_authority_option, c.close_authority),
        )

    def encode(self) -> bytes:
        delegate_tag, delegate = _option_fields(self.delegate)
        close_tag, close = _option_fields(self.close_authority)
        return TokenAccountLayout.build(
            dict(
                mint=bytes(self.mint),
                owner=bytes(self.owner),
                amount=self.amount,
                delegate_option=delegate_tag,
                delegate=delegate,
                state=self.state,
                is_native_option=COPTION_NONE if self.is_native is None else COPTION_SOME,
                is_native=self.is_native or 0,
                delegated_amount=self.delegated_amount,
                close_authority_option=close_tag,
                close_authority=close,
            )
        )
