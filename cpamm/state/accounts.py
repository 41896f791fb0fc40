"""
Account model shared by the engine and the host ledger.

`Account` is what the ledger stores for an address. `AccountInfo` is the view an
instruction receives: the stored account plus the per-instruction signer and
writable flags chosen by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from solders.pubkey import Pubkey

from ..core.errors import ProgramError, ProgramErrorCode
from .addresses import SYSTEM_PROGRAM_ID


@dataclass
class Account:
    owner: Pubkey = SYSTEM_PROGRAM_ID
    lamports: int = 0
    data: bytearray = field(default_factory=bytearray)
    executable: bool = False

    def is_vacant(self) -> bool:
        """True for an address nothing has been allocated at yet."""
        return self.owner == SYSTEM_PROGRAM_ID and not self.data and self.lamports == 0


@dataclass(frozen=True)
class AccountMeta:
    pubkey: Pubkey
    is_signer: bool = False
    is_writable: bool = False


@dataclass(frozen=True)
class AccountInfo:
    key: Pubkey
    account: Account
    is_signer: bool = False
    is_writable: bool = False

    @property
    def owner(self) -> Pubkey:
        return self.account.owner

    @property
    def data(self) -> bytes:
        return bytes(self.account.data)

    @property
    def data_len(self) -> int:
        return len(self.account.data)

    def is_owned_by(self, program_id: Pubkey) -> bool:
        return self.account.owner == program_id

    def require_writable(self) -> None:
        if not self.is_writable:
            raise ProgramError(ProgramErrorCode.IMMUTABLE, f"account {self.key} was not passed as writable")

    def write_data(self, data: bytes) -> None:
        """Replace the account data in place; the length may not change."""
        self.require_writable()
        if len(data) != len(self.account.data):
            raise ProgramError(
                ProgramErrorCode.ACCOUNT_DATA_TOO_SMALL,
                f"account {self.key} holds {len(self.account.data)} bytes, got {len(data)}",
            )
        self.account.data[:] = data
