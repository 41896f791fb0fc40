"""
Ledger collaborators.

The processor never edits token balances or allocates accounts itself; it asks
a `TokenLedger` and an `AccountAllocator`. Each call is atomic and may fail
independently. Atomicity of a whole instruction is the host's job: it reverts
every account when the instruction is rejected.

`InMemoryLedger` implements both capabilities over a dict of accounts and plays
the host's part in `execute`, which snapshots the accounts, dispatches the
instruction and restores the snapshot on rejection.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Protocol

from solders.pubkey import Pubkey

from ..core.checked_math import U64_MAX
from ..core.errors import ProgramError, ProgramErrorCode
from ..state.accounts import Account, AccountInfo, AccountMeta
from ..state.addresses import SignerSeeds, associated_token_address, verify_signer_seeds
from ..state.layouts import MINT_LEN, TOKEN_ACCOUNT_LEN
from ..state.token import MintState, TokenAccountState
from .config import EngineConfig

logger = logging.getLogger(__name__)


class TokenLedger(Protocol):
    def transfer(
        self,
        source: AccountInfo,
        destination: AccountInfo,
        authority: AccountInfo,
        amount: int,
        signer_seeds: SignerSeeds = (),
    ) -> None: ...

    def mint_to(
        self,
        mint: AccountInfo,
        destination: AccountInfo,
        authority: AccountInfo,
        amount: int,
        signer_seeds: SignerSeeds = (),
    ) -> None: ...

    def burn(
        self,
        mint: AccountInfo,
        source: AccountInfo,
        authority: AccountInfo,
        amount: int,
        signer_seeds: SignerSeeds = (),
    ) -> None: ...

    def initialize_mint(self, mint: AccountInfo, decimals: int, mint_authority: Pubkey) -> None: ...

    def create_associated_token_account(
        self,
        payer: AccountInfo,
        account: AccountInfo,
        wallet: Pubkey,
        mint: AccountInfo,
    ) -> None: ...


class AccountAllocator(Protocol):
    def create_account(
        self,
        payer: AccountInfo,
        new_account: AccountInfo,
        owner: Pubkey,
        space: int,
        signer_seeds: SignerSeeds = (),
    ) -> None: ...


def _copy_account(account: Account) -> Account:
    return Account(
        owner=account.owner,
        lamports=account.lamports,
        data=bytearray(account.data),
        executable=account.executable,
    )


class InMemoryLedger:
    """Dictionary-backed token ledger and account allocator."""

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = config or EngineConfig()
        self._accounts: Dict[Pubkey, Account] = {}

    # ------------------------------------------------------------------
    # Setup and inspection
    # ------------------------------------------------------------------

    def get(self, key: Pubkey) -> Optional[Account]:
        return self._accounts.get(key)

    def add_account(self, key: Pubkey, account: Account) -> Pubkey:
        self._accounts[key] = account
        return key

    def add_mint(
        self,
        key: Pubkey,
        *,
        mint_authority: Optional[Pubkey] = None,
        decimals: int = 6,
        supply: int = 0,
    ) -> Pubkey:
        state = MintState(mint_authority=mint_authority, supply=supply, decimals=decimals, is_initialized=True)
        return self.add_account(key, Account(owner=self.config.token_program_id, data=bytearray(state.encode())))

    def add_token_account(self, key: Pubkey, *, mint: Pubkey, owner: Pubkey, amount: int = 0) -> Pubkey:
        """Store a token account holding `amount`; the mint's supply grows with it when the mint is known."""
        state = TokenAccountState(mint=mint, owner=owner, amount=amount)
        self.add_account(key, Account(owner=self.config.token_program_id, data=bytearray(state.encode())))
        mint_account = self._accounts.get(mint)
        if amount and mint_account is not None and len(mint_account.data) == MINT_LEN:
            m = MintState.decode(bytes(mint_account.data))
            mint_account.data[:] = replace(m, supply=m.supply + amount).encode()
        return key

    def add_associated_token_account(self, owner: Pubkey, mint: Pubkey, amount: int = 0) -> Pubkey:
        key = associated_token_address(
            owner,
            mint,
            token_program_id=self.config.token_program_id,
            associated_token_program_id=self.config.associated_token_program_id,
        )
        return self.add_token_account(key, mint=mint, owner=owner, amount=amount)

    def token_balance(self, key: Pubkey) -> int:
        account = self._accounts.get(key)
        if account is None or len(account.data) != TOKEN_ACCOUNT_LEN:
            return 0
        return TokenAccountState.decode(bytes(account.data)).amount

    def mint_supply(self, key: Pubkey) -> int:
        account = self._accounts[key]
        return MintState.decode(bytes(account.data)).supply

    def infos(self, metas: Iterable[AccountMeta]) -> List[AccountInfo]:
        """Bind metas to stored accounts; unknown keys get a fresh vacant account."""
        out = []
        for meta in metas:
            account = self._accounts.setdefault(meta.pubkey, Account())
            out.append(AccountInfo(meta.pubkey, account, is_signer=meta.is_signer, is_writable=meta.is_writable))
        return out

    def snapshot(self) -> Dict[Pubkey, Account]:
        return {key: _copy_account(account) for key, account in self._accounts.items()}

    def restore(self, snapshot: Dict[Pubkey, Account]) -> None:
        self._accounts = {key: _copy_account(account) for key, account in snapshot.items()}

    def execute(self, data: bytes, metas: Iterable[AccountMeta]):
        """Run one instruction; every account reverts if it is rejected."""
        from .dispatcher import process_instruction

        snapshot = self.snapshot()
        try:
            result = process_instruction(self.config, self, self.infos(metas), data)
        except Exception:
            self.restore(snapshot)
            raise
        if not result.ok:
            self.restore(snapshot)
        return result

    # ------------------------------------------------------------------
    # Authorization helpers
    # ------------------------------------------------------------------

    def _authorize(self, authority: AccountInfo, signer_seeds: SignerSeeds) -> None:
        if authority.is_signer:
            return
        if signer_seeds and verify_signer_seeds(signer_seeds, self.config.program_id, authority.key):
            return
        raise ProgramError(ProgramErrorCode.MISSING_REQUIRED_SIGNATURE, f"{authority.key} did not authorize")

    def _token_account(self, info: AccountInfo) -> TokenAccountState:
        if not info.is_owned_by(self.config.token_program_id):
            raise ProgramError(ProgramErrorCode.INCORRECT_PROGRAM_ID, f"{info.key} is not a token account")
        state = TokenAccountState.decode(info.data)
        if not state.is_initialized:
            raise ProgramError(ProgramErrorCode.UNINITIALIZED_ACCOUNT, f"{info.key} is not initialized")
        if state.is_frozen:
            raise ProgramError(ProgramErrorCode.INVALID_ACCOUNT_DATA, f"{info.key} is frozen")
        return state

    def _mint(self, info: AccountInfo) -> MintState:
        if not info.is_owned_by(self.config.token_program_id):
            raise ProgramError(ProgramErrorCode.INCORRECT_PROGRAM_ID, f"{info.key} is not a mint")
        state = MintState.decode(info.data)
        if not state.is_initialized:
            raise ProgramError(ProgramErrorCode.UNINITIALIZED_ACCOUNT, f"mint {info.key} is not initialized")
        return state

    # ------------------------------------------------------------------
    # TokenLedger
    # ------------------------------------------------------------------

    def transfer(
        self,
        source: AccountInfo,
        destination: AccountInfo,
        authority: AccountInfo,
        amount: int,
        signer_seeds: SignerSeeds = (),
    ) -> None:
        source.require_writable()
        destination.require_writable()
        src = self._token_account(source)
        dst = self._token_account(destination)
        if src.mint != dst.mint:
            raise ProgramError(ProgramErrorCode.INVALID_ACCOUNT_DATA, "source and destination hold different mints")
        if src.owner != authority.key:
            raise ProgramError(ProgramErrorCode.ILLEGAL_OWNER, f"{authority.key} does not own {source.key}")
        self._authorize(authority, signer_seeds)
        if amount > src.amount:
            raise ProgramError(
                ProgramErrorCode.INSUFFICIENT_FUNDS,
                f"{source.key} holds {src.amount}, needs {amount}",
            )
        if source.key == destination.key:
            return
        if dst.amount + amount > U64_MAX:
            raise ProgramError(ProgramErrorCode.ARITHMETIC_OVERFLOW, f"{destination.key} balance overflows u64")
        source.write_data(replace(src, amount=src.amount - amount).encode())
        destination.write_data(replace(dst, amount=dst.amount + amount).encode())

    def mint_to(
        self,
        mint: AccountInfo,
        destination: AccountInfo,
        authority: AccountInfo,
        amount: int,
        signer_seeds: SignerSeeds = (),
    ) -> None:
        mint.require_writable()
        destination.require_writable()
        m = self._mint(mint)
        dst = self._token_account(destination)
        if dst.mint != mint.key:
            raise ProgramError(ProgramErrorCode.INVALID_ACCOUNT_DATA, f"{destination.key} does not hold {mint.key}")
        if m.mint_authority != authority.key:
            raise ProgramError(ProgramErrorCode.ILLEGAL_OWNER, f"{authority.key} is not the mint authority")
        self._authorize(authority, signer_seeds)
        if m.supply + amount > U64_MAX:
            raise ProgramError(ProgramErrorCode.ARITHMETIC_OVERFLOW, f"supply of {mint.key} overflows u64")
        mint.write_data(replace(m, supply=m.supply + amount).encode())
        destination.write_data(replace(dst, amount=dst.amount + amount).encode())

    def burn(
        self,
        mint: AccountInfo,
        source: AccountInfo,
        authority: AccountInfo,
        amount: int,
        signer_seeds: SignerSeeds = (),
    ) -> None:
        mint.require_writable()
        source.require_writable()
        m = self._mint(mint)
        src = self._token_account(source)
        if src.mint != mint.key:
            raise ProgramError(ProgramErrorCode.INVALID_ACCOUNT_DATA, f"{source.key} does not hold {mint.key}")
        if src.owner != authority.key:
            raise ProgramError(ProgramErrorCode.ILLEGAL_OWNER, f"{authority.key} does not own {source.key}")
        self._authorize(authority, signer_seeds)
        if amount > src.amount:
            raise ProgramError(
                ProgramErrorCode.INSUFFICIENT_FUNDS,
                f"{source.key} holds {src.amount}, burning {amount}",
            )
        source.write_data(replace(src, amount=src.amount - amount).encode())
        mint.write_data(replace(m, supply=m.supply - amount).encode())

    def initialize_mint(self, mint: AccountInfo, decimals: int, mint_authority: Pubkey) -> None:
        mint.require_writable()
        if not mint.is_owned_by(self.config.token_program_id):
            raise ProgramError(ProgramErrorCode.INCORRECT_PROGRAM_ID, f"{mint.key} is not owned by the token program")
        if mint.data_len != MINT_LEN:
            raise ProgramError(ProgramErrorCode.INVALID_ACCOUNT_DATA, f"{mint.key} has no room for a mint")
        if MintState.decode(mint.data).is_initialized:
            raise ProgramError(ProgramErrorCode.ACCOUNT_ALREADY_INITIALIZED, f"mint {mint.key} already initialized")
        state = MintState(mint_authority=mint_authority, supply=0, decimals=decimals, is_initialized=True)
        mint.write_data(state.encode())

    def create_associated_token_account(
        self,
        payer: AccountInfo,
        account: AccountInfo,
        wallet: Pubkey,
        mint: AccountInfo,
    ) -> None:
        if not payer.is_signer:
            raise ProgramError(ProgramErrorCode.MISSING_REQUIRED_SIGNATURE, f"payer {payer.key} must sign")
        account.require_writable()
        expected = associated_token_address(
            wallet,
            mint.key,
            token_program_id=self.config.token_program_id,
            associated_token_program_id=self.config.associated_token_program_id,
        )
        if account.key != expected:
            raise ProgramError(ProgramErrorCode.INVALID_SEEDS, f"{account.key} is not the associated address")
        if not account.account.is_vacant():
            raise ProgramError(ProgramErrorCode.ACCOUNT_ALREADY_INITIALIZED, f"{account.key} already exists")
        self._mint(mint)
        state = TokenAccountState(mint=mint.key, owner=wallet, amount=0)
        account.account.owner = self.config.token_program_id
        account.account.data = bytearray(state.encode())
        logger.debug("created token account %s for %s (mint %s)", account.key, wallet, mint.key)

    # ------------------------------------------------------------------
    # AccountAllocator
    # ------------------------------------------------------------------

    def create_account(
        self,
        payer: AccountInfo,
        new_account: AccountInfo,
        owner: Pubkey,
        space: int,
        signer_seeds: SignerSeeds = (),
    ) -> None:
        if not payer.is_signer:
            raise ProgramError(ProgramErrorCode.MISSING_REQUIRED_SIGNATURE, f"payer {payer.key} must sign")
        new_account.require_writable()
        if not new_account.account.is_vacant():
            raise ProgramError(ProgramErrorCode.ACCOUNT_ALREADY_INITIALIZED, f"{new_account.key} is already in use")
        self._authorize(new_account, signer_seeds)
        new_account.account.owner = owner
        new_account.account.data = bytearray(space)
        logger.debug("allocated %s: %d bytes owned by %s", new_account.key, space, owner)



class Ledger(TokenLedger, AccountAllocator, Protocol):
    """Both capabilities, as the processors use them."""
