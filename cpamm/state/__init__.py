"""
Account state and layouts for the pool
"""

from .accounts import Account, AccountInfo, AccountMeta
from .addresses import associated_token_address, lp_mint_address, pool_address
from .pool import PoolRecord
from .token import MintState, TokenAccountState

__all__ = [
    "Account",
    "AccountInfo",
    "AccountMeta",
    "associated_token_address",
    "lp_mint_address",
    "pool_address",
    "PoolRecord",
    "MintState",
    "TokenAccountState",
]
