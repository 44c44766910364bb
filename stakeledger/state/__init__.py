"""
State management for the stake ledger
"""

from .assets import NATIVE, Asset, NativeAsset, TokenAsset, asset_from_dict
from .balances import AccountBook, AllowanceTable
from .stakes import Stake, stake_from_dict
from .ledger_state import (
    SCHEMA_VERSION,
    LedgerState,
    initial_state,
    migrate_v1_to_v2,
    state_from_dict,
    state_to_dict,
)

__all__ = [
    "NATIVE",
    "Asset",
    "NativeAsset",
    "TokenAsset",
    "asset_from_dict",
    "AccountBook",
    "AllowanceTable",
    "Stake",
    "stake_from_dict",
    "SCHEMA_VERSION",
    "LedgerState",
    "initial_state",
    "migrate_v1_to_v2",
    "state_from_dict",
    "state_to_dict",
]
