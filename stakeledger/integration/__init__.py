"""
Stake ledger execution shell, custody and persistence
"""

from .config import LedgerConfig, config_from_env, load_config
from .stake_engine import CallContext, LedgerTxResult, StakeLedger
from .tokens import InMemoryToken, ReturnConvention
from .transfer_port import InMemoryCustody
from .snapshot import load_snapshot, save_snapshot

__all__ = [
    "LedgerConfig",
    "config_from_env",
    "load_config",
    "CallContext",
    "LedgerTxResult",
    "StakeLedger",
    "InMemoryToken",
    "ReturnConvention",
    "InMemoryCustody",
    "load_snapshot",
    "save_snapshot",
]
