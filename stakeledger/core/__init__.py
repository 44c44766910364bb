"""
Stake ledger rules (functional core)
"""

from .errors import (
    AllowanceNotGranted,
    DirectTransferRejected,
    ExcessiveSlash,
    InsufficientBalance,
    InvalidAmount,
    InvalidGovernanceProof,
    InvalidKey,
    Paused,
    StakeLedgerError,
    StakeNotFound,
    TransferFailed,
    Unauthorized,
)
from .events import EventKind, EventLog, PauseChanged, RegistryKeyRotated, StakeEvent
from .payout import ReleaseSplit, split_release
from .authorization import AuthorizationVerifier
from .governance import GovernanceAction, GovernanceVerifier
from .ledger import LedgerRules, Transfer, TransferDirection, Transition

__all__ = [
    "AllowanceNotGranted",
    "DirectTransferRejected",
    "ExcessiveSlash",
    "InsufficientBalance",
    "InvalidAmount",
    "InvalidGovernanceProof",
    "InvalidKey",
    "Paused",
    "StakeLedgerError",
    "StakeNotFound",
    "TransferFailed",
    "Unauthorized",
    "EventKind",
    "EventLog",
    "PauseChanged",
    "RegistryKeyRotated",
    "StakeEvent",
    "ReleaseSplit",
    "split_release",
    "AuthorizationVerifier",
    "GovernanceAction",
    "GovernanceVerifier",
    "LedgerRules",
    "Transfer",
    "TransferDirection",
    "Transition",
]
