"""Exception types for the stake ledger.

Every error aborts the whole operation. The functional core raises these;
`StakeLedger` restores its checkpoint and re-raises, and `StakeLedger.submit()`
converts them into `LedgerTxResult(ok=False, code=...)`.
"""

from __future__ import annotations


class StakeLedgerError(Exception):
    """Base class; `code` is a stable identifier for result envelopes."""

    code = "stake_ledger_error"


class InvalidAmount(StakeLedgerError):
    """Zero, negative, non-integer or out-of-range amount."""

    code = "invalid_amount"


class InsufficientBalance(StakeLedgerError):
    """Depositor does not hold the amount being pulled."""

    code = "insufficient_balance"


class AllowanceNotGranted(StakeLedgerError):
    """Depositor has not approved the ledger to pull the amount."""

    code = "allowance_not_granted"


class StakeNotFound(StakeLedgerError):
    """Nonce unknown, already released, or not of the expected asset."""

    code = "stake_not_found"


class Unauthorized(StakeLedgerError):
    """Release signature does not recover to the registry key, or caller is not the owner."""

    code = "unauthorized"


class InvalidGovernanceProof(StakeLedgerError):
    code = "invalid_governance_proof"


class ExcessiveSlash(StakeLedgerError):
    """Requested slash exceeds the staked amount."""

    code = "excessive_slash"


class TransferFailed(StakeLedgerError):
    """An asset movement did not succeed."""

    code = "transfer_failed"


class Paused(StakeLedgerError):
    code = "paused"


class DirectTransferRejected(StakeLedgerError):
    """Native value sent to the ledger outside of a deposit."""

    code = "direct_transfer_rejected"


class InvalidKey(StakeLedgerError):
    """Malformed registry or governance public key."""

    code = "invalid_key"
