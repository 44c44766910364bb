"""
Pause gate.

The flag lives in `LedgerState.paused`. Public-surface transitions (deposits,
signed releases) call `require_active()` first; governance transitions never
consult the gate, so forced recovery and the pause controls themselves keep
working while paused.
"""

from __future__ import annotations

from ..state.ledger_state import LedgerState
from .errors import Paused


def require_active(state: LedgerState) -> None:
    if state.paused:
        raise Paused("ledger is paused")


def set_paused(state: LedgerState, paused: bool) -> LedgerState:
    """New state with the flag set. Setting the current value again is allowed."""
    return state.with_governance_step(paused=bool(paused))
