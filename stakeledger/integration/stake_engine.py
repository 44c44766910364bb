"""
Stake ledger execution shell.

This is the imperative shell around the functional core in `core/ledger.py`:

- serializes operations with a re-entrant lock,
- executes each `Transition` in order: pulls, commit state, pushes, events,
- restores the checkpoint (state, custody snapshot, event log length) if
  anything fails, so every operation is all-or-nothing.

The lock is re-entrant because native pushes may run a receiver hook on the
same thread; a hook that calls back into the ledger sees the already committed
state (the nonce is released) and is rejected instead of deadlocking.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Tuple

from ..core import ledger as core
from ..core.authorization import AuthorizationVerifier, validate_registry_key
from ..core.errors import DirectTransferRejected, StakeLedgerError
from ..core.events import Event, EventKind, EventLog
from ..core.governance import GovernanceVerifier, validate_governance_key
from ..core.ledger import LedgerRules, Transition
from ..state.assets import NATIVE, Asset, TokenAsset
from ..state.canonical import is_strict_int, require_identifier
from ..state.ledger_state import LedgerState, initial_state
from ..state.stakes import Stake
from .config import LedgerConfig
from .operations import (
    DepositNativeOp,
    DepositTokenOp,
    ForceRecoverOp,
    OperationParseError,
    PauseOp,
    ReleaseOp,
    RotateRegistryKeyOp,
    UnpauseOp,
    parse_operation,
)
from .transfer_port import AssetTransferPort


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallContext:
    """Who is calling, how much native value is attached, and the ledger height."""

    sender: str
    value: int = 0
    height: int = 0

    def __post_init__(self) -> None:
        require_identifier(self.sender, name="sender")
        if not is_strict_int(self.value) or self.value < 0:
            raise ValueError("value must be a non-negative int")
        if not is_strict_int(self.height) or self.height < 0:
            raise ValueError("height must be a non-negative int")


@dataclass(frozen=True)
class LedgerTxResult:
    ok: bool
    value: Any = None
    error: Optional[str] = None
    code: Optional[str] = None


def build_rules(config: LedgerConfig) -> LedgerRules:
    return LedgerRules(
        authorization=AuthorizationVerifier(
            chain_id=config.chain_id, ledger_id=config.ledger_id, require_low_s=config.require_low_s
        ),
        governance=GovernanceVerifier(chain_id=config.chain_id, ledger_id=config.ledger_id),
        slash_sink=config.slash_sink,
        max_synthesizer_id_len=config.max_synthesizer_id_len,
    )


class StakeLedger:
    def __init__(self, config: LedgerConfig, state: LedgerState, port: AssetTransferPort):
        self.config = config
        self.rules = build_rules(config)
        self._state = state
        self._port = port
        self._events = EventLog()
        self._lock = threading.RLock()

    @classmethod
    def create(
        cls,
        config: LedgerConfig,
        *,
        registry_public_key: str,
        governance_public_key: str,
        port: AssetTransferPort,
    ) -> "StakeLedger":
        """Fresh ledger at nonce 0, unpaused, with validated genesis keys."""
        state = initial_state(
            registry_public_key=validate_registry_key(registry_public_key),
            governance_public_key=validate_governance_key(governance_public_key),
        )
        return cls(config, state, port)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _execute(self, label: str, build: Callable[[LedgerState], Transition]) -> Transition:
        with self._lock:
            checkpoint = (self._state, self._port.snapshot(), len(self._events))
            try:
                transition = build(self._state)
                for transfer in transition.pulls:
                    self._port.pull(transfer.account, transfer.asset, transfer.amount)
                self._state = transition.state
                for transfer in transition.pushes:
                    self._port.push(transfer.account, transfer.asset, transfer.amount)
                self._events.extend(transition.events)
            except Exception as exc:
                self._rollback(checkpoint)
                if isinstance(exc, StakeLedgerError):
                    logger.warning("%s rejected (%s): %s", label, exc.code, exc)
                else:
                    logger.warning("%s aborted: %r", label, exc)
                raise
            logger.info("%s ok nonce=%s events=%d", label, transition.nonce, len(transition.events))
            return transition

    def _rollback(self, checkpoint: Tuple[LedgerState, Any, int]) -> None:
        state, port_snap, event_len = checkpoint
        self._state = state
        self._port.restore(port_snap)
        self._events.truncate(event_len)

    @staticmethod
    def _require_no_value(ctx: CallContext, entry_point: str) -> None:
        if ctx.value != 0:
            raise DirectTransferRejected(f"{entry_point} does not accept native value")

    # ------------------------------------------------------------------
    # Public surface (gated by pause)
    # ------------------------------------------------------------------

    def deposit_native(self, ctx: CallContext, synthesizer_id: str) -> int:
        """Stake the native value attached to the call; returns the nonce."""
        transition = self._execute(
            "deposit_native",
            lambda s: core.deposit(
                s,
                self.rules,
                owner=ctx.sender,
                asset=NATIVE,
                amount=ctx.value,
                synthesizer_id=synthesizer_id,
                height=ctx.height,
            ),
        )
        return transition.nonce

    def deposit_token(self, ctx: CallContext, token_id: str, amount: int, synthesizer_id: str) -> int:
        """Pull `amount` of `token_id` (pre-approved) into custody; returns the nonce."""
        self._require_no_value(ctx, "deposit_token")
        asset = TokenAsset(token_id=token_id)
        transition = self._execute(
            "deposit_token",
            lambda s: core.deposit(
                s,
                self.rules,
                owner=ctx.sender,
                asset=asset,
                amount=amount,
                synthesizer_id=synthesizer_id,
                height=ctx.height,
            ),
        )
        return transition.nonce

    def release(
        self,
        ctx: CallContext,
        nonce: int,
        slash_amount: int,
        signature: str,
        *,
        expected_asset: Optional[Asset] = None,
    ) -> int:
        """Release a stake with a registry signature; returns the payout."""
        self._require_no_value(ctx, "release")
        transition = self._execute(
            "release",
            lambda s: core.release(
                s,
                self.rules,
                caller=ctx.sender,
                nonce=nonce,
                slash_amount=slash_amount,
                signature=signature,
                expected_asset=expected_asset,
            ),
        )
        return transition.events[0].amount

    def release_native(self, ctx: CallContext, nonce: int, slash_amount: int, signature: str) -> int:
        return self.release(ctx, nonce, slash_amount, signature, expected_asset=NATIVE)

    def release_token(self, ctx: CallContext, token_id: str, nonce: int, slash_amount: int, signature: str) -> int:
        return self.release(ctx, nonce, slash_amount, signature, expected_asset=TokenAsset(token_id=token_id))

    def receive(self, ctx: CallContext) -> None:
        """Plain value transfer to the ledger: always rejected."""
        raise DirectTransferRejected(f"unsolicited native transfer of {ctx.value} from {ctx.sender}")

    # ------------------------------------------------------------------
    # Governance surface (not gated by pause)
    # ------------------------------------------------------------------

    def force_recover(
        self,
        ctx: CallContext,
        nonce: int,
        proof: str,
        *,
        expected_asset: Optional[Asset] = None,
    ) -> int:
        """Return the full stake to its owner under a governance proof; returns the amount."""
        self._require_no_value(ctx, "force_recover")
        transition = self._execute(
            "force_recover",
            lambda s: core.force_recover(s, self.rules, nonce=nonce, proof=proof, expected_asset=expected_asset),
        )
        return transition.events[0].amount

    def force_recover_native(self, ctx: CallContext, nonce: int, proof: str) -> int:
        return self.force_recover(ctx, nonce, proof, expected_asset=NATIVE)

    def force_recover_token(self, ctx: CallContext, token_id: str, nonce: int, proof: str) -> int:
        return self.force_recover(ctx, nonce, proof, expected_asset=TokenAsset(token_id=token_id))

    def pause(self, ctx: CallContext, proof: str) -> None:
        self._require_no_value(ctx, "pause")
        self._execute("pause", lambda s: core.pause(s, self.rules, proof=proof))

    def unpause(self, ctx: CallContext, proof: str) -> None:
        self._require_no_value(ctx, "unpause")
        self._execute("unpause", lambda s: core.unpause(s, self.rules, proof=proof))

    def rotate_registry_key(self, ctx: CallContext, new_key: str, proof: str) -> None:
        self._require_no_value(ctx, "rotate_registry_key")
        self._execute(
            "rotate_registry_key",
            lambda s: core.rotate_registry_key(s, self.rules, new_key=new_key, proof=proof),
        )

    # ------------------------------------------------------------------
    # Envelope interface
    # ------------------------------------------------------------------

    def submit(self, ctx: CallContext, operation: Mapping[str, Any]) -> LedgerTxResult:
        """Parse and execute one operation object; never raises for rejected requests."""
        try:
            op = parse_operation(operation)
            value = self._dispatch(ctx, op)
        except OperationParseError as exc:
            return LedgerTxResult(ok=False, error=str(exc), code="invalid_operation")
        except StakeLedgerError as exc:
            return LedgerTxResult(ok=False, error=str(exc), code=exc.code)
        except (TypeError, ValueError) as exc:
            return LedgerTxResult(ok=False, error=str(exc), code="invalid_operation")
        return LedgerTxResult(ok=True, value=value)

    def _dispatch(self, ctx: CallContext, op: Any) -> Any:
        if isinstance(op, DepositNativeOp):
            return self.deposit_native(ctx, op.synthesizer_id)
        if isinstance(op, DepositTokenOp):
            return self.deposit_token(ctx, op.token_id, op.amount, op.synthesizer_id)
        if isinstance(op, ReleaseOp):
            return self.release(ctx, op.nonce, op.slash_amount, op.signature, expected_asset=op.expected_asset)
        if isinstance(op, ForceRecoverOp):
            return self.force_recover(ctx, op.nonce, op.proof, expected_asset=op.expected_asset)
        if isinstance(op, PauseOp):
            return self.pause(ctx, op.proof)
        if isinstance(op, UnpauseOp):
            return self.unpause(ctx, op.proof)
        if isinstance(op, RotateRegistryKeyOp):
            return self.rotate_registry_key(ctx, op.new_registry_key, op.proof)
        raise OperationParseError(f"unsupported operation: {type(op).__name__}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def state(self) -> LedgerState:
        return self._state

    @property
    def nonce_counter(self) -> int:
        return self._state.nonce_counter

    @property
    def paused(self) -> bool:
        return self._state.paused

    @property
    def registry_public_key(self) -> str:
        return self._state.registry_public_key

    @property
    def governance_public_key(self) -> str:
        return self._state.governance_public_key

    @property
    def governance_sequence(self) -> int:
        return self._state.governance_sequence

    @property
    def events(self) -> EventLog:
        return self._events

    def get_stake(self, nonce: int) -> Optional[Stake]:
        return self._state.get_stake(nonce)

    def stakes_of(self, owner: str) -> List[Stake]:
        return [s for n, s in sorted(self._state.stakes.items()) if s.owner == owner]

    def total_staked(self, asset: Asset) -> int:
        """Sum of live stakes in `asset` (what custody must hold for it)."""
        return sum(s.amount for s in self._state.stakes.values() if s.live and s.asset == asset)

    def query_events(
        self, *, kind: Optional[EventKind] = None, owner: Optional[str] = None, nonce: Optional[int] = None
    ) -> List[Event]:
        return self._events.query(kind=kind, owner=owner, nonce=nonce)
