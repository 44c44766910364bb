"""
Stake ledger transitions (functional core).

Each operation is a pure function `(state, rules, args) -> Transition`. A
`Transition` carries the next state plus the custody movements and events the
shell must carry out:

- `pulls` run before the new state is committed (a deposit is recorded only
  once its funds are in custody),
- `pushes` run after the new state is committed (a release is marked before any
  funds leave custody, so a reentrant release of the same nonce is rejected).

Transitions raise `StakeLedgerError` subclasses and never touch custody
themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from typing import Any, Dict, Optional, Tuple

from ..state.assets import NATIVE, Asset, TokenAsset
from ..state.canonical import is_strict_int, require_identifier
from ..state.ledger_state import LedgerState
from ..state.stakes import Stake, validate_amount
from .authorization import AuthorizationVerifier, validate_registry_key
from .errors import InvalidAmount, InvalidGovernanceProof, StakeNotFound, Unauthorized
from .events import Event, PauseChanged, RegistryKeyRotated, recovered, staked, unstaked
from .governance import GovernanceAction, GovernanceVerifier
from .pause import require_active, set_paused
from .payout import full_recovery, split_release


@unique
class TransferDirection(Enum):
    PULL = "pull"
    PUSH = "push"


@dataclass(frozen=True)
class Transfer:
    direction: TransferDirection
    account: str
    asset: Asset
    amount: int
    purpose: str


@dataclass(frozen=True)
class Transition:
    state: LedgerState
    pulls: Tuple[Transfer, ...] = ()
    pushes: Tuple[Transfer, ...] = ()
    events: Tuple[Event, ...] = ()
    nonce: Optional[int] = None


@dataclass(frozen=True)
class LedgerRules:
    """Deployment-bound parameters every transition needs."""

    authorization: AuthorizationVerifier
    governance: GovernanceVerifier
    slash_sink: str
    max_synthesizer_id_len: int = 256


def _require_synthesizer_id(rules: LedgerRules, synthesizer_id: Any) -> str:
    return require_identifier(synthesizer_id, name="synthesizer_id", max_len=rules.max_synthesizer_id_len)


def _live_stake(state: LedgerState, nonce: Any, expected_asset: Optional[Asset]) -> Stake:
    stake = state.get_stake(nonce)
    if stake is None or stake.released:
        raise StakeNotFound(f"no live stake at nonce {nonce!r}")
    if expected_asset is not None and stake.asset != expected_asset:
        raise StakeNotFound(f"nonce {nonce} does not hold {expected_asset}")
    return stake


def _require_governance(
    state: LedgerState,
    rules: LedgerRules,
    action: GovernanceAction,
    params: Dict[str, Any],
    proof: Any,
) -> None:
    ok = rules.governance.verify(
        governance_public_key=state.governance_public_key,
        action=action,
        sequence=state.governance_sequence,
        params=params,
        proof=proof,
    )
    if not ok:
        raise InvalidGovernanceProof(f"{action.value} proof rejected at sequence {state.governance_sequence}")


def deposit(
    state: LedgerState,
    rules: LedgerRules,
    *,
    owner: str,
    asset: Asset,
    amount: Any,
    synthesizer_id: Any,
    height: int = 0,
) -> Transition:
    require_active(state)
    try:
        amount = validate_amount(amount)
    except (TypeError, ValueError) as exc:
        raise InvalidAmount(str(exc)) from exc
    synthesizer_id = _require_synthesizer_id(rules, synthesizer_id)

    nonce = state.nonce_counter
    stake = Stake(
        nonce=nonce,
        owner=owner,
        amount=amount,
        asset=asset,
        synthesizer_id=synthesizer_id,
        deposit_height=height,
    )
    return Transition(
        state=state.with_new_stake(stake),
        pulls=(Transfer(TransferDirection.PULL, owner, asset, amount, "deposit"),),
        events=(staked(owner, asset, amount, synthesizer_id, nonce),),
        nonce=nonce,
    )


def release(
    state: LedgerState,
    rules: LedgerRules,
    *,
    caller: str,
    nonce: Any,
    slash_amount: Any,
    signature: Any,
    expected_asset: Optional[Asset] = None,
) -> Transition:
    require_active(state)
    stake = _live_stake(state, nonce, expected_asset)
    if stake.owner != caller:
        raise Unauthorized(f"caller {caller!r} does not own nonce {stake.nonce}")
    split = split_release(stake.amount, slash_amount)
    authorized = rules.authorization.is_authorized(
        registry_public_key=state.registry_public_key,
        owner=stake.owner,
        asset=stake.asset,
        amount=stake.amount,
        nonce=stake.nonce,
        slash_amount=split.slashed,
        signature=signature,
    )
    if not authorized:
        raise Unauthorized(f"release signature for nonce {stake.nonce} not issued by the registry key")

    pushes = []
    if split.slashed > 0:
        pushes.append(Transfer(TransferDirection.PUSH, rules.slash_sink, stake.asset, split.slashed, "slash"))
    if split.payout > 0:
        pushes.append(Transfer(TransferDirection.PUSH, stake.owner, stake.asset, split.payout, "payout"))
    return Transition(
        state=state.with_released(stake.nonce),
        pushes=tuple(pushes),
        events=(unstaked(stake.owner, stake.asset, split.payout, stake.synthesizer_id, stake.nonce),),
        nonce=stake.nonce,
    )


def _recovery_action(asset: Asset, nonce: Any) -> Tuple[GovernanceAction, Dict[str, Any]]:
    if isinstance(asset, TokenAsset):
        return GovernanceAction.RECOVERY_UNSTAKE_TOKEN, {"nonce": nonce, "token_id": asset.token_id}
    return GovernanceAction.RECOVERY_UNSTAKE, {"nonce": nonce}


def force_recover(
    state: LedgerState,
    rules: LedgerRules,
    *,
    nonce: Any,
    proof: Any,
    expected_asset: Optional[Asset] = None,
) -> Transition:
    """Governance-forced release of the full stake to its owner (pause does not apply)."""
    if not is_strict_int(nonce) or nonce < 0:
        raise StakeNotFound(f"no live stake at nonce {nonce!r}")
    asset = expected_asset
    if asset is None:
        # The recovery tag depends on the stake's asset kind; an unknown nonce
        # is checked against the native tag and then fails as StakeNotFound.
        existing = state.get_stake(nonce)
        asset = existing.asset if existing is not None else NATIVE
    action, params = _recovery_action(asset, nonce)
    _require_governance(state, rules, action, params, proof)
    stake = _live_stake(state, nonce, expected_asset)

    split = full_recovery(stake.amount)
    next_state = state.with_released(stake.nonce).with_governance_step()
    return Transition(
        state=next_state,
        pushes=(Transfer(TransferDirection.PUSH, stake.owner, stake.asset, split.payout, "recovery"),),
        events=(recovered(stake.owner, stake.asset, split.payout, stake.synthesizer_id, stake.nonce),),
        nonce=stake.nonce,
    )


def pause(state: LedgerState, rules: LedgerRules, *, proof: Any) -> Transition:
    _require_governance(state, rules, GovernanceAction.PAUSE, {}, proof)
    return Transition(
        state=set_paused(state, True),
        events=(PauseChanged(paused=True, sequence=state.governance_sequence),),
    )


def unpause(state: LedgerState, rules: LedgerRules, *, proof: Any) -> Transition:
    _require_governance(state, rules, GovernanceAction.UNPAUSE, {}, proof)
    return Transition(
        state=set_paused(state, False),
        events=(PauseChanged(paused=False, sequence=state.governance_sequence),),
    )


def rotate_registry_key(state: LedgerState, rules: LedgerRules, *, new_key: Any, proof: Any) -> Transition:
    new_key = validate_registry_key(new_key)
    _require_governance(
        state, rules, GovernanceAction.ROTATE_REGISTRY_KEY, {"new_registry_key": new_key}, proof
    )
    return Transition(
        state=state.with_governance_step(registry_public_key=new_key),
        events=(
            RegistryKeyRotated(
                old_key=state.registry_public_key, new_key=new_key, sequence=state.governance_sequence
            ),
        ),
    )
