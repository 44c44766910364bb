# [TESTER] v1

from __future__ import annotations

import pytest

from stakeledger.core.errors import (
    AllowanceNotGranted,
    DirectTransferRejected,
    ExcessiveSlash,
    InsufficientBalance,
    InvalidAmount,
    InvalidGovernanceProof,
    Paused,
    StakeNotFound,
    TransferFailed,
    Unauthorized,
)
from stakeledger.core.events import EventKind
from stakeledger.core.governance import GovernanceAction
from stakeledger.integration.tokens import InMemoryToken
from stakeledger.state.assets import NATIVE, TokenAsset


def test_sequential_deposits_get_sequential_nonces(harness) -> None:
    n0 = harness.deposit_native("alice", 100, "job-a")
    n1 = harness.deposit_token("bob", "USDX", 50, "job-b")
    n2 = harness.deposit_native("carol", 7, "job-c")

    assert (n0, n1, n2) == (0, 1, 2)
    assert harness.ledger.nonce_counter == 3
    assert harness.ledger.get_stake(1).asset == TokenAsset("USDX")
    assert harness.ledger.get_stake(1).owner == "bob"
    assert harness.custody.native_balance("stake-ledger") == 107
    assert harness.tokens["USDX"].balance_of("stake-ledger") == 50
    assert [e.nonce for e in harness.ledger.query_events(kind=EventKind.STAKED)] == [0, 1, 2]


def test_deposit_records_height_and_synthesizer(harness) -> None:
    harness.custody.fund_native("alice", 5)
    nonce = harness.ledger.deposit_native(harness.ctx("alice", value=5, height=42), "synth-9")
    stake = harness.ledger.get_stake(nonce)
    assert (stake.deposit_height, stake.synthesizer_id, stake.amount, stake.asset) == (42, "synth-9", 5, NATIVE)


def test_release_with_slash_pays_owner_and_sink(harness) -> None:
    nonce = harness.deposit_native("alice", 100)
    sig = harness.sign_release(nonce, 30)

    payout = harness.ledger.release_native(harness.ctx("alice"), nonce, 30, sig)

    assert payout == 70
    assert harness.custody.native_balance("alice") == 70
    assert harness.custody.native_balance("treasury") == 30
    assert harness.custody.native_balance("stake-ledger") == 0
    (event,) = harness.ledger.query_events(kind=EventKind.UNSTAKED)
    assert (event.owner, event.asset, event.amount, event.nonce) == ("alice", NATIVE, 70, nonce)
    assert harness.ledger.total_staked(NATIVE) == 0

    with pytest.raises(StakeNotFound):
        harness.ledger.release_native(harness.ctx("alice"), nonce, 30, sig)


def test_full_token_release_pays_exact_amount(harness) -> None:
    nonce = harness.deposit_token("alice", "USDX", 50)
    payout = harness.ledger.release_token(harness.ctx("alice"), "USDX", nonce, 0, harness.sign_release(nonce))
    assert payout == 50
    assert harness.tokens["USDX"].balance_of("alice") == 50
    assert harness.tokens["USDX"].balance_of("treasury") == 0
    assert harness.ledger.get_stake(nonce).released is True


def test_excessive_slash_changes_nothing(harness) -> None:
    nonce = harness.deposit_native("alice", 100)
    before = harness.ledger.state
    events_before = len(harness.ledger.events)

    with pytest.raises(ExcessiveSlash):
        harness.ledger.release(harness.ctx("alice"), nonce, 101, harness.sign_release(nonce, 101))

    assert harness.ledger.state is before
    assert len(harness.ledger.events) == events_before
    assert harness.custody.native_balance("stake-ledger") == 100


def test_signature_from_wrong_key_or_wrong_caller_is_unauthorized(harness, other_registry_keys) -> None:
    nonce = harness.deposit_native("alice", 100)

    with pytest.raises(Unauthorized):
        harness.ledger.release(harness.ctx("alice"), nonce, 0, harness.sign_release(nonce, keys=other_registry_keys))
    # A valid registry signature does not let anyone but the owner release.
    with pytest.raises(Unauthorized):
        harness.ledger.release(harness.ctx("bob"), nonce, 0, harness.sign_release(nonce))

    assert harness.ledger.get_stake(nonce).live


def test_entry_point_asset_mismatch_is_stake_not_found(harness) -> None:
    native = harness.deposit_native("alice", 10)
    token = harness.deposit_token("alice", "USDX", 10)

    with pytest.raises(StakeNotFound):
        harness.ledger.release_token(harness.ctx("alice"), "USDX", native, 0, harness.sign_release(native))
    with pytest.raises(StakeNotFound):
        harness.ledger.release_native(harness.ctx("alice"), token, 0, harness.sign_release(token))
    with pytest.raises(StakeNotFound):
        harness.ledger.release_token(harness.ctx("alice"), "QUIET", token, 0, harness.sign_release(token))
    with pytest.raises(StakeNotFound):
        harness.ledger.release(harness.ctx("alice"), 99, 0, harness.sign_release(native))


def test_deposit_failures_leave_no_stake(harness) -> None:
    with pytest.raises(InvalidAmount):
        harness.ledger.deposit_native(harness.ctx("alice", value=0), "job")
    with pytest.raises(InsufficientBalance):
        harness.ledger.deposit_native(harness.ctx("alice", value=10), "job")

    token = harness.tokens["USDX"]
    token.mint("alice", 10)
    with pytest.raises(AllowanceNotGranted):
        harness.ledger.deposit_token(harness.ctx("alice"), "USDX", 10, "job")
    token.approve("alice", "stake-ledger", 100)
    with pytest.raises(InsufficientBalance):
        harness.ledger.deposit_token(harness.ctx("alice"), "USDX", 11, "job")

    assert harness.ledger.nonce_counter == 0
    assert len(harness.ledger.events) == 0
    assert token.balance_of("alice") == 10


def test_non_payable_entry_points_reject_value(harness) -> None:
    with pytest.raises(DirectTransferRejected):
        harness.ledger.receive(harness.ctx("alice", value=5))
    harness.custody.fund_native("alice", 5)
    with pytest.raises(DirectTransferRejected):
        harness.ledger.deposit_token(harness.ctx("alice", value=5), "USDX", 1, "job")
    assert harness.custody.native_balance("alice") == 5


def test_pause_gates_public_surface_only(harness, other_registry_keys) -> None:
    native = harness.deposit_native("alice", 100)
    token = harness.deposit_token("bob", "USDX", 50)
    release_sig = harness.sign_release(native)

    harness.ledger.pause(harness.ctx("gov"), harness.prove(GovernanceAction.PAUSE))
    assert harness.ledger.paused

    with pytest.raises(Paused):
        harness.deposit_native("carol", 1)
    with pytest.raises(Paused):
        harness.deposit_token("carol", "USDX", 1)
    with pytest.raises(Paused):
        harness.ledger.release_native(harness.ctx("alice"), native, 0, release_sig)

    # Governance keeps working while paused.
    recovered = harness.ledger.force_recover(
        harness.ctx("gov"),
        token,
        harness.prove(GovernanceAction.RECOVERY_UNSTAKE_TOKEN, {"nonce": token, "token_id": "USDX"}),
    )
    assert recovered == 50
    harness.ledger.rotate_registry_key(
        harness.ctx("gov"),
        other_registry_keys.public_key,
        harness.prove(GovernanceAction.ROTATE_REGISTRY_KEY, {"new_registry_key": other_registry_keys.public_key}),
    )
    harness.ledger.unpause(harness.ctx("gov"), harness.prove(GovernanceAction.UNPAUSE))

    assert not harness.ledger.paused
    assert harness.ledger.governance_sequence == 4
    assert [e.paused for e in harness.ledger.query_events(kind=EventKind.PAUSE_CHANGED)] == [True, False]
    assert harness.deposit_native("carol", 1) == 2


def test_forced_token_recovery_then_release_fails(harness) -> None:
    harness.deposit_native("alice", 100)
    nonce = harness.deposit_token("bob", "USDX", 50)
    assert nonce == 1
    release_sig = harness.sign_release(nonce)

    proof = harness.prove(GovernanceAction.RECOVERY_UNSTAKE_TOKEN, {"nonce": 1, "token_id": "USDX"})
    assert harness.ledger.force_recover_token(harness.ctx("operator"), "USDX", 1, proof) == 50

    assert harness.tokens["USDX"].balance_of("bob") == 50
    (event,) = harness.ledger.query_events(kind=EventKind.RECOVERED)
    assert (event.owner, event.amount, event.nonce) == ("bob", 50, 1)
    with pytest.raises(StakeNotFound):
        harness.ledger.release(harness.ctx("bob"), 1, 0, release_sig)


def test_registry_key_rotation(harness, other_registry_keys) -> None:
    nonce = harness.deposit_native("alice", 100)
    old_sig = harness.sign_release(nonce)
    old_key = harness.ledger.registry_public_key

    harness.ledger.rotate_registry_key(
        harness.ctx("gov"),
        other_registry_keys.public_key,
        harness.prove(GovernanceAction.ROTATE_REGISTRY_KEY, {"new_registry_key": other_registry_keys.public_key}),
    )

    assert harness.ledger.registry_public_key == other_registry_keys.public_key
    (event,) = harness.ledger.query_events(kind=EventKind.REGISTRY_KEY_ROTATED)
    assert (event.old_key, event.new_key, event.sequence) == (old_key, other_registry_keys.public_key, 0)

    with pytest.raises(Unauthorized):
        harness.ledger.release(harness.ctx("alice"), nonce, 0, old_sig)
    new_sig = harness.sign_release(nonce, keys=other_registry_keys)
    assert harness.ledger.release(harness.ctx("alice"), nonce, 0, new_sig) == 100


def test_governance_proofs_are_single_use(harness) -> None:
    pause_proof = harness.prove(GovernanceAction.PAUSE)
    harness.ledger.pause(harness.ctx("gov"), pause_proof)
    harness.ledger.unpause(harness.ctx("gov"), harness.prove(GovernanceAction.UNPAUSE))

    with pytest.raises(InvalidGovernanceProof):
        harness.ledger.pause(harness.ctx("gov"), pause_proof)
    assert not harness.ledger.paused
    assert harness.ledger.governance_sequence == 2


def test_reentrant_release_from_receive_hook_is_rejected(harness) -> None:
    nonce = harness.deposit_native("alice", 100)
    sig = harness.sign_release(nonce)
    reentry_errors = []

    def hook(account, asset, amount):
        try:
            harness.ledger.release_native(harness.ctx("alice"), nonce, 0, sig)
        except StakeNotFound as exc:
            reentry_errors.append(exc)
        return True

    harness.custody.set_receive_hook("alice", hook)
    assert harness.ledger.release_native(harness.ctx("alice"), nonce, 0, sig) == 100

    assert len(reentry_errors) == 1
    assert harness.custody.native_balance("alice") == 100
    assert len(harness.ledger.query_events(kind=EventKind.UNSTAKED)) == 1


def test_failing_receiver_rolls_back_the_whole_release(harness) -> None:
    nonce = harness.deposit_native("alice", 100)
    sig = harness.sign_release(nonce, 30)
    harness.custody.set_receive_hook("alice", lambda account, asset, amount: False)

    with pytest.raises(TransferFailed):
        harness.ledger.release_native(harness.ctx("alice"), nonce, 30, sig)

    assert harness.ledger.get_stake(nonce).live
    assert harness.custody.native_balance("stake-ledger") == 100
    assert harness.custody.native_balance("treasury") == 0
    assert harness.custody.native_balance("alice") == 0
    assert harness.ledger.query_events(kind=EventKind.UNSTAKED) == []

    harness.custody.set_receive_hook("alice", None)
    assert harness.ledger.release_native(harness.ctx("alice"), nonce, 30, sig) == 70


class _StuckToken(InMemoryToken):
    """Accepts deposits but refuses to pay out."""

    def transfer(self, sender, to, amount):
        return False


def test_token_that_refuses_payout_rolls_back(harness_factory) -> None:
    h = harness_factory(tokens=[_StuckToken("STUCK")])
    nonce = h.deposit_token("alice", "STUCK", 20)

    with pytest.raises(TransferFailed):
        h.ledger.release_token(h.ctx("alice"), "STUCK", nonce, 0, h.sign_release(nonce))

    assert h.ledger.get_stake(nonce).live
    assert h.tokens["STUCK"].balance_of("stake-ledger") == 20


def test_no_return_value_token_round_trip(harness) -> None:
    nonce = harness.deposit_token("alice", "QUIET", 40)
    assert harness.ledger.release_token(harness.ctx("alice"), "QUIET", nonce, 10, harness.sign_release(nonce, 10)) == 30
    assert harness.tokens["QUIET"].balance_of("alice") == 30
    assert harness.tokens["QUIET"].balance_of("treasury") == 10


def test_queries(harness) -> None:
    harness.deposit_native("alice", 10)
    harness.deposit_token("bob", "USDX", 20)
    harness.deposit_token("alice", "USDX", 30)
    harness.deposit_native("alice", 40)
    harness.ledger.release(harness.ctx("alice"), 3, 0, harness.sign_release(3))

    assert [s.nonce for s in harness.ledger.stakes_of("alice")] == [0, 2, 3]
    assert harness.ledger.total_staked(NATIVE) == 10
    assert harness.ledger.total_staked(TokenAsset("USDX")) == 50
    assert [e.kind for e in harness.ledger.query_events(owner="alice")] == [
        EventKind.STAKED,
        EventKind.STAKED,
        EventKind.STAKED,
        EventKind.UNSTAKED,
    ]
    assert [e.kind for e in harness.ledger.query_events(nonce=3)] == [EventKind.STAKED, EventKind.UNSTAKED]
