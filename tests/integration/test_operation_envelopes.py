# [TESTER] v1

from __future__ import annotations

import pytest

from stakeledger.integration.operations import (
    DepositTokenOp,
    ForceRecoverOp,
    OperationParseError,
    ReleaseOp,
    parse_operation,
)
from stakeledger.state.assets import NATIVE, TokenAsset


def test_parse_typed_operations() -> None:
    assert parse_operation({"op": "deposit_token", "token_id": "USDX", "amount": 5, "synthesizer_id": "j"}) == DepositTokenOp(
        token_id="USDX", amount=5, synthesizer_id="j"
    )
    assert parse_operation(
        {"op": "release", "nonce": 0, "slash_amount": 1, "signature": "0x00", "asset": {"kind": "native"}}
    ) == ReleaseOp(nonce=0, slash_amount=1, signature="0x00", expected_asset=NATIVE)
    assert parse_operation(
        {"op": "force_recover", "nonce": 2, "proof": "0x", "asset": {"kind": "token", "token_id": "USDX"}}
    ) == ForceRecoverOp(nonce=2, proof="0x", expected_asset=TokenAsset("USDX"))


@pytest.mark.parametrize(
    "obj",
    [
        "deposit_native",
        {"synthesizer_id": "j"},
        {"op": "mint", "amount": 1},
        {"op": "deposit_native", "synthesizer_id": "j", "value": 5},
        {"op": "deposit_token", "token_id": "USDX", "amount": "5", "synthesizer_id": "j"},
        {"op": "release", "nonce": True, "slash_amount": 0, "signature": "0x"},
        {"op": "release", "nonce": 0, "slash_amount": 0, "signature": "0x", "asset": {"kind": "gold"}},
        {"op": "pause"},
    ],
)
def test_parse_rejects_malformed_operations(obj) -> None:
    with pytest.raises(OperationParseError):
        parse_operation(obj)


def test_submit_reports_results_instead_of_raising(harness) -> None:
    harness.custody.fund_native("alice", 100)
    ok = harness.ledger.submit(harness.ctx("alice", value=100), {"op": "deposit_native", "synthesizer_id": "job"})
    assert ok.ok and ok.value == 0 and ok.error is None

    excessive = harness.ledger.submit(
        harness.ctx("alice"),
        {"op": "release", "nonce": 0, "slash_amount": 101, "signature": harness.sign_release(0, 101)},
    )
    assert (excessive.ok, excessive.code) == (False, "excessive_slash")

    wrong_kind = harness.ledger.submit(
        harness.ctx("alice"),
        {
            "op": "release",
            "nonce": 0,
            "slash_amount": 0,
            "signature": harness.sign_release(0),
            "asset": {"kind": "token", "token_id": "USDX"},
        },
    )
    assert wrong_kind.code == "stake_not_found"

    bad = harness.ledger.submit(harness.ctx("alice"), {"op": "teleport"})
    assert (bad.ok, bad.code) == (False, "invalid_operation")

    released = harness.ledger.submit(
        harness.ctx("alice"),
        {"op": "release", "nonce": 0, "slash_amount": 25, "signature": harness.sign_release(0, 25)},
    )
    assert (released.ok, released.value) == (True, 75)


def test_submit_token_deposit_and_bad_proof(harness) -> None:
    token = harness.tokens["USDX"]
    token.mint("bob", 10)
    token.approve("bob", "stake-ledger", 10)

    res = harness.ledger.submit(
        harness.ctx("bob"), {"op": "deposit_token", "token_id": "USDX", "amount": 10, "synthesizer_id": "job"}
    )
    assert res.ok and res.value == 0

    res = harness.ledger.submit(harness.ctx("gov"), {"op": "pause", "proof": "0x" + "00" * 96})
    assert (res.ok, res.code) == (False, "invalid_governance_proof")
    assert not harness.ledger.paused

    res = harness.ledger.submit(harness.ctx("bob"), {"op": "deposit_token", "token_id": " USDX", "amount": 1, "synthesizer_id": "j"})
    assert (res.ok, res.code) == (False, "invalid_operation")
