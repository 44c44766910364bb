# [TESTER] v1

from __future__ import annotations

import pytest

from stakeledger.core.events import EventKind, EventLog, PauseChanged, recovered, staked, unstaked
from stakeledger.state.assets import NATIVE, TokenAsset


def test_query_filters_compose() -> None:
    log = EventLog()
    log.extend(
        [
            staked("alice", NATIVE, 100, "job", 0),
            staked("bob", TokenAsset("USDX"), 50, "job", 1),
            PauseChanged(paused=True, sequence=0),
            unstaked("alice", NATIVE, 70, "job", 0),
            recovered("bob", TokenAsset("USDX"), 50, "job", 1),
        ]
    )

    assert len(log) == 5
    assert [e.kind for e in log.query(owner="alice")] == [EventKind.STAKED, EventKind.UNSTAKED]
    assert [e.owner for e in log.query(kind=EventKind.STAKED)] == ["alice", "bob"]
    assert [e.kind for e in log.query(owner="bob", nonce=1)] == [EventKind.STAKED, EventKind.RECOVERED]
    assert log.query(kind=EventKind.PAUSE_CHANGED) == [PauseChanged(paused=True, sequence=0)]
    assert log[3].amount == 70


def test_truncate_only_drops_the_tail() -> None:
    log = EventLog()
    log.append(staked("alice", NATIVE, 1, "a", 0))
    log.append(staked("alice", NATIVE, 2, "b", 1))
    log.truncate(1)
    assert [e.nonce for e in log] == [0]
    with pytest.raises(ValueError):
        log.truncate(2)


def test_event_dicts_name_the_event() -> None:
    assert unstaked("alice", TokenAsset("USDX"), 5, "job", 3).to_dict() == {
        "event": "Unstaked",
        "owner": "alice",
        "asset": {"kind": "token", "token_id": "USDX"},
        "amount": 5,
        "synthesizer_id": "job",
        "nonce": 3,
    }
    assert PauseChanged(paused=False, sequence=4).to_dict() == {"event": "PauseChanged", "paused": False, "sequence": 4}
