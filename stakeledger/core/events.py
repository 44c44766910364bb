"""Ledger events and the append-only event log.

Stake events carry `(owner, asset, amount, synthesizer_id, nonce)`; for
`Unstaked` the amount is the payout actually sent to the owner. Governance
events record pause flips and registry key rotations with the governance
sequence that authorized them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from typing import Any, Dict, Iterator, List, Optional, Union

from ..state.assets import Asset


@unique
class EventKind(Enum):
    STAKED = "Staked"
    UNSTAKED = "Unstaked"
    RECOVERED = "Recovered"
    PAUSE_CHANGED = "PauseChanged"
    REGISTRY_KEY_ROTATED = "RegistryKeyRotated"


@dataclass(frozen=True)
class StakeEvent:
    kind: EventKind
    owner: str
    asset: Asset
    amount: int
    synthesizer_id: str
    nonce: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.kind.value,
            "owner": self.owner,
            "asset": self.asset.to_dict(),
            "amount": int(self.amount),
            "synthesizer_id": self.synthesizer_id,
            "nonce": int(self.nonce),
        }


@dataclass(frozen=True)
class PauseChanged:
    paused: bool
    sequence: int
    kind: EventKind = EventKind.PAUSE_CHANGED

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.kind.value, "paused": self.paused, "sequence": int(self.sequence)}


@dataclass(frozen=True)
class RegistryKeyRotated:
    old_key: str
    new_key: str
    sequence: int
    kind: EventKind = EventKind.REGISTRY_KEY_ROTATED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.kind.value,
            "old_key": self.old_key,
            "new_key": self.new_key,
            "sequence": int(self.sequence),
        }


Event = Union[StakeEvent, PauseChanged, RegistryKeyRotated]


def staked(owner: str, asset: Asset, amount: int, synthesizer_id: str, nonce: int) -> StakeEvent:
    return StakeEvent(EventKind.STAKED, owner, asset, amount, synthesizer_id, nonce)


def unstaked(owner: str, asset: Asset, payout: int, synthesizer_id: str, nonce: int) -> StakeEvent:
    return StakeEvent(EventKind.UNSTAKED, owner, asset, payout, synthesizer_id, nonce)


def recovered(owner: str, asset: Asset, amount: int, synthesizer_id: str, nonce: int) -> StakeEvent:
    return StakeEvent(EventKind.RECOVERED, owner, asset, amount, synthesizer_id, nonce)


class EventLog:
    """Append-only list of events with simple filtered queries."""

    def __init__(self) -> None:
        self._events: List[Event] = []

    def append(self, event: Event) -> None:
        self._events.append(event)

    def extend(self, events) -> None:
        for event in events:
            self.append(event)

    def truncate(self, length: int) -> None:
        # Only used to discard events of a rolled-back operation.
        if length < 0 or length > len(self._events):
            raise ValueError(f"invalid event log length: {length}")
        del self._events[length:]

    def query(
        self,
        *,
        kind: Optional[EventKind] = None,
        owner: Optional[str] = None,
        nonce: Optional[int] = None,
    ) -> List[Event]:
        out: List[Event] = []
        for event in self._events:
            if kind is not None and event.kind != kind:
                continue
            if owner is not None and getattr(event, "owner", None) != owner:
                continue
            if nonce is not None and getattr(event, "nonce", None) != nonce:
                continue
            out.append(event)
        return out

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(list(self._events))

    def __getitem__(self, index: int) -> Event:
        return self._events[index]
