"""
Versioned ledger state.

`LedgerState` is the entire durable state of a stake ledger:

- `nonce_counter`: next nonce to allocate (nonces are 0..nonce_counter-1)
- `stakes`: nonce -> Stake (released stakes stay as tombstones)
- `registry_public_key`: secp256k1 key that authorizes releases
- `governance_public_key`: BLS key that authorizes administrative actions
- `governance_sequence`: counter bound into governance messages (single-use proofs)
- `paused`: pause gate flag

Schema history:

- v1: legacy deletion schema. Released stakes were removed from the table, entries
  had no `released` flag, and there was no governance sequence.
- v2: tombstone schema (current).

`state_from_dict()` accepts any known version and runs the migration chain.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping

from .canonical import canonical_hex_fixed_allow_0x, is_strict_int
from .stakes import Stake, stake_from_dict


SCHEMA_VERSION = 2

REGISTRY_KEY_NBYTES = 64
GOVERNANCE_KEY_NBYTES = 48


def _frozen_stakes(stakes: Mapping[int, Stake]) -> Mapping[int, Stake]:
    return MappingProxyType(dict(stakes))


@dataclass(frozen=True)
class LedgerState:
    registry_public_key: str
    governance_public_key: str
    nonce_counter: int = 0
    stakes: Mapping[int, Stake] = field(default_factory=dict)
    governance_sequence: int = 0
    paused: bool = False
    schema_version: int = SCHEMA_VERSION

    def __post_init__(self) -> None:
        if self.schema_version != SCHEMA_VERSION:
            raise ValueError(f"LedgerState only represents schema v{SCHEMA_VERSION}")
        object.__setattr__(
            self,
            "registry_public_key",
            canonical_hex_fixed_allow_0x(
                self.registry_public_key, nbytes=REGISTRY_KEY_NBYTES, name="registry_public_key"
            ),
        )
        object.__setattr__(
            self,
            "governance_public_key",
            canonical_hex_fixed_allow_0x(
                self.governance_public_key, nbytes=GOVERNANCE_KEY_NBYTES, name="governance_public_key"
            ),
        )
        if not is_strict_int(self.nonce_counter) or self.nonce_counter < 0:
            raise ValueError("nonce_counter must be a non-negative int")
        if not is_strict_int(self.governance_sequence) or self.governance_sequence < 0:
            raise ValueError("governance_sequence must be a non-negative int")
        if not isinstance(self.paused, bool):
            raise TypeError("paused must be a bool")
        if not isinstance(self.stakes, Mapping):
            raise TypeError("stakes must be a mapping")
        for nonce, stake in self.stakes.items():
            if not isinstance(stake, Stake):
                raise TypeError(f"stakes[{nonce!r}] must be a Stake")
            if stake.nonce != nonce:
                raise ValueError(f"stake nonce mismatch: key={nonce} stake.nonce={stake.nonce}")
            if nonce >= self.nonce_counter:
                raise ValueError(f"stake nonce {nonce} outside allocated range 0..{self.nonce_counter - 1}")
        object.__setattr__(self, "stakes", _frozen_stakes(self.stakes))

    def get_stake(self, nonce: int) -> Stake | None:
        if not is_strict_int(nonce):
            return None
        return self.stakes.get(nonce)

    def with_new_stake(self, stake: Stake) -> "LedgerState":
        """Append `stake` at the next nonce."""
        if stake.nonce != self.nonce_counter:
            raise ValueError(f"stake must use the next nonce {self.nonce_counter}, got {stake.nonce}")
        stakes = dict(self.stakes)
        stakes[stake.nonce] = stake
        return replace(self, stakes=stakes, nonce_counter=self.nonce_counter + 1)

    def with_released(self, nonce: int) -> "LedgerState":
        stake = self.stakes[nonce]
        stakes = dict(self.stakes)
        stakes[nonce] = stake.mark_released()
        return replace(self, stakes=stakes)

    def with_governance_step(self, **changes: Any) -> "LedgerState":
        """Apply governance-owned changes and advance the governance sequence."""
        return replace(self, governance_sequence=self.governance_sequence + 1, **changes)


def initial_state(*, registry_public_key: str, governance_public_key: str) -> LedgerState:
    return LedgerState(registry_public_key=registry_public_key, governance_public_key=governance_public_key)


def state_to_dict(state: LedgerState) -> Dict[str, Any]:
    """Serialize to the current schema (stake entries sorted by nonce)."""
    return {
        "schema_version": SCHEMA_VERSION,
        "nonce_counter": int(state.nonce_counter),
        "stakes": [state.stakes[n].to_dict() for n in sorted(state.stakes)],
        "registry_public_key": state.registry_public_key,
        "governance_public_key": state.governance_public_key,
        "governance_sequence": int(state.governance_sequence),
        "paused": bool(state.paused),
    }


def migrate_v1_to_v2(doc: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Convert a v1 (deletion schema) document to v2.

    Every entry present in v1 is live. Nonces below the counter that have no
    entry were released before the migration; their records were already
    deleted, so they stay absent and read as "no such stake".
    """
    if doc.get("schema_version") != 1:
        raise ValueError("migrate_v1_to_v2 expects schema_version 1")
    raw_stakes = doc.get("stakes")
    if not isinstance(raw_stakes, list):
        raise TypeError("v1 stakes must be a list")
    stakes = []
    for entry in raw_stakes:
        if not isinstance(entry, Mapping):
            raise TypeError("v1 stake entry must be an object")
        if "released" in entry:
            raise ValueError("v1 stake entries do not carry a released flag")
        migrated = dict(entry)
        migrated["released"] = False
        stakes.append(migrated)
    return {
        "schema_version": 2,
        "nonce_counter": doc["nonce_counter"],
        "stakes": stakes,
        "registry_public_key": doc["registry_public_key"],
        "governance_public_key": doc["governance_public_key"],
        "governance_sequence": 0,
        "paused": doc.get("paused", False),
    }


_MIGRATIONS: Dict[int, Callable[[Mapping[str, Any]], Dict[str, Any]]] = {
    1: migrate_v1_to_v2,
}


def upgrade_document(doc: Mapping[str, Any]) -> Dict[str, Any]:
    """Run the migration chain until `doc` is at SCHEMA_VERSION."""
    if not isinstance(doc, Mapping):
        raise TypeError("state document must be an object")
    current: Dict[str, Any] = dict(doc)
    while True:
        version = current.get("schema_version")
        if not is_strict_int(version):
            raise TypeError("schema_version must be an int")
        if version == SCHEMA_VERSION:
            return current
        step = _MIGRATIONS.get(version)
        if step is None:
            raise ValueError(f"unsupported schema_version: {version}")
        current = step(current)


_STATE_KEYS = frozenset(
    {
        "schema_version",
        "nonce_counter",
        "stakes",
        "registry_public_key",
        "governance_public_key",
        "governance_sequence",
        "paused",
    }
)


def state_from_dict(doc: Mapping[str, Any]) -> LedgerState:
    """Deserialize (and migrate if needed). Fail-closed on unknown or duplicate entries."""
    d = upgrade_document(doc)
    extra = set(d.keys()) - _STATE_KEYS
    if extra:
        raise ValueError(f"unknown state fields: {sorted(extra)}")
    raw_stakes = d["stakes"]
    if not isinstance(raw_stakes, list):
        raise TypeError("stakes must be a list")
    stakes: Dict[int, Stake] = {}
    for entry in raw_stakes:
        stake = stake_from_dict(entry)
        if stake.nonce in stakes:
            raise ValueError(f"duplicate stake nonce: {stake.nonce}")
        stakes[stake.nonce] = stake
    return LedgerState(
        registry_public_key=d["registry_public_key"],
        governance_public_key=d["governance_public_key"],
        nonce_counter=d["nonce_counter"],
        stakes=stakes,
        governance_sequence=d["governance_sequence"],
        paused=d["paused"],
    )
