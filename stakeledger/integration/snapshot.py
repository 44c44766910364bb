"""
Ledger state snapshots.

Goals:
- Deterministic JSON serialization for hashing / persistence.
- Round-trippable into `LedgerState` (bit-for-bit: same state, same bytes).
- Older schema versions are migrated on load.

On disk a snapshot is `{"commitment": "0x...", "state": {...}}`; the commitment
is checked on load.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping

from ..state.canonical import canonical_json_bytes, domain_sep_bytes
from ..state.ledger_state import SCHEMA_VERSION, LedgerState, state_from_dict, state_to_dict


logger = logging.getLogger(__name__)


class SnapshotIntegrityError(ValueError):
    pass


@dataclass(frozen=True)
class LedgerSnapshot:
    """
    Deterministic, versioned snapshot of `LedgerState`.

    The commitment is *not* included inside `data` to avoid self-reference.
    """

    version: int
    data: Dict[str, Any]

    def canonical_bytes(self) -> bytes:
        return canonical_json_bytes(self.data)

    def commitment_bytes(self) -> bytes:
        payload = domain_sep_bytes("ledger_snapshot", version=self.version) + self.canonical_bytes()
        return hashlib.sha256(payload).digest()

    def commitment_hex(self) -> str:
        return "0x" + self.commitment_bytes().hex()


def snapshot_from_state(state: LedgerState) -> LedgerSnapshot:
    return LedgerSnapshot(version=SCHEMA_VERSION, data=state_to_dict(state))


def state_from_snapshot(data: Mapping[str, Any]) -> LedgerState:
    """Rebuild state from snapshot data of any supported schema version."""
    return state_from_dict(data)


def _atomic_write_text(target: Path, text: str) -> None:
    # Same directory as the target: os.replace must not cross filesystems.
    with tempfile.NamedTemporaryFile(
        mode="w", encoding="utf-8", dir=target.parent, prefix=f".{target.name}.", suffix=".tmp", delete=False
    ) as f:
        tmp = Path(f.name)
        try:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        except BaseException:
            f.close()
            tmp.unlink()
            raise
    try:
        os.replace(tmp, target)
    except BaseException:
        tmp.unlink()
        raise


def save_snapshot(path: str | Path, state: LedgerState) -> str:
    """Write the snapshot file; returns its commitment."""
    snap = snapshot_from_state(state)
    commitment = snap.commitment_hex()
    doc = {"commitment": commitment, "state": snap.data}
    _atomic_write_text(Path(path), json.dumps(doc, sort_keys=True, indent=2) + "\n")
    logger.info("saved ledger snapshot %s (nonce_counter=%d)", commitment, state.nonce_counter)
    return commitment


def load_snapshot(path: str | Path) -> LedgerState:
    """
    Read a snapshot file.

    Current-version files must match their recorded commitment. Older files are
    migrated; their recorded commitment (if any) was computed over the old
    schema and is not comparable.
    """
    doc = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(doc, Mapping) or not isinstance(doc.get("state"), Mapping):
        raise SnapshotIntegrityError("snapshot file must be an object with a 'state' object")
    data = doc["state"]
    state = state_from_snapshot(data)
    if data.get("schema_version") == SCHEMA_VERSION:
        expected = doc.get("commitment")
        actual = snapshot_from_state(state).commitment_hex()
        if expected != actual:
            raise SnapshotIntegrityError(f"snapshot commitment mismatch: file={expected} computed={actual}")
    else:
        logger.info("migrated snapshot from schema v%s", data.get("schema_version"))
    return state
