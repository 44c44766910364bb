#!/usr/bin/env python3

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from stakeledger.agents.governance_signer import GovernanceCommittee
from stakeledger.agents.registry_signer import generate_registry_keypair, registry_keypair_from_seed
from stakeledger.integration.snapshot import SnapshotIntegrityError, load_snapshot, save_snapshot, snapshot_from_state
from stakeledger.state.ledger_state import LedgerState


def _keygen_registry(seed_hex: str | None) -> Dict[str, Any]:
    if seed_hex is None:
        keypair = generate_registry_keypair()
    else:
        keypair = registry_keypair_from_seed(bytes.fromhex(seed_hex.removeprefix("0x")))
    return {"private_key": "0x" + keypair.private_key.hex(), "public_key": keypair.public_key}


def _keygen_governance(seeds: List[str]) -> Dict[str, Any]:
    committee = GovernanceCommittee.from_seeds([s.encode("utf-8") for s in seeds])
    return {
        "governance_public_key": committee.public_key,
        "members": [
            {
                "secret_key": hex(m.secret_key),
                "public_key": "0x" + m.public_key.hex(),
                "pop": "0x" + m.pop.hex(),
            }
            for m in committee.members
        ],
    }


def summarize_state(state: LedgerState) -> Dict[str, Any]:
    live: Dict[str, int] = {}
    released = 0
    for stake in state.stakes.values():
        if stake.live:
            live[str(stake.asset)] = live.get(str(stake.asset), 0) + stake.amount
        else:
            released += 1
    return {
        "schema_version": state.schema_version,
        "commitment": snapshot_from_state(state).commitment_hex(),
        "nonce_counter": state.nonce_counter,
        "stakes": len(state.stakes),
        "released": released,
        "live_totals": dict(sorted(live.items())),
        "paused": state.paused,
        "governance_sequence": state.governance_sequence,
        "registry_public_key": state.registry_public_key,
        "governance_public_key": state.governance_public_key,
    }


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Stake ledger administration: keys and snapshots.")
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable INFO logging")
    sub = ap.add_subparsers(dest="cmd", required=True)

    kr = sub.add_parser("keygen-registry", help="Generate a secp256k1 registry keypair.")
    kr.add_argument("--seed", default=None, help="Hex seed for a deterministic key (testing only)")

    kg = sub.add_parser("keygen-governance", help="Generate a BLS governance committee from member seeds.")
    kg.add_argument("seeds", nargs="+", help="One seed string per committee member")

    ins = sub.add_parser("inspect", help="Verify a snapshot file and print a summary.")
    ins.add_argument("snapshot", type=Path)

    mig = sub.add_parser("migrate", help="Load a snapshot of any schema version and write it at the current version.")
    mig.add_argument("src", type=Path)
    mig.add_argument("dst", type=Path)

    args = ap.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        if args.cmd == "keygen-registry":
            out = _keygen_registry(args.seed)
        elif args.cmd == "keygen-governance":
            out = _keygen_governance(args.seeds)
        elif args.cmd == "inspect":
            out = summarize_state(load_snapshot(args.snapshot))
        else:
            state = load_snapshot(args.src)
            out = {"commitment": save_snapshot(args.dst, state), "path": str(args.dst)}
    except (OSError, json.JSONDecodeError, SnapshotIntegrityError, KeyError, TypeError, ValueError) as exc:
        print(f"ledger_admin error: {exc}", file=sys.stderr)
        return 2

    print(json.dumps(out, sort_keys=True, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
