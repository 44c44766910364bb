"""
Governance authorization (threshold/aggregate BLS signatures).

Administrative actions are authorized by a BLS12-381 signature under the
proof-of-possession ciphersuite, checked against the ledger's governance key.
The governance key may be a committee key (aggregate of member keys); the
matching proof is then the aggregate of the members' signatures over the same
message. How the committee reaches that signature is outside this module.

Message:

    SHA256( domain_sep("governance:<chain_id>:<ledger_id>", v1)
            || canonical_json({action, sequence, params}) )

Each action has its own literal tag, and `sequence` is the ledger's current
governance sequence, so a proof authorizes exactly one action once.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from typing import Any, Dict, Mapping

from py_ecc.bls import G2ProofOfPossession

from ..state.canonical import canonical_hex_fixed_allow_0x, domain_digest, hex_to_bytes_fixed, is_strict_int
from ..state.ledger_state import GOVERNANCE_KEY_NBYTES
from .errors import InvalidKey


PROOF_NBYTES = 96


@unique
class GovernanceAction(Enum):
    PAUSE = "Pause"
    UNPAUSE = "Unpause"
    ROTATE_REGISTRY_KEY = "RotateRegistryKey"
    RECOVERY_UNSTAKE = "RecoveryUnstake"
    RECOVERY_UNSTAKE_TOKEN = "RecoveryUnstakeToken"


_REQUIRED_PARAMS: Dict[GovernanceAction, frozenset] = {
    GovernanceAction.PAUSE: frozenset(),
    GovernanceAction.UNPAUSE: frozenset(),
    GovernanceAction.ROTATE_REGISTRY_KEY: frozenset({"new_registry_key"}),
    GovernanceAction.RECOVERY_UNSTAKE: frozenset({"nonce"}),
    GovernanceAction.RECOVERY_UNSTAKE_TOKEN: frozenset({"nonce", "token_id"}),
}


def validate_governance_key(key: Any) -> str:
    """Canonicalize a governance key; raises InvalidKey unless it is a valid G1 public key."""
    try:
        canonical = canonical_hex_fixed_allow_0x(key, nbytes=GOVERNANCE_KEY_NBYTES, name="governance key")
    except (TypeError, ValueError) as exc:
        raise InvalidKey(str(exc)) from exc
    if not G2ProofOfPossession.KeyValidate(bytes.fromhex(canonical[2:])):
        raise InvalidKey("governance key failed BLS key validation")
    return canonical


@dataclass(frozen=True)
class GovernanceVerifier:
    chain_id: str
    ledger_id: str

    @property
    def domain_label(self) -> str:
        return f"governance:{self.chain_id}:{self.ledger_id}"

    def action_payload(
        self, action: GovernanceAction, *, sequence: int, params: Mapping[str, Any]
    ) -> Dict[str, Any]:
        if not isinstance(action, GovernanceAction):
            raise TypeError("action must be a GovernanceAction")
        if not is_strict_int(sequence) or sequence < 0:
            raise ValueError("sequence must be a non-negative int")
        if set(params.keys()) != _REQUIRED_PARAMS[action]:
            raise ValueError(f"{action.value} params must be exactly {sorted(_REQUIRED_PARAMS[action])}")
        return {"action": action.value, "sequence": int(sequence), "params": dict(params)}

    def action_message(self, action: GovernanceAction, *, sequence: int, params: Mapping[str, Any]) -> bytes:
        """The 32-byte message a governance proof signs."""
        return domain_digest(self.domain_label, self.action_payload(action, sequence=sequence, params=params))

    def verify(
        self,
        *,
        governance_public_key: str,
        action: GovernanceAction,
        sequence: int,
        params: Mapping[str, Any],
        proof: Any,
    ) -> bool:
        try:
            pk = hex_to_bytes_fixed(governance_public_key, nbytes=GOVERNANCE_KEY_NBYTES, name="governance key")
            sig = hex_to_bytes_fixed(proof, nbytes=PROOF_NBYTES, name="governance proof")
        except (TypeError, ValueError):
            return False
        message = self.action_message(action, sequence=sequence, params=params)
        return bool(G2ProofOfPossession.Verify(pk, message, sig))
