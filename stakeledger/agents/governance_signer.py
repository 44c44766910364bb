"""
Governance committee signing (BLS12-381, proof-of-possession ciphersuite).

A committee of N members shares one governance key: the aggregate of the
members' public keys, accepted only if every member's proof of possession
verifies (this blocks rogue-key attacks on the aggregate). A governance proof
is the aggregate of all members' signatures over the action message.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, List, Mapping, Sequence

from py_ecc.bls import G2ProofOfPossession

from ..core.governance import GovernanceAction, GovernanceVerifier
from ..state.canonical import domain_sep_bytes


@dataclass(frozen=True)
class CommitteeMember:
    secret_key: int
    public_key: bytes
    pop: bytes

    def __repr__(self) -> str:
        return f"CommitteeMember(public_key=0x{self.public_key.hex()})"


def committee_member_from_seed(seed: bytes) -> CommitteeMember:
    # KeyGen requires at least 32 bytes of input keying material.
    ikm = hashlib.sha256(domain_sep_bytes("governance_keygen") + bytes(seed)).digest()
    sk = G2ProofOfPossession.KeyGen(ikm)
    return CommitteeMember(
        secret_key=sk,
        public_key=G2ProofOfPossession.SkToPk(sk),
        pop=G2ProofOfPossession.PopProve(sk),
    )


def aggregate_committee_key(public_keys: Sequence[bytes], pops: Sequence[bytes]) -> str:
    """
    Aggregate member keys into a governance key.

    Raises:
        ValueError: If the committee is empty or a proof of possession fails
    """
    if not public_keys:
        raise ValueError("committee must have at least one member")
    if len(public_keys) != len(pops):
        raise ValueError("one proof of possession per member key is required")
    for i, (pk, pop) in enumerate(zip(public_keys, pops)):
        if not G2ProofOfPossession.PopVerify(pk, pop):
            raise ValueError(f"proof of possession failed for member {i}")
    return "0x" + G2ProofOfPossession._AggregatePKs(list(public_keys)).hex()


def sign_action(
    verifier: GovernanceVerifier,
    member: CommitteeMember,
    action: GovernanceAction,
    *,
    sequence: int,
    params: Mapping[str, Any],
) -> bytes:
    message = verifier.action_message(action, sequence=sequence, params=params)
    return G2ProofOfPossession.Sign(member.secret_key, message)


def aggregate_proof(signatures: Sequence[bytes]) -> str:
    if not signatures:
        raise ValueError("at least one signature is required")
    return "0x" + G2ProofOfPossession.Aggregate(list(signatures)).hex()


class GovernanceCommittee:
    """All-member committee used by governance tooling and tests."""

    def __init__(self, members: Sequence[CommitteeMember]):
        self.members: List[CommitteeMember] = list(members)
        self.public_key = aggregate_committee_key(
            [m.public_key for m in self.members], [m.pop for m in self.members]
        )

    @classmethod
    def from_seeds(cls, seeds: Sequence[bytes]) -> "GovernanceCommittee":
        return cls([committee_member_from_seed(seed) for seed in seeds])

    def prove(
        self,
        verifier: GovernanceVerifier,
        action: GovernanceAction,
        *,
        sequence: int,
        params: Mapping[str, Any] | None = None,
    ) -> str:
        """Aggregate governance proof for `action` at `sequence`."""
        params = {} if params is None else params
        return aggregate_proof(
            [sign_action(verifier, m, action, sequence=sequence, params=params) for m in self.members]
        )
