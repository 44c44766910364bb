"""
Off-ledger signers for the registry authority and the governance committee
"""

from .registry_signer import (
    RegistryKeypair,
    generate_registry_keypair,
    registry_keypair_from_seed,
    sign_release,
)
from .governance_signer import (
    CommitteeMember,
    GovernanceCommittee,
    aggregate_committee_key,
    committee_member_from_seed,
)

__all__ = [
    "RegistryKeypair",
    "generate_registry_keypair",
    "registry_keypair_from_seed",
    "sign_release",
    "CommitteeMember",
    "GovernanceCommittee",
    "aggregate_committee_key",
    "committee_member_from_seed",
]
