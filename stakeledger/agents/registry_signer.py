"""
Registry authority signing.

The registry authority decides off-ledger whether a stake may be released and
with what slash; this module only produces the signature the ledger checks.
"""

import hashlib
import secrets
from dataclasses import dataclass

from py_ecc.secp256k1 import secp256k1

from ..core.authorization import AuthorizationVerifier, encode_signature, point_to_key_hex
from ..state.assets import Asset
from ..state.canonical import domain_sep_bytes


@dataclass(frozen=True)
class RegistryKeypair:
    private_key: bytes  # 32-byte secp256k1 scalar
    public_key: str  # 0x + 64-byte x||y, as stored in the ledger

    def __repr__(self) -> str:
        return f"RegistryKeypair(public_key={self.public_key})"


def registry_keypair_from_private_key(private_key: bytes) -> RegistryKeypair:
    """
    Build a keypair from a raw scalar.

    Raises:
        ValueError: If the scalar is not in [1, n-1]
    """
    if not isinstance(private_key, (bytes, bytearray)) or len(private_key) != 32:
        raise ValueError("private_key must be 32 bytes")
    k = int.from_bytes(private_key, "big")
    if not (0 < k < secp256k1.N):
        raise ValueError("private_key out of range (must be in [1, n-1])")
    point = secp256k1.privtopub(bytes(private_key))
    return RegistryKeypair(private_key=bytes(private_key), public_key=point_to_key_hex(point))


def registry_keypair_from_seed(seed: bytes) -> RegistryKeypair:
    """Deterministic keypair (tests, local tooling)."""
    counter = 0
    while True:
        digest = hashlib.sha256(domain_sep_bytes("registry_keygen") + bytes(seed) + counter.to_bytes(4, "big")).digest()
        if 0 < int.from_bytes(digest, "big") < secp256k1.N:
            return registry_keypair_from_private_key(digest)
        counter += 1


def generate_registry_keypair() -> RegistryKeypair:
    return registry_keypair_from_seed(secrets.token_bytes(32))


def sign_release(
    verifier: AuthorizationVerifier,
    keypair: RegistryKeypair,
    *,
    owner: str,
    asset: Asset,
    amount: int,
    nonce: int,
    slash_amount: int = 0,
) -> str:
    """
    Sign a release authorization.

    Args:
        verifier: Verifier of the target ledger (binds chain_id / ledger_id)
        keypair: Registry keypair
        owner: Stake owner
        asset: Staked asset
        amount: Staked amount (not the payout)
        nonce: Stake nonce
        slash_amount: Portion to forfeit (0 for a full release)

    Returns:
        0x-prefixed 65-byte r||s||v signature
    """
    digest = verifier.release_digest(owner=owner, asset=asset, amount=amount, nonce=nonce, slash_amount=slash_amount)
    v, r, s = secp256k1.ecdsa_raw_sign(digest, keypair.private_key)
    return encode_signature(v, r, s)
