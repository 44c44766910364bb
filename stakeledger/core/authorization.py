"""
Per-release authorization (registry signatures).

The registry authority signs

    SHA256( domain_sep("release_auth:<chain_id>:<ledger_id>", v1)
            || canonical_json({owner, asset, amount, nonce, slash_amount}) )

with secp256k1 and a recoverable signature `r || s || v` (65 bytes, hex). A
release is authorized iff the public key recovered from (digest, signature)
equals the ledger's current registry key. Verification never raises on bad
input; it returns False.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from py_ecc.secp256k1 import secp256k1

from ..state.assets import Asset
from ..state.canonical import canonical_hex_fixed_allow_0x, domain_digest, hex_to_bytes_fixed
from ..state.ledger_state import REGISTRY_KEY_NBYTES
from .errors import InvalidKey


SIGNATURE_NBYTES = 65

_HALF_N = secp256k1.N // 2


def point_to_key_hex(point: Tuple[int, int]) -> str:
    """Uncompressed x||y encoding used for registry keys."""
    x, y = point
    return "0x" + int(x).to_bytes(32, "big").hex() + int(y).to_bytes(32, "big").hex()


def _is_on_curve(x: int, y: int) -> bool:
    P = secp256k1.P
    if not (0 <= x < P and 0 <= y < P):
        return False
    return (y * y - (x * x * x + secp256k1.A * x + secp256k1.B)) % P == 0


def validate_registry_key(key: Any) -> str:
    """Canonicalize a registry key; raises InvalidKey unless it is a point on secp256k1."""
    try:
        canonical = canonical_hex_fixed_allow_0x(key, nbytes=REGISTRY_KEY_NBYTES, name="registry key")
    except (TypeError, ValueError) as exc:
        raise InvalidKey(str(exc)) from exc
    raw = bytes.fromhex(canonical[2:])
    x = int.from_bytes(raw[:32], "big")
    y = int.from_bytes(raw[32:], "big")
    if not _is_on_curve(x, y):
        raise InvalidKey("registry key is not a point on secp256k1")
    return canonical


def encode_signature(v: int, r: int, s: int) -> str:
    return "0x" + r.to_bytes(32, "big").hex() + s.to_bytes(32, "big").hex() + bytes([v]).hex()


def decode_signature(signature: str) -> Tuple[int, int, int]:
    """Split a 65-byte hex signature into (v, r, s); v is normalized to 27/28."""
    raw = hex_to_bytes_fixed(signature, nbytes=SIGNATURE_NBYTES, name="signature")
    r = int.from_bytes(raw[:32], "big")
    s = int.from_bytes(raw[32:64], "big")
    v = raw[64]
    if v in (0, 1):
        v += 27
    if v not in (27, 28):
        raise ValueError(f"signature recovery id out of range: {raw[64]}")
    return v, r, s


@dataclass(frozen=True)
class AuthorizationVerifier:
    chain_id: str
    ledger_id: str
    require_low_s: bool = True

    @property
    def domain_label(self) -> str:
        return f"release_auth:{self.chain_id}:{self.ledger_id}"

    def release_payload(
        self, *, owner: str, asset: Asset, amount: int, nonce: int, slash_amount: int
    ) -> Dict[str, Any]:
        return {
            "owner": owner,
            "asset": asset.to_dict(),
            "amount": int(amount),
            "nonce": int(nonce),
            "slash_amount": int(slash_amount),
        }

    def release_digest(self, *, owner: str, asset: Asset, amount: int, nonce: int, slash_amount: int) -> bytes:
        payload = self.release_payload(
            owner=owner, asset=asset, amount=amount, nonce=nonce, slash_amount=slash_amount
        )
        return domain_digest(self.domain_label, payload)

    def recover_signer(self, digest: bytes, signature: Any) -> Optional[str]:
        """Recovered registry key (canonical hex), or None for any malformed signature."""
        try:
            v, r, s = decode_signature(signature)
        except (TypeError, ValueError):
            return None
        if not (0 < r < secp256k1.N and 0 < s < secp256k1.N):
            return None
        if self.require_low_s and s > _HALF_N:
            return None
        try:
            point = secp256k1.ecdsa_raw_recover(digest, (v, r, s))
        except (ValueError, ZeroDivisionError):
            return None
        if not isinstance(point, tuple) or len(point) != 2:
            return None
        x, y = point
        if not _is_on_curve(int(x), int(y)):
            return None
        return point_to_key_hex((int(x), int(y)))

    def is_authorized(
        self,
        *,
        registry_public_key: str,
        owner: str,
        asset: Asset,
        amount: int,
        nonce: int,
        slash_amount: int,
        signature: Any,
    ) -> bool:
        digest = self.release_digest(
            owner=owner, asset=asset, amount=amount, nonce=nonce, slash_amount=slash_amount
        )
        recovered = self.recover_signer(digest, signature)
        return recovered is not None and recovered == registry_public_key.lower()
