"""
Operation envelopes.

JSON-style operation objects, as submitted by relayers or batch tooling, are
parsed into typed operations here before `StakeLedger.submit()` dispatches them:

    {"op": "deposit_native", "synthesizer_id": "job-17"}
    {"op": "deposit_token", "token_id": "USDX", "amount": 50, "synthesizer_id": "job-18"}
    {"op": "release", "nonce": 0, "slash_amount": 30, "signature": "0x...", "asset": {"kind": "native"}}
    {"op": "force_recover", "nonce": 1, "proof": "0x..."}
    {"op": "pause", "proof": "0x..."}
    {"op": "unpause", "proof": "0x..."}
    {"op": "rotate_registry_key", "new_registry_key": "0x...", "proof": "0x..."}

`asset` on release / force_recover is optional and pins the expected asset kind.
Parsing is fail-closed: unknown ops, unknown fields and wrong types are rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from ..state.assets import Asset, asset_from_dict


class OperationParseError(ValueError):
    pass


@dataclass(frozen=True)
class DepositNativeOp:
    synthesizer_id: str


@dataclass(frozen=True)
class DepositTokenOp:
    token_id: str
    amount: int
    synthesizer_id: str


@dataclass(frozen=True)
class ReleaseOp:
    nonce: int
    slash_amount: int
    signature: str
    expected_asset: Optional[Asset] = None


@dataclass(frozen=True)
class ForceRecoverOp:
    nonce: int
    proof: str
    expected_asset: Optional[Asset] = None


@dataclass(frozen=True)
class PauseOp:
    proof: str


@dataclass(frozen=True)
class UnpauseOp:
    proof: str


@dataclass(frozen=True)
class RotateRegistryKeyOp:
    new_registry_key: str
    proof: str


Operation = Union[
    DepositNativeOp,
    DepositTokenOp,
    ReleaseOp,
    ForceRecoverOp,
    PauseOp,
    UnpauseOp,
    RotateRegistryKeyOp,
]


def _require_str(obj: Mapping[str, Any], key: str) -> str:
    value = obj.get(key)
    if not isinstance(value, str):
        raise OperationParseError(f"{key} must be a string")
    return value


def _require_int(obj: Mapping[str, Any], key: str) -> int:
    value = obj.get(key)
    if not isinstance(value, int) or isinstance(value, bool):
        raise OperationParseError(f"{key} must be an int")
    return int(value)


def _optional_asset(obj: Mapping[str, Any]) -> Optional[Asset]:
    raw = obj.get("asset")
    if raw is None:
        return None
    try:
        return asset_from_dict(raw)
    except (TypeError, ValueError) as exc:
        raise OperationParseError(f"invalid asset: {exc}") from exc


_FIELDS: Dict[str, frozenset] = {
    "deposit_native": frozenset({"synthesizer_id"}),
    "deposit_token": frozenset({"token_id", "amount", "synthesizer_id"}),
    "release": frozenset({"nonce", "slash_amount", "signature", "asset"}),
    "force_recover": frozenset({"nonce", "proof", "asset"}),
    "pause": frozenset({"proof"}),
    "unpause": frozenset({"proof"}),
    "rotate_registry_key": frozenset({"new_registry_key", "proof"}),
}


def parse_operation(obj: Any) -> Operation:
    if not isinstance(obj, Mapping):
        raise OperationParseError("operation must be an object")
    op = obj.get("op")
    allowed = _FIELDS.get(op) if isinstance(op, str) else None
    if allowed is None:
        raise OperationParseError(f"unknown op: {op!r}")
    extra = set(obj.keys()) - allowed - {"op"}
    if extra:
        raise OperationParseError(f"unknown fields for {op}: {sorted(extra)}")

    if op == "deposit_native":
        return DepositNativeOp(synthesizer_id=_require_str(obj, "synthesizer_id"))
    if op == "deposit_token":
        return DepositTokenOp(
            token_id=_require_str(obj, "token_id"),
            amount=_require_int(obj, "amount"),
            synthesizer_id=_require_str(obj, "synthesizer_id"),
        )
    if op == "release":
        return ReleaseOp(
            nonce=_require_int(obj, "nonce"),
            slash_amount=_require_int(obj, "slash_amount"),
            signature=_require_str(obj, "signature"),
            expected_asset=_optional_asset(obj),
        )
    if op == "force_recover":
        return ForceRecoverOp(
            nonce=_require_int(obj, "nonce"),
            proof=_require_str(obj, "proof"),
            expected_asset=_optional_asset(obj),
        )
    if op == "pause":
        return PauseOp(proof=_require_str(obj, "proof"))
    if op == "unpause":
        return UnpauseOp(proof=_require_str(obj, "proof"))
    return RotateRegistryKeyOp(
        new_registry_key=_require_str(obj, "new_registry_key"),
        proof=_require_str(obj, "proof"),
    )
