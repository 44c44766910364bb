"""
Asset kinds held in ledger custody.

An asset is either the chain's native value asset or a fungible token named by
its token id. The two are distinct types; there is no placeholder token id that
stands for "native".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Union

from .canonical import require_identifier


MAX_TOKEN_ID_LEN = 128


@dataclass(frozen=True)
class NativeAsset:
    """The native value asset (arrives attached to a call)."""

    @property
    def kind(self) -> str:
        return "native"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "native"}

    def __str__(self) -> str:
        return "native"


@dataclass(frozen=True)
class TokenAsset:
    """A fungible token moved through its token contract."""

    token_id: str

    def __post_init__(self) -> None:
        require_identifier(self.token_id, name="token_id", max_len=MAX_TOKEN_ID_LEN)

    @property
    def kind(self) -> str:
        return "token"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "token", "token_id": self.token_id}

    def __str__(self) -> str:
        return f"token:{self.token_id}"


Asset = Union[NativeAsset, TokenAsset]

NATIVE = NativeAsset()


def is_asset(value: Any) -> bool:
    return isinstance(value, (NativeAsset, TokenAsset))


def asset_from_dict(obj: Mapping[str, Any]) -> Asset:
    """Parse the `to_dict()` form back into an asset (fail-closed on extra keys)."""
    if not isinstance(obj, Mapping):
        raise TypeError("asset must be an object")
    kind = obj.get("kind")
    if kind == "native":
        if set(obj.keys()) != {"kind"}:
            raise ValueError("native asset takes no fields")
        return NATIVE
    if kind == "token":
        if set(obj.keys()) != {"kind", "token_id"}:
            raise ValueError("token asset requires exactly kind and token_id")
        return TokenAsset(token_id=obj["token_id"])
    raise ValueError(f"unknown asset kind: {kind!r}")
