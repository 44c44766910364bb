"""
Stake records.

One `Stake` per nonce. Identity fields never change after creation; the only
transition is `released: False -> True`, produced by `Stake.mark_released()`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping

from .assets import Asset, asset_from_dict, is_asset
from .balances import AccountId, Amount
from .canonical import UINT256_MAX, is_strict_int, require_identifier


MAX_ACCOUNT_ID_LEN = 256
MAX_SYNTHESIZER_ID_LEN = 4096


def validate_amount(amount: Any, *, name: str = "amount") -> Amount:
    """Positive uint256 check; raises ValueError/TypeError."""
    if not is_strict_int(amount):
        raise TypeError(f"{name} must be an int")
    if amount <= 0:
        raise ValueError(f"{name} must be positive")
    if amount > UINT256_MAX:
        raise ValueError(f"{name} exceeds uint256")
    return int(amount)


@dataclass(frozen=True)
class Stake:
    """A single deposit, addressed by its nonce."""

    nonce: int
    owner: AccountId
    amount: Amount
    asset: Asset
    synthesizer_id: str
    deposit_height: int = 0
    released: bool = False

    def __post_init__(self) -> None:
        if not is_strict_int(self.nonce) or self.nonce < 0:
            raise ValueError("nonce must be a non-negative int")
        require_identifier(self.owner, name="owner", max_len=MAX_ACCOUNT_ID_LEN)
        validate_amount(self.amount)
        if not is_asset(self.asset):
            raise TypeError("asset must be NativeAsset or TokenAsset")
        require_identifier(self.synthesizer_id, name="synthesizer_id", max_len=MAX_SYNTHESIZER_ID_LEN)
        if not is_strict_int(self.deposit_height) or self.deposit_height < 0:
            raise ValueError("deposit_height must be a non-negative int")
        if not isinstance(self.released, bool):
            raise TypeError("released must be a bool")

    @property
    def live(self) -> bool:
        return not self.released

    def mark_released(self) -> "Stake":
        if self.released:
            raise ValueError(f"stake {self.nonce} already released")
        return replace(self, released=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nonce": int(self.nonce),
            "owner": self.owner,
            "amount": int(self.amount),
            "asset": self.asset.to_dict(),
            "synthesizer_id": self.synthesizer_id,
            "deposit_height": int(self.deposit_height),
            "released": bool(self.released),
        }


_STAKE_KEYS = frozenset({"nonce", "owner", "amount", "asset", "synthesizer_id", "deposit_height", "released"})


def stake_from_dict(obj: Mapping[str, Any]) -> Stake:
    if not isinstance(obj, Mapping):
        raise TypeError("stake entry must be an object")
    extra = set(obj.keys()) - _STAKE_KEYS
    if extra:
        raise ValueError(f"unknown stake fields: {sorted(extra)}")
    return Stake(
        nonce=obj["nonce"],
        owner=obj["owner"],
        amount=obj["amount"],
        asset=asset_from_dict(obj["asset"]),
        synthesizer_id=obj["synthesizer_id"],
        deposit_height=obj.get("deposit_height", 0),
        released=obj["released"],
    )
