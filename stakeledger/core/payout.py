"""
Release payout arithmetic (deterministic, integer-only).

A release splits the staked amount into the owner's payout and the slashed
portion. The slash is never clamped: asking for more than the stake is an error.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..state.canonical import UINT256_MAX, is_strict_int
from .errors import ExcessiveSlash, InvalidAmount


@dataclass(frozen=True)
class ReleaseSplit:
    payout: int
    slashed: int

    def __post_init__(self) -> None:
        for name, v in (("payout", self.payout), ("slashed", self.slashed)):
            if not is_strict_int(v):
                raise TypeError(f"{name} must be an int")
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")

    @property
    def total(self) -> int:
        return self.payout + self.slashed


def validate_slash_amount(slash_amount: object) -> int:
    if not is_strict_int(slash_amount):
        raise InvalidAmount("slash_amount must be an int")
    if slash_amount < 0 or slash_amount > UINT256_MAX:
        raise InvalidAmount(f"slash_amount out of range: {slash_amount}")
    return int(slash_amount)


def split_release(amount: int, slash_amount: int) -> ReleaseSplit:
    """Return `(payout = amount - slash_amount, slashed = slash_amount)`."""
    slash_amount = validate_slash_amount(slash_amount)
    if slash_amount > amount:
        raise ExcessiveSlash(f"slash {slash_amount} exceeds staked amount {amount}")
    split = ReleaseSplit(payout=amount - slash_amount, slashed=slash_amount)
    if split.total != amount:
        raise AssertionError("release split does not conserve the staked amount")
    return split


def full_recovery(amount: int) -> ReleaseSplit:
    """Forced recovery returns the whole stake; nothing is slashed."""
    return ReleaseSplit(payout=amount, slashed=0)
