"""
In-memory fungible token contracts.

Two return conventions are modeled, matching what custody must tolerate:

- `BOOL`: `transfer` / `transfer_from` return True on success and False on
  failure (without moving funds).
- `NONE`: the calls return nothing on success and raise `TokenError` on failure.

Custody code must treat "no return value" as success and both an explicit
False and an exception as failure (see `transfer_port.safe_token_transfer`).
"""

from __future__ import annotations

from enum import Enum, unique
from typing import Optional, Tuple

from ..state.balances import AccountBook, AccountId, AllowanceTable, Amount
from ..state.canonical import require_identifier


@unique
class ReturnConvention(Enum):
    BOOL = "bool"
    NONE = "none"


class TokenError(RuntimeError):
    """Raised by tokens that revert instead of returning False."""


class InMemoryToken:
    def __init__(self, token_id: str, *, return_convention: ReturnConvention = ReturnConvention.BOOL):
        self.token_id = require_identifier(token_id, name="token_id", max_len=128)
        self.return_convention = return_convention
        self._balances = AccountBook()
        self._allowances = AllowanceTable()

    def balance_of(self, account: AccountId) -> Amount:
        return self._balances.get(account)

    def allowance(self, owner: AccountId, spender: AccountId) -> Amount:
        return self._allowances.get(owner, spender)

    def total_supply(self) -> Amount:
        return self._balances.total()

    def mint(self, account: AccountId, amount: Amount) -> None:
        self._balances.credit(account, amount)

    def approve(self, owner: AccountId, spender: AccountId, amount: Amount) -> Optional[bool]:
        self._allowances.set(owner, spender, amount)
        return self._ok()

    def transfer(self, sender: AccountId, to: AccountId, amount: Amount) -> Optional[bool]:
        if amount < 0 or self._balances.get(sender) < amount:
            return self._fail(f"transfer amount exceeds balance of {sender}")
        self._balances.move(sender, to, amount)
        return self._ok()

    def transfer_from(self, spender: AccountId, owner: AccountId, to: AccountId, amount: Amount) -> Optional[bool]:
        if amount < 0 or self._allowances.get(owner, spender) < amount:
            return self._fail(f"transfer amount exceeds allowance of {spender}")
        if self._balances.get(owner) < amount:
            return self._fail(f"transfer amount exceeds balance of {owner}")
        self._allowances.spend(owner, spender, amount)
        self._balances.move(owner, to, amount)
        return self._ok()

    def snapshot(self) -> Tuple[AccountBook, AllowanceTable]:
        return self._balances.copy(), self._allowances.copy()

    def restore(self, snap: Tuple[AccountBook, AllowanceTable]) -> None:
        balances, allowances = snap
        self._balances = balances.copy()
        self._allowances = allowances.copy()

    def _ok(self) -> Optional[bool]:
        if self.return_convention is ReturnConvention.NONE:
            return None
        return True

    def _fail(self, reason: str) -> Optional[bool]:
        if self.return_convention is ReturnConvention.NONE:
            raise TokenError(reason)
        return False

    def __repr__(self) -> str:
        return f"InMemoryToken({self.token_id!r}, {self.return_convention.value})"
