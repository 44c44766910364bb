"""
Account balance and allowance tables.

Implements AccountBook[AccountId] -> Amount for a single asset and
AllowanceTable[(owner, spender)] -> Amount. Custody wallets and in-memory token
contracts are both built from these.
"""

from typing import Dict, Tuple


# Type aliases
AccountId = str  # opaque account identity (depositor, custody, slash sink)
Amount = int  # Non-negative integer (arbitrary precision)


class AccountBook:
    """
    Balance table mapping account -> amount for one asset.

    Note: balances live in a plain dict. Do not rely on dict iteration order
    for commitments; callers sort keys explicitly at serialization boundaries.
    """

    def __init__(self):
        """Initialize empty account book."""
        self._balances: Dict[AccountId, Amount] = {}

    def get(self, account: AccountId) -> Amount:
        """Get balance for account. Returns 0 if not found."""
        return self._balances.get(account, 0)

    def set(self, account: AccountId, amount: Amount) -> None:
        """
        Set balance for account.

        Args:
            account: Account identity
            amount: Non-negative amount

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            # Remove zero balances to keep table sparse
            self._balances.pop(account, None)
        else:
            self._balances[account] = amount

    def credit(self, account: AccountId, delta: Amount) -> None:
        """Add a non-negative delta to the account balance."""
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.set(account, self.get(account) + delta)

    def debit(self, account: AccountId, delta: Amount) -> None:
        """
        Subtract delta from the account balance.

        Raises:
            ValueError: If delta is negative or the balance is insufficient
        """
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        current = self.get(account)
        if current < delta:
            raise ValueError(f"Insufficient balance: {current} < {delta}")
        self.set(account, current - delta)

    def move(self, source: AccountId, dest: AccountId, amount: Amount) -> None:
        """Debit `source` and credit `dest` (debit first, so a failure leaves both untouched)."""
        self.debit(source, amount)
        self.credit(dest, amount)

    def total(self) -> Amount:
        return sum(self._balances.values())

    def copy(self) -> "AccountBook":
        copied = AccountBook()
        copied._balances = dict(self._balances)
        return copied

    def __repr__(self) -> str:
        return f"AccountBook({len(self._balances)} entries)"


class AllowanceTable:
    """Mapping (owner, spender) -> remaining amount the spender may pull."""

    def __init__(self):
        self._allowances: Dict[Tuple[AccountId, AccountId], Amount] = {}

    def get(self, owner: AccountId, spender: AccountId) -> Amount:
        return self._allowances.get((owner, spender), 0)

    def set(self, owner: AccountId, spender: AccountId, amount: Amount) -> None:
        if amount < 0:
            raise ValueError(f"Allowance cannot be negative: {amount}")
        if amount == 0:
            self._allowances.pop((owner, spender), None)
        else:
            self._allowances[(owner, spender)] = amount

    def spend(self, owner: AccountId, spender: AccountId, amount: Amount) -> None:
        current = self.get(owner, spender)
        if current < amount:
            raise ValueError(f"Insufficient allowance: {current} < {amount}")
        self.set(owner, spender, current - amount)

    def copy(self) -> "AllowanceTable":
        copied = AllowanceTable()
        copied._allowances = dict(self._allowances)
        return copied

    def __repr__(self) -> str:
        return f"AllowanceTable({len(self._allowances)} entries)"
