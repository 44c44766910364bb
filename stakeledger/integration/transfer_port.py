"""
Asset transfer port: the custody boundary of the stake ledger.

`AssetTransferPort` is what `StakeLedger` needs from its host:

- `pull(source, asset, amount)`: move funds from a depositor into custody
- `push(dest, asset, amount)`: move funds out of custody
- `snapshot()` / `restore(snap)`: checkpoint support, so an operation whose
  transfer fails can be undone in full

Every failure surfaces as a `StakeLedgerError` (`InsufficientBalance`,
`AllowanceNotGranted`, `TransferFailed`) and aborts the calling operation.

`InMemoryCustody` implements the port over native wallets and a registry of
token contracts.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

from ..core.errors import AllowanceNotGranted, InsufficientBalance, TransferFailed
from ..state.assets import Asset, NativeAsset, TokenAsset
from ..state.balances import AccountBook, AccountId, Amount


logger = logging.getLogger(__name__)


class TokenContract(Protocol):
    token_id: str

    def balance_of(self, account: AccountId) -> Amount: ...

    def allowance(self, owner: AccountId, spender: AccountId) -> Amount: ...

    def transfer(self, sender: AccountId, to: AccountId, amount: Amount) -> Optional[bool]: ...

    def transfer_from(
        self, spender: AccountId, owner: AccountId, to: AccountId, amount: Amount
    ) -> Optional[bool]: ...

    def snapshot(self) -> Any: ...

    def restore(self, snap: Any) -> None: ...


class AssetTransferPort(Protocol):
    def pull(self, source: AccountId, asset: Asset, amount: Amount) -> None: ...

    def push(self, dest: AccountId, asset: Asset, amount: Amount) -> None: ...

    def snapshot(self) -> Any: ...

    def restore(self, snap: Any) -> None: ...


# Called after native value is credited to `account`; returning False or
# raising rejects the transfer.
ReceiveHook = Callable[[AccountId, Asset, Amount], Optional[bool]]


def safe_token_transfer(call: Callable[[], Optional[bool]], *, what: str) -> None:
    """
    Run a token transfer call, tolerating tokens that return nothing.

    None or True is success. False, any other value, or an exception is failure.
    """
    try:
        result = call()
    except Exception as exc:
        raise TransferFailed(f"{what} reverted: {exc}") from exc
    if result is None or result is True:
        return
    raise TransferFailed(f"{what} returned {result!r}")


class InMemoryCustody:
    def __init__(self, custody_account: AccountId, *, tokens: Tuple[TokenContract, ...] = ()):
        self.custody_account = custody_account
        self._wallets = AccountBook()
        self._tokens: Dict[str, TokenContract] = {}
        self._hooks: Dict[AccountId, ReceiveHook] = {}
        for token in tokens:
            self.register_token(token)

    # ------------------------------------------------------------------
    # Host-side setup and queries
    # ------------------------------------------------------------------

    def register_token(self, token: TokenContract) -> None:
        if token.token_id in self._tokens:
            raise ValueError(f"token already registered: {token.token_id}")
        self._tokens[token.token_id] = token

    def token(self, token_id: str) -> TokenContract:
        token = self._tokens.get(token_id)
        if token is None:
            raise TransferFailed(f"unknown token: {token_id}")
        return token

    def fund_native(self, account: AccountId, amount: Amount) -> None:
        self._wallets.credit(account, amount)

    def native_balance(self, account: AccountId) -> Amount:
        return self._wallets.get(account)

    def balance(self, account: AccountId, asset: Asset) -> Amount:
        if isinstance(asset, TokenAsset):
            return self.token(asset.token_id).balance_of(account)
        return self._wallets.get(account)

    def set_receive_hook(self, account: AccountId, hook: Optional[ReceiveHook]) -> None:
        if hook is None:
            self._hooks.pop(account, None)
        else:
            self._hooks[account] = hook

    # ------------------------------------------------------------------
    # AssetTransferPort
    # ------------------------------------------------------------------

    def pull(self, source: AccountId, asset: Asset, amount: Amount) -> None:
        if isinstance(asset, NativeAsset):
            # Value attached to the call: the sender must actually hold it.
            if self._wallets.get(source) < amount:
                raise InsufficientBalance(f"{source} holds {self._wallets.get(source)} native, needs {amount}")
            self._wallets.move(source, self.custody_account, amount)
            logger.debug("pulled %d native from %s", amount, source)
            return

        token = self.token(asset.token_id)
        if token.balance_of(source) < amount:
            raise InsufficientBalance(f"{source} holds {token.balance_of(source)} {asset}, needs {amount}")
        if token.allowance(source, self.custody_account) < amount:
            raise AllowanceNotGranted(f"{source} has not approved {amount} {asset} for {self.custody_account}")
        safe_token_transfer(
            lambda: token.transfer_from(self.custody_account, source, self.custody_account, amount),
            what=f"transfer_from({source} -> custody, {amount} {asset})",
        )
        logger.debug("pulled %d %s from %s", amount, asset, source)

    def push(self, dest: AccountId, asset: Asset, amount: Amount) -> None:
        if isinstance(asset, NativeAsset):
            if self._wallets.get(self.custody_account) < amount:
                raise TransferFailed(f"custody holds {self._wallets.get(self.custody_account)} native, needs {amount}")
            self._wallets.move(self.custody_account, dest, amount)
            hook = self._hooks.get(dest)
            if hook is not None:
                try:
                    accepted = hook(dest, asset, amount)
                except Exception as exc:
                    raise TransferFailed(f"native transfer to {dest} rejected: {exc}") from exc
                if accepted is False:
                    raise TransferFailed(f"native transfer to {dest} rejected by receiver")
            logger.debug("pushed %d native to %s", amount, dest)
            return

        token = self.token(asset.token_id)
        safe_token_transfer(
            lambda: token.transfer(self.custody_account, dest, amount),
            what=f"transfer(custody -> {dest}, {amount} {asset})",
        )
        logger.debug("pushed %d %s to %s", amount, asset, dest)

    def snapshot(self) -> Tuple[AccountBook, Dict[str, Any]]:
        return self._wallets.copy(), {tid: token.snapshot() for tid, token in self._tokens.items()}

    def restore(self, snap: Tuple[AccountBook, Dict[str, Any]]) -> None:
        wallets, token_snaps = snap
        self._wallets = wallets.copy()
        for tid, token_snap in token_snaps.items():
            self._tokens[tid].restore(token_snap)
