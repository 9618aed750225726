"""In-memory ledgers and token custody.

Reference implementations of the collaborator protocols. They enforce
balances and allowances the way the real ledgers do, which is enough to
exercise the bridge end to end in tests and in ``custodybridge demo``.
"""

from __future__ import annotations

import logging
from collections import defaultdict

from custodybridge.models.transfer import AssetAmount, MarginAccount, to_checksum

logger = logging.getLogger(__name__)


class LedgerOperationError(RuntimeError):
    """Raised when a ledger or token refuses an operation."""


class InMemoryTokenVault:
    """Token balances and allowances for any number of assets.

    Parameters
    ----------
    strict_approvals:
        When True, changing a nonzero allowance to another nonzero value is
        refused, like tokens that require resetting to zero first.
    """

    def __init__(self, *, strict_approvals: bool = False) -> None:
        self.strict_approvals = strict_approvals
        self._balances: dict[tuple[str, str], int] = defaultdict(int)
        self._allowances: dict[tuple[str, str, str], int] = defaultdict(int)

    def mint(self, asset: str, holder: str, amount: int) -> None:
        self._balances[(to_checksum(asset), to_checksum(holder))] += amount

    def balance_of(self, asset: str, holder: str) -> int:
        return self._balances[(to_checksum(asset), to_checksum(holder))]

    def allowance(self, asset: str, owner: str, spender: str) -> int:
        return self._allowances[(to_checksum(asset), to_checksum(owner), to_checksum(spender))]

    def approve(self, asset: str, owner: str, spender: str, amount: int) -> None:
        key = (to_checksum(asset), to_checksum(owner), to_checksum(spender))
        if self.strict_approvals and amount != 0 and self._allowances[key] != 0:
            raise LedgerOperationError(
                f"Allowance for {spender} must be reset to zero before it is raised"
            )
        self._allowances[key] = amount

    def transfer(self, asset: str, sender: str, recipient: str, amount: int) -> None:
        asset, sender, recipient = to_checksum(asset), to_checksum(sender), to_checksum(recipient)
        if self._balances[(asset, sender)] < amount:
            raise LedgerOperationError(
                f"{sender} holds {self._balances[(asset, sender)]} of {asset}, needs {amount}"
            )
        self._balances[(asset, sender)] -= amount
        self._balances[(asset, recipient)] += amount

    def transfer_from(
        self, asset: str, spender: str, owner: str, recipient: str, amount: int
    ) -> None:
        key = (to_checksum(asset), to_checksum(owner), to_checksum(spender))
        if self._allowances[key] < amount:
            raise LedgerOperationError(
                f"{spender} is not approved to move {amount} of {asset} for {owner}"
            )
        self.transfer(asset, owner, recipient, amount)
        self._allowances[key] -= amount


class InMemoryMarginLedger:
    """Margin ledger with per-market balances and delegate registries.

    Parameters
    ----------
    address:
        The ledger's own address; it holds pooled tokens in *vault*.
    vault:
        Token custody shared with the other ledger and the bridge.
    withdrawal_fee:
        Flat amount the ledger keeps out of every withdrawal.
    """

    def __init__(
        self, address: str, vault: InMemoryTokenVault, *, withdrawal_fee: int = 0
    ) -> None:
        self.address = to_checksum(address)
        self.vault = vault
        self.withdrawal_fee = withdrawal_fee
        self._markets: dict[int, str] = {}
        self._balances: dict[tuple[str, int, int], int] = defaultdict(int)
        self._local_delegates: set[tuple[str, str]] = set()
        self._global_delegates: set[str] = set()

    # -- setup ---------------------------------------------------------

    def add_market(self, market_id: int, asset: str) -> None:
        self._markets[market_id] = to_checksum(asset)

    def credit(self, account: MarginAccount, market_id: int, amount: int) -> None:
        """Give *account* a balance backed by freshly minted tokens."""
        self.vault.mint(self.get_asset_for_market(market_id), self.address, amount)
        self._balances[(account.owner, account.number, market_id)] += amount

    def set_local_delegate(self, owner: str, caller: str) -> None:
        self._local_delegates.add((to_checksum(owner), to_checksum(caller)))

    def set_global_delegate(self, caller: str) -> None:
        self._global_delegates.add(to_checksum(caller))

    def balance(self, account: MarginAccount, market_id: int) -> int:
        return self._balances[(account.owner, account.number, market_id)]

    # -- MarginLedger --------------------------------------------------

    def get_asset_for_market(self, market_id: int) -> str:
        try:
            return self._markets[market_id]
        except KeyError:
            raise LedgerOperationError(f"Unknown market {market_id}") from None

    def withdraw(
        self,
        account: MarginAccount,
        market_id: int,
        amount: AssetAmount,
        destination: str,
    ) -> None:
        key = (account.owner, account.number, market_id)
        balance = self._balances[key]
        if amount.target:
            debit = max(balance - amount.value, 0)
        else:
            debit = amount.value
        if debit > balance:
            raise LedgerOperationError(
                f"Account {account.owner}/{account.number} holds {balance} "
                f"in market {market_id}, cannot withdraw {debit}"
            )
        delivered = max(debit - self.withdrawal_fee, 0)
        self._balances[key] = balance - debit
        self.vault.transfer(
            self.get_asset_for_market(market_id), self.address, destination, delivered
        )
        logger.debug(
            "margin withdraw: %s/%s market=%s debit=%s delivered=%s",
            account.owner, account.number, market_id, debit, delivered,
        )

    def deposit(
        self, account: MarginAccount, market_id: int, amount: int, source: str
    ) -> None:
        self.vault.transfer_from(
            self.get_asset_for_market(market_id), self.address, source, self.address, amount
        )
        self._balances[(account.owner, account.number, market_id)] += amount

    def is_local_delegate(self, owner: str, caller: str) -> bool:
        return (to_checksum(owner), to_checksum(caller)) in self._local_delegates

    def is_global_delegate(self, caller: str) -> bool:
        return to_checksum(caller) in self._global_delegates


class InMemoryCollateralLedger:
    """Collateral ledger with a single margin asset."""

    def __init__(self, address: str, asset: str, vault: InMemoryTokenVault) -> None:
        self.address = to_checksum(address)
        self.asset = to_checksum(asset)
        self.vault = vault
        self._balances: dict[str, int] = defaultdict(int)
        self._permissions: set[tuple[str, str]] = set()

    def credit(self, account: str, amount: int) -> None:
        self.vault.mint(self.asset, self.address, amount)
        self._balances[to_checksum(account)] += amount

    def grant_permission(self, account: str, caller: str) -> None:
        self._permissions.add((to_checksum(account), to_checksum(caller)))

    def balance(self, account: str) -> int:
        return self._balances[to_checksum(account)]

    # -- CollateralLedger ----------------------------------------------

    def get_asset_id(self) -> str:
        return self.asset

    def deposit(self, account: str, amount: int, source: str) -> None:
        self.vault.transfer_from(self.asset, self.address, source, self.address, amount)
        self._balances[to_checksum(account)] += amount

    def withdraw(self, account: str, destination: str, amount: int, operator: str) -> None:
        account = to_checksum(account)
        if to_checksum(operator) != account and not self.has_account_permission(
            account, operator
        ):
            raise LedgerOperationError(f"{operator} may not withdraw for {account}")
        if self._balances[account] < amount:
            raise LedgerOperationError(
                f"Account {account} holds {self._balances[account]}, cannot withdraw {amount}"
            )
        self._balances[account] -= amount
        self.vault.transfer(self.asset, self.address, destination, amount)

    def has_account_permission(self, account: str, caller: str) -> bool:
        return (to_checksum(account), to_checksum(caller)) in self._permissions
