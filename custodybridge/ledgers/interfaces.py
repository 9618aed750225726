"""Collaborator contracts for the two custody ledgers and the asset tokens.

The bridge never reaches into ledger internals; it only calls these
operations. Ledger-side failures are raised by the implementation and
propagate through the bridge unchanged.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from custodybridge.models.transfer import AssetAmount, MarginAccount


@runtime_checkable
class MarginLedger(Protocol):
    """The margin-lending ledger (source side)."""

    address: str

    def get_asset_for_market(self, market_id: int) -> str:
        """Token address backing *market_id*."""
        ...

    def withdraw(
        self,
        account: MarginAccount,
        market_id: int,
        amount: AssetAmount,
        destination: str,
    ) -> None:
        """Withdraw from *account* to *destination*.

        A target amount asks the ledger to bring the balance to that value;
        what actually moves is ledger-defined.
        """
        ...

    def deposit(
        self, account: MarginAccount, market_id: int, amount: int, source: str
    ) -> None:
        """Pull *amount* tokens from *source* into *account*."""
        ...

    def is_local_delegate(self, owner: str, caller: str) -> bool:
        ...

    def is_global_delegate(self, caller: str) -> bool:
        ...


@runtime_checkable
class CollateralLedger(Protocol):
    """The derivatives-collateral ledger (destination side)."""

    address: str

    def get_asset_id(self) -> str:
        """Token address used as margin on this ledger."""
        ...

    def deposit(self, account: str, amount: int, source: str) -> None:
        """Pull *amount* tokens from *source* and credit *account*."""
        ...

    def withdraw(self, account: str, destination: str, amount: int, operator: str) -> None:
        """Debit *account* and send *amount* tokens to *destination*.

        *operator* is the party invoking the withdrawal; the ledger checks it
        holds permission for *account*.
        """
        ...

    def has_account_permission(self, account: str, caller: str) -> bool:
        ...


@runtime_checkable
class TokenCustody(Protocol):
    """Token balances and allowances, keyed by token address."""

    def balance_of(self, asset: str, holder: str) -> int:
        ...

    def allowance(self, asset: str, owner: str, spender: str) -> int:
        ...

    def approve(self, asset: str, owner: str, spender: str, amount: int) -> None:
        ...
