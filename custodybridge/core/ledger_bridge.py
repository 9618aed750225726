"""Moves value between the margin ledger and a collateral ledger.

Toward the destination, the amount credited on the collateral ledger is
the bridge's measured token delta across the margin withdrawal, never the
requested amount: fees, rounding and "withdraw everything" are all
ledger-defined. Toward the source, both calls use the exact amount.

Executions are serialized; each one measures the shared custody balance.

The two ledgers cannot commit atomically. If the second call fails after
the first succeeded, the tokens sit in the bridge's custody and the error
propagates; that state needs reconciliation outside this process.
"""

from __future__ import annotations

import logging
import threading

from custodybridge.core.errors import AssetMismatchError, InvalidTransferModeError
from custodybridge.ledgers.interfaces import CollateralLedger, MarginLedger, TokenCustody
from custodybridge.models.transfer import (
    MAX_UINT256,
    AssetAmount,
    MarginAccount,
    Transfer,
    TransferMode,
    to_checksum,
)

logger = logging.getLogger(__name__)


class LedgerBridge:
    """Executes the withdraw/deposit pair for one transfer.

    Parameters
    ----------
    margin_ledger:
        The margin ledger (source side).
    tokens:
        Token custody used to measure the bridge's own balance.
    bridge_address:
        The address holding tokens in transit.
    """

    def __init__(
        self, margin_ledger: MarginLedger, tokens: TokenCustody, bridge_address: str
    ) -> None:
        self._margin_ledger = margin_ledger
        self._tokens = tokens
        self.bridge_address = to_checksum(bridge_address)
        self._custody_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Preconditions
    # ------------------------------------------------------------------

    def verify_assets(self, transfer: Transfer, collateral_ledger: CollateralLedger) -> str:
        """Return the shared asset, or raise ``AssetMismatchError``."""
        margin_asset = to_checksum(
            self._margin_ledger.get_asset_for_market(transfer.margin_market_id)
        )
        collateral_asset = to_checksum(collateral_ledger.get_asset_id())
        if margin_asset != collateral_asset:
            raise AssetMismatchError(
                f"Market {transfer.margin_market_id} uses {margin_asset} but "
                f"collateral ledger {collateral_ledger.address} uses {collateral_asset}"
            )
        return margin_asset

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(
        self,
        transfer: Transfer,
        mode: TransferMode | None,
        collateral_ledger: CollateralLedger,
    ) -> int:
        """Run the ledger calls for *mode* and return the amount moved."""
        if mode is None:
            raise InvalidTransferModeError(
                f"Options word {transfer.options:#x} carries an unknown mode"
            )
        asset = self.verify_assets(transfer, collateral_ledger)
        account = MarginAccount(
            owner=transfer.account, number=transfer.margin_account_number
        )

        with self._custody_lock:
            if mode.to_destination:
                return self._to_destination(transfer, mode, account, asset, collateral_ledger)
            return self._to_source(transfer, account, collateral_ledger)

    def _to_destination(
        self,
        transfer: Transfer,
        mode: TransferMode,
        account: MarginAccount,
        asset: str,
        collateral_ledger: CollateralLedger,
    ) -> int:
        amount = AssetAmount.to_zero() if mode.withdraws_all else AssetAmount.delta(transfer.amount)

        before = self._tokens.balance_of(asset, self.bridge_address)
        self._margin_ledger.withdraw(
            account, transfer.margin_market_id, amount, self.bridge_address
        )
        after = self._tokens.balance_of(asset, self.bridge_address)
        moved = after - before

        try:
            collateral_ledger.deposit(transfer.account, moved, self.bridge_address)
        except Exception:
            logger.error(
                "Margin withdrawal of %d for %s succeeded but the collateral deposit "
                "failed; %d of %s is held by %s and needs reconciliation",
                moved, transfer.account, moved, asset, self.bridge_address,
            )
            raise
        return moved

    def _to_source(
        self,
        transfer: Transfer,
        account: MarginAccount,
        collateral_ledger: CollateralLedger,
    ) -> int:
        collateral_ledger.withdraw(
            transfer.account, self.bridge_address, transfer.amount, self.bridge_address
        )
        try:
            self._margin_ledger.deposit(
                account, transfer.margin_market_id, transfer.amount, self.bridge_address
            )
        except Exception:
            logger.error(
                "Collateral withdrawal of %d for %s succeeded but the margin deposit "
                "failed; funds are held by %s and need reconciliation",
                transfer.amount, transfer.account, self.bridge_address,
            )
            raise
        return transfer.amount

    # ------------------------------------------------------------------
    # Allowance bootstrap
    # ------------------------------------------------------------------

    def approve_maximum(self, asset: str, spender: str) -> None:
        """Reset then raise the bridge's allowance for *spender* on *asset*."""
        self._tokens.approve(asset, self.bridge_address, spender, 0)
        self._tokens.approve(asset, self.bridge_address, spender, MAX_UINT256)
        logger.info("Approved %s to pull %s from %s", spender, asset, self.bridge_address)
