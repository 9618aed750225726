"""Decide whether a caller may act for a transfer's account.

Order of checks:
1. The caller is the account: authorized, nothing else is consulted.
2. Toward the destination: local or global delegate on the margin ledger.
3. Toward the source: account permission on the collateral ledger.

Invalidation uses the same rules with the direction of the transfer being
invalidated, even though invalidation moves nothing.
"""

from __future__ import annotations

import logging

from custodybridge.ledgers.interfaces import CollateralLedger, MarginLedger
from custodybridge.models.authorization import (
    DelegateAuthorization,
    DelegateScope,
    OwnerAuthorization,
)
from custodybridge.models.transfer import Transfer, to_checksum

logger = logging.getLogger(__name__)


class PermissionResolver:
    """Resolves ownership and delegated rights. Never raises for a denial."""

    def __init__(self, margin_ledger: MarginLedger) -> None:
        self._margin_ledger = margin_ledger

    def resolve(
        self,
        caller: str,
        transfer: Transfer,
        to_destination: bool,
        collateral_ledger: CollateralLedger,
    ) -> OwnerAuthorization | DelegateAuthorization | None:
        """Return how *caller* is authorized, or ``None`` if it is not."""
        caller = to_checksum(caller)
        if caller == transfer.account:
            return OwnerAuthorization(caller=caller)

        if to_destination:
            if self._margin_ledger.is_local_delegate(transfer.account, caller):
                return DelegateAuthorization(caller=caller, scope=DelegateScope.MARGIN_LOCAL)
            if self._margin_ledger.is_global_delegate(caller):
                return DelegateAuthorization(caller=caller, scope=DelegateScope.MARGIN_GLOBAL)
        elif collateral_ledger.has_account_permission(transfer.account, caller):
            return DelegateAuthorization(caller=caller, scope=DelegateScope.COLLATERAL)

        logger.debug(
            "No direct permission for %s on account %s (to_destination=%s)",
            caller, transfer.account, to_destination,
        )
        return None

    def is_authorized(
        self,
        caller: str,
        transfer: Transfer,
        to_destination: bool,
        collateral_ledger: CollateralLedger,
    ) -> bool:
        return self.resolve(caller, transfer, to_destination, collateral_ledger) is not None
