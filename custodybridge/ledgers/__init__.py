"""Ledger collaborator contracts and in-memory implementations."""

from custodybridge.ledgers.interfaces import CollateralLedger, MarginLedger, TokenCustody
from custodybridge.ledgers.memory import (
    InMemoryCollateralLedger,
    InMemoryMarginLedger,
    InMemoryTokenVault,
    LedgerOperationError,
)

__all__ = [
    "CollateralLedger",
    "MarginLedger",
    "TokenCustody",
    "InMemoryCollateralLedger",
    "InMemoryMarginLedger",
    "InMemoryTokenVault",
    "LedgerOperationError",
]
