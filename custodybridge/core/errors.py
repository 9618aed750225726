"""Rejections raised by the transfer orchestrator.

Every error rejects the whole operation. None are retried here.
"""

from __future__ import annotations


class BridgeTransferError(RuntimeError):
    """Base class for all transfer and invalidation rejections."""


class InvalidTransferModeError(BridgeTransferError):
    """The options word carries a mode byte that is not a known mode."""


class SignatureExpiredError(BridgeTransferError):
    """The signed transfer has a nonzero expiration in the past."""


class SignatureAlreadyUsedOrInvalidatedError(BridgeTransferError):
    """The transfer hash was already consumed or explicitly invalidated."""


class InvalidSignatureError(BridgeTransferError):
    """The signature does not recover to the transfer's account."""


class PermissionDeniedError(BridgeTransferError):
    """The caller is neither the owner nor a delegate, and has no signature."""


class AssetMismatchError(BridgeTransferError):
    """The margin market's asset differs from the collateral ledger's asset."""


class UnknownCounterpartyError(BridgeTransferError):
    """No collateral ledger is registered at the transfer's counterparty address."""
