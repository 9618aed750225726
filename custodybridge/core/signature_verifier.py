"""Signature path checks, run only when the caller has no direct permission.

All three must pass, in this order: not expired, not already used, signed
by the account. The verifier has no side effects; consuming the hash is
the orchestrator's job once the transfer has executed.
"""

from __future__ import annotations

import logging

from custodybridge.core.errors import (
    InvalidSignatureError,
    SignatureAlreadyUsedOrInvalidatedError,
    SignatureExpiredError,
)
from custodybridge.core.hasher import to_hex
from custodybridge.core.replay_guard import ReplayGuard
from custodybridge.crypto.typed_signature import parse_signature, recover_signer
from custodybridge.models.authorization import SignedAuthorization
from custodybridge.models.transfer import Transfer, TransferOptions

logger = logging.getLogger(__name__)


class SignatureVerifier:
    """Validates expiration, replay status, and the recovered signer."""

    def __init__(self, replay_guard: ReplayGuard) -> None:
        self._replay_guard = replay_guard

    def verify(
        self,
        caller: str,
        transfer: Transfer,
        options: TransferOptions,
        transfer_hash: bytes,
        signature: bytes | str,
        now: int,
    ) -> SignedAuthorization:
        """Return the signed authorization or raise the matching rejection."""
        hash_hex = to_hex(transfer_hash)

        if not options.never_expires and options.expiration < now:
            logger.warning(
                "Rejected %s: signature expired at %d (now %d)",
                hash_hex, options.expiration, now,
            )
            raise SignatureExpiredError(
                f"Signature for {hash_hex} expired at {options.expiration}, now {now}"
            )

        if self._replay_guard.is_used(transfer_hash):
            logger.warning("Rejected %s: hash already used or invalidated", hash_hex)
            raise SignatureAlreadyUsedOrInvalidatedError(
                f"Transfer {hash_hex} was already used or invalidated"
            )

        signer = recover_signer(transfer_hash, signature)
        if signer is None or signer != transfer.account:
            logger.warning(
                "Rejected %s: signer %s is not account %s",
                hash_hex, signer, transfer.account,
            )
            raise InvalidSignatureError(
                f"Signature for {hash_hex} does not recover to {transfer.account}"
            )

        return SignedAuthorization(
            caller=caller,
            signer=signer,
            transfer_hash=hash_hex,
            signature="0x" + parse_signature(signature).hex(),
        )
