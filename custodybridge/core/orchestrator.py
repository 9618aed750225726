"""Transfer orchestrator — the public entry points of the bridge.

The orchestrator wires together the HashEngine, PermissionResolver,
SignatureVerifier, ReplayGuard, LedgerBridge, and EventBus. Each call is a
fresh linear pipeline::

    decode options -> hash -> permission | signature -> assets -> ledgers
    -> replay guard (signature path only) -> event

Nothing is persisted between calls except the replay guard.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager

from custodybridge.config import BridgeConfig
from custodybridge.core.errors import (
    InvalidTransferModeError,
    PermissionDeniedError,
    UnknownCounterpartyError,
)
from custodybridge.core.event_bus import EventBus
from custodybridge.core.hasher import HashEngine, to_hex
from custodybridge.core.ledger_bridge import LedgerBridge
from custodybridge.core.options_codec import decode_options
from custodybridge.core.permissions import PermissionResolver
from custodybridge.core.production_guard import enforce_production_constraints
from custodybridge.core.replay_guard import ReplayGuard, UsedReason
from custodybridge.core.signature_verifier import SignatureVerifier
from custodybridge.ledgers.interfaces import CollateralLedger, MarginLedger, TokenCustody
from custodybridge.models.authorization import Authorization, SignedAuthorization
from custodybridge.models.events import SignatureInvalidated, TransferCompleted
from custodybridge.models.transfer import Transfer, TransferMode, TransferOptions, to_checksum

logger = logging.getLogger(__name__)


def _wall_clock() -> int:
    return int(time.time())


class TransferOrchestrator:
    """Authorizes and executes transfers between the two ledgers.

    Parameters
    ----------
    margin_ledger:
        The margin ledger.
    collateral_ledgers:
        Collateral ledgers this bridge may target, keyed by their address.
    tokens:
        Token custody used for balance measurement and allowances.
    config:
        Bridge configuration. Uses defaults (and the environment) if not provided.
    replay_guard:
        Replay guard to use; opened at ``config.replay_guard_path`` if not provided.
    event_bus:
        Bus that receives emitted events.
    clock:
        Returns the current unix time in seconds; used for expiration checks.
    """

    def __init__(
        self,
        margin_ledger: MarginLedger,
        collateral_ledgers: Iterable[CollateralLedger],
        tokens: TokenCustody,
        *,
        config: BridgeConfig | None = None,
        replay_guard: ReplayGuard | None = None,
        event_bus: EventBus | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.config = config or BridgeConfig()

        # Production guard: fails hard if production constraints are violated
        enforce_production_constraints(self.config)

        self.hash_engine = HashEngine(
            self.config.chain_id,
            self.config.bridge_address,
            name=self.config.domain_name,
            version=self.config.domain_version,
        )
        self.bridge_address = self.hash_engine.contract_address
        self.margin_ledger = margin_ledger
        self.collateral_ledgers: dict[str, CollateralLedger] = {
            to_checksum(ledger.address): ledger for ledger in collateral_ledgers
        }
        self.replay_guard = replay_guard or ReplayGuard(self.config.replay_guard_path)
        self.event_bus = event_bus or EventBus()
        self.permissions = PermissionResolver(margin_ledger)
        self.signature_verifier = SignatureVerifier(self.replay_guard)
        self.ledger_bridge = LedgerBridge(margin_ledger, tokens, self.bridge_address)
        self._clock = clock or _wall_clock

    # ------------------------------------------------------------------
    # Hashing
    # ------------------------------------------------------------------

    @property
    def domain_separator(self) -> bytes:
        return self.hash_engine.domain_separator

    def get_transfer_hash(self, transfer: Transfer) -> bytes:
        return self.hash_engine.transfer_hash(transfer)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def bridge_transfer(
        self,
        transfer: Transfer,
        signature: bytes | str | None = None,
        *,
        sender: str,
    ) -> int:
        """Authorize and execute *transfer* on behalf of *sender*.

        Returns the amount actually moved. Raises a ``BridgeTransferError``
        subclass if the transfer is rejected; ledger errors propagate as is.
        """
        options, mode = self._decode(transfer)
        collateral_ledger = self._collateral_ledger(transfer.counterparty)
        transfer_hash = self.hash_engine.transfer_hash(transfer)

        with self._authorize(
            sender, transfer, options, mode, transfer_hash, signature, collateral_ledger
        ) as authorization:
            logger.debug(
                "Transfer %s authorized as %s", to_hex(transfer_hash), authorization.kind
            )
            amount_moved = self.ledger_bridge.execute(transfer, mode, collateral_ledger)

        self.event_bus.emit(
            TransferCompleted(
                account=transfer.account,
                transfer_hash=to_hex(transfer_hash),
                counterparty=transfer.counterparty,
                margin_account_number=transfer.margin_account_number,
                margin_market_id=transfer.margin_market_id,
                to_destination=mode.to_destination,
                mode=mode,
                amount_moved=amount_moved,
            )
        )
        logger.info(
            "Transfer %s for %s moved %d (%s)",
            to_hex(transfer_hash), transfer.account, amount_moved, mode.name,
        )
        return amount_moved

    def invalidate_signature(self, transfer: Transfer, *, sender: str) -> bytes:
        """Burn the hash of *transfer* so no signature over it can be used.

        Permission is checked with the direction of the transfer being
        invalidated. Returns the invalidated hash.
        """
        _, mode = self._decode(transfer)
        collateral_ledger = self._collateral_ledger(transfer.counterparty)
        transfer_hash = self.hash_engine.transfer_hash(transfer)

        if not self.permissions.is_authorized(
            sender, transfer, mode.to_destination, collateral_ledger
        ):
            raise PermissionDeniedError(
                f"{sender} may not invalidate transfers for {transfer.account}"
            )

        with self.replay_guard.hold(transfer_hash):
            self.replay_guard.mark_used(transfer_hash, UsedReason.INVALIDATED)

        self.event_bus.emit(
            SignatureInvalidated(
                account=transfer.account, transfer_hash=to_hex(transfer_hash)
            )
        )
        logger.info("Invalidated transfer %s for %s", to_hex(transfer_hash), transfer.account)
        return transfer_hash

    # ------------------------------------------------------------------
    # Allowance bootstrap
    # ------------------------------------------------------------------

    def approve_maximum_on_margin_ledger(self, market_id: int) -> None:
        """Let the margin ledger pull the asset of *market_id* from the bridge."""
        asset = self.margin_ledger.get_asset_for_market(market_id)
        self.ledger_bridge.approve_maximum(asset, self.margin_ledger.address)

    def approve_maximum_on_collateral_ledger(self, counterparty: str) -> None:
        """Let the collateral ledger at *counterparty* pull its asset from the bridge."""
        ledger = self._collateral_ledger(counterparty)
        self.ledger_bridge.approve_maximum(ledger.get_asset_id(), ledger.address)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _decode(transfer: Transfer) -> tuple[TransferOptions, TransferMode]:
        options = decode_options(transfer.options)
        mode = options.mode
        if mode is None:
            raise InvalidTransferModeError(
                f"Unknown transfer mode {options.raw_mode} in options {transfer.options:#x}"
            )
        return options, mode

    @contextmanager
    def _authorize(
        self,
        sender: str,
        transfer: Transfer,
        options: TransferOptions,
        mode: TransferMode,
        transfer_hash: bytes,
        signature: bytes | str | None,
        collateral_ledger: CollateralLedger,
    ) -> Iterator[Authorization]:
        """Resolve how *sender* may act and hold that authorization for the block.

        A signed authorization holds the replay guard lock for the hash and
        consumes the hash once the block completes without raising.
        """
        direct = self.permissions.resolve(
            sender, transfer, mode.to_destination, collateral_ledger
        )
        if direct is not None:
            yield direct
            return

        if signature is None:
            raise PermissionDeniedError(
                f"{sender} may not transfer for {transfer.account} without a signature"
            )
        with self.replay_guard.hold(transfer_hash):
            signed = self.signature_verifier.verify(
                to_checksum(sender), transfer, options, transfer_hash, signature,
                self._clock(),
            )
            yield signed
            self._consume(signed, transfer_hash)

    def _collateral_ledger(self, counterparty: str) -> CollateralLedger:
        try:
            return self.collateral_ledgers[to_checksum(counterparty)]
        except KeyError:
            raise UnknownCounterpartyError(
                f"No collateral ledger registered at {counterparty}"
            ) from None

    def _consume(self, authorization: SignedAuthorization, transfer_hash: bytes) -> None:
        if not self.replay_guard.mark_used(transfer_hash, UsedReason.EXECUTED):
            # Another process consumed the hash between check and set
            logger.error(
                "Transfer %s signed by %s was executed but its hash was already "
                "marked used; check for a concurrent writer on %s",
                authorization.transfer_hash, authorization.signer,
                self.replay_guard.db_path,
            )
