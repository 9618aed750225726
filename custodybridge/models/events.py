"""Event records emitted by the orchestrator.

Events are dispatched to handlers and then dropped; only the replay guard
keeps state between calls.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from custodybridge.models.transfer import TransferMode


class EventKind(str, Enum):
    TRANSFER_COMPLETED = "transfer_completed"
    SIGNATURE_INVALIDATED = "signature_invalidated"


class BridgeEvent(BaseModel):
    """Fields shared by every event."""

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    event_kind: EventKind
    account: str
    transfer_hash: str  # 0x-prefixed hex, correlates with the replay guard


class TransferCompleted(BridgeEvent):
    """Value moved between the ledgers."""

    event_kind: EventKind = EventKind.TRANSFER_COMPLETED
    counterparty: str
    margin_account_number: int
    margin_market_id: int
    to_destination: bool
    mode: TransferMode
    amount_moved: int


class SignatureInvalidated(BridgeEvent):
    """A transfer hash was burned without moving funds."""

    event_kind: EventKind = EventKind.SIGNATURE_INVALIDATED


EVENT_TYPE_MAP: dict[EventKind, type[BridgeEvent]] = {
    EventKind.TRANSFER_COMPLETED: TransferCompleted,
    EventKind.SIGNATURE_INVALIDATED: SignatureInvalidated,
}
