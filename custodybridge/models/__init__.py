"""custodybridge data models — all Pydantic v2, all frozen (immutable)."""

from custodybridge.models.authorization import (
    Authorization,
    DelegateAuthorization,
    DelegateScope,
    OwnerAuthorization,
    SignedAuthorization,
)
from custodybridge.models.events import (
    EVENT_TYPE_MAP,
    BridgeEvent,
    EventKind,
    SignatureInvalidated,
    TransferCompleted,
)
from custodybridge.models.transfer import (
    MAX_UINT256,
    ZERO_ADDRESS,
    AssetAmount,
    MarginAccount,
    Transfer,
    TransferMode,
    TransferOptions,
)

__all__ = [
    # transfer
    "MAX_UINT256",
    "ZERO_ADDRESS",
    "AssetAmount",
    "MarginAccount",
    "Transfer",
    "TransferMode",
    "TransferOptions",
    # authorization
    "Authorization",
    "DelegateAuthorization",
    "DelegateScope",
    "OwnerAuthorization",
    "SignedAuthorization",
    # events
    "EVENT_TYPE_MAP",
    "BridgeEvent",
    "EventKind",
    "SignatureInvalidated",
    "TransferCompleted",
]
