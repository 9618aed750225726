"""Transfer authorization records.

A ``Transfer`` is the unit a holder signs. It is immutable once built; its
EIP-712 hash (see ``custodybridge.core.hasher``) is its only identity.

The ``options`` word packs three subfields, low bits first::

    bits   0..7    transfer mode       (8 bits)
    bits   8..127  expiration, seconds (120 bits, 0 = never expires)
    bits 128..255  salt                (128 bits, caller chosen)

``TransferOptions`` is the decoded form. Decoding never rejects an unknown
mode byte; the orchestrator rejects it when it has to act on it.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from web3 import Web3

MAX_UINT256 = 2**256 - 1
MODE_BITS = 8
EXPIRATION_BITS = 120
SALT_BITS = 128
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class TransferMode(int, Enum):
    """Direction and amount semantics of a transfer."""

    SOME_TO_DESTINATION = 0  # exact amount, margin -> collateral
    SOME_TO_SOURCE = 1  # exact amount, collateral -> margin
    ALL_TO_DESTINATION = 2  # whole margin balance, margin -> collateral

    @property
    def to_destination(self) -> bool:
        return self is not TransferMode.SOME_TO_SOURCE

    @property
    def withdraws_all(self) -> bool:
        return self is TransferMode.ALL_TO_DESTINATION


def to_checksum(value: str) -> str:
    """Normalize an address to its EIP-55 checksum form."""
    try:
        return Web3.to_checksum_address(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid address: {value!r}") from exc


def to_uint256(value: Any) -> int:
    """Coerce an int, 32-byte value or 0x-hex string into a uint256."""
    if isinstance(value, bool):
        raise ValueError("Booleans are not uint256 values")
    if isinstance(value, (bytes, bytearray)):
        if len(value) > 32:
            raise ValueError(f"Expected at most 32 bytes, got {len(value)}")
        value = int.from_bytes(value, "big")
    elif isinstance(value, str):
        value = int(value, 16) if value.lower().startswith("0x") else int(value, 10)
    if not isinstance(value, int):
        raise ValueError(f"Expected an integer, got {type(value).__name__}")
    if value < 0 or value > MAX_UINT256:
        raise ValueError(f"Value {value} is outside the uint256 range")
    return value


class TransferOptions(BaseModel):
    """Decoded options word."""

    model_config = ConfigDict(frozen=True)

    raw_mode: int = Field(ge=0, lt=2**MODE_BITS)
    expiration: int = Field(default=0, ge=0, lt=2**EXPIRATION_BITS)
    salt: int = Field(default=0, ge=0, lt=2**SALT_BITS)

    @property
    def mode(self) -> TransferMode | None:
        """The recognized mode, or ``None`` for an unmapped mode byte."""
        try:
            return TransferMode(self.raw_mode)
        except ValueError:
            return None

    @property
    def never_expires(self) -> bool:
        return self.expiration == 0


class Transfer(BaseModel):
    """A request to move value between the margin and collateral ledgers."""

    model_config = ConfigDict(frozen=True)

    account: str
    counterparty: str  # address of the collateral ledger
    margin_account_number: int
    margin_market_id: int
    amount: int
    options: int

    @field_validator("account", "counterparty", mode="before")
    @classmethod
    def _checksum_address(cls, value: Any) -> str:
        return to_checksum(value)

    @field_validator(
        "margin_account_number", "margin_market_id", "amount", "options", mode="before"
    )
    @classmethod
    def _uint256(cls, value: Any) -> int:
        return to_uint256(value)

    @property
    def options_bytes(self) -> bytes:
        """The options word as the 32 raw bytes that get hashed."""
        return self.options.to_bytes(32, "big")


class AssetAmount(BaseModel):
    """Amount argument for a margin-ledger withdrawal.

    ``target=False`` moves exactly ``value``. ``target=True`` asks the ledger
    to bring the account balance to ``value``; the ledger decides how much
    actually moves.
    """

    model_config = ConfigDict(frozen=True)

    value: int = Field(ge=0)
    target: bool = False

    @classmethod
    def delta(cls, value: int) -> AssetAmount:
        return cls(value=value, target=False)

    @classmethod
    def to_zero(cls) -> AssetAmount:
        return cls(value=0, target=True)


class MarginAccount(BaseModel):
    """A sub-account on the margin ledger."""

    model_config = ConfigDict(frozen=True)

    owner: str
    number: int = Field(default=0, ge=0)

    @field_validator("owner", mode="before")
    @classmethod
    def _checksum_owner(cls, value: Any) -> str:
        return to_checksum(value)
