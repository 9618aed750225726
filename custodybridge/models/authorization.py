"""How a caller was authorized to act for an account.

Resolved once per call. Expiration and replay checks belong to the
``SignedAuthorization`` variant only.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class DelegateScope(str, Enum):
    """Where a delegate's rights were found."""

    MARGIN_LOCAL = "margin_local"
    MARGIN_GLOBAL = "margin_global"
    COLLATERAL = "collateral"


class OwnerAuthorization(BaseModel):
    """The caller is the account itself."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["owner"] = "owner"
    caller: str


class DelegateAuthorization(BaseModel):
    """The caller holds delegated rights on one of the ledgers."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["delegate"] = "delegate"
    caller: str
    scope: DelegateScope


class SignedAuthorization(BaseModel):
    """The account signed the transfer hash; the signature is consumed on success."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["signed"] = "signed"
    caller: str
    signer: str
    transfer_hash: str  # 0x-prefixed hex
    signature: str  # 0x-prefixed hex


Authorization = Annotated[
    Union[OwnerAuthorization, DelegateAuthorization, SignedAuthorization],
    Field(discriminator="kind"),
]
