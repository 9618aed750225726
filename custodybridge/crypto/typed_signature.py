"""Typed ECDSA signatures over transfer hashes.

Wire format
-----------
A typed signature is 66 bytes::

    r (32) || s (32) || v (1) || type (1)

The trailing type byte says what was actually signed:

* ``NO_PREPEND`` (0): the transfer hash itself (e.g. ``eth_signTypedData``).
* ``DECIMAL`` (1): ``"\\x19Ethereum Signed Message:\\n32" || hash`` (``eth_sign``).
* ``HEXADECIMAL`` (2): ``"\\x19Ethereum Signed Message:\\n\\x20" || hash``.

Verification is fail-closed: a malformed signature, an unknown type byte or
an unrecoverable point yields no signer rather than an exception.
"""

from __future__ import annotations

import logging
from enum import IntEnum

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_keys import keys

from custodybridge.core.hasher import keccak
from custodybridge.models.transfer import to_checksum

logger = logging.getLogger(__name__)

SIGNATURE_LENGTH = 66
ZERO_SIGNATURE = bytes(SIGNATURE_LENGTH)

_PREFIX_DECIMAL = b"\x19Ethereum Signed Message:\n32"
_PREFIX_HEXADECIMAL = b"\x19Ethereum Signed Message:\n\x20"


class SignatureType(IntEnum):
    NO_PREPEND = 0
    DECIMAL = 1
    HEXADECIMAL = 2


def signed_digest(transfer_hash: bytes, signature_type: SignatureType) -> bytes:
    """Return the 32-byte digest a signature of *signature_type* commits to."""
    if signature_type is SignatureType.NO_PREPEND:
        return transfer_hash
    if signature_type is SignatureType.DECIMAL:
        return keccak(_PREFIX_DECIMAL + transfer_hash)
    if signature_type is SignatureType.HEXADECIMAL:
        return keccak(_PREFIX_HEXADECIMAL + transfer_hash)
    raise ValueError(f"Unsupported signature type {signature_type!r}")


def parse_signature(signature: bytes | str) -> bytes:
    """Accept raw bytes or a 0x-hex string and return raw bytes."""
    if isinstance(signature, str):
        raw = signature[2:] if signature.lower().startswith("0x") else signature
        return bytes.fromhex(raw)
    return bytes(signature)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def recover_signer(transfer_hash: bytes, signature: bytes | str) -> str | None:
    """Recover the checksum address that produced *signature*.

    Returns ``None`` if the signature is malformed, carries an unknown type
    byte, or does not recover to a valid public key.
    """
    try:
        raw = parse_signature(signature)
    except ValueError:
        return None
    if len(raw) != SIGNATURE_LENGTH:
        logger.debug("recover_signer: wrong signature length %d", len(raw))
        return None

    try:
        signature_type = SignatureType(raw[65])
    except ValueError:
        logger.debug("recover_signer: unknown signature type %d", raw[65])
        return None

    r = int.from_bytes(raw[0:32], "big")
    s = int.from_bytes(raw[32:64], "big")
    v = raw[64]
    if v not in (27, 28):
        logger.debug("recover_signer: recovery id %d is not 27 or 28", v)
        return None
    digest = signed_digest(transfer_hash, signature_type)
    try:
        ecdsa_signature = keys.Signature(vrs=(v - 27, r, s))
        public_key = ecdsa_signature.recover_public_key_from_msg_hash(digest)
        return public_key.to_checksum_address()
    except Exception:
        # Zero r or s, or no point on the curve: fail closed
        return None


def transfer_has_valid_signature(
    transfer_hash: bytes, signature: bytes | str, account: str
) -> bool:
    """Whether *signature* over *transfer_hash* was made by *account*."""
    signer = recover_signer(transfer_hash, signature)
    return signer is not None and signer == to_checksum(account)


def sign_transfer_hash(
    transfer_hash: bytes,
    private_key: str | bytes,
    signature_type: SignatureType = SignatureType.DECIMAL,
) -> bytes:
    """Sign *transfer_hash* and return the 66-byte typed signature.

    ``DECIMAL`` matches what ``eth_sign`` / ``personal_sign`` produce;
    ``NO_PREPEND`` signs the raw hash and should only be used for hashes
    that are already domain separated, which transfer hashes are.
    """
    if signature_type is SignatureType.DECIMAL:
        signed = Account.sign_message(encode_defunct(primitive=transfer_hash), private_key)
    else:
        digest = signed_digest(transfer_hash, signature_type)
        signed = Account.unsafe_sign_hash(digest, private_key)
    return (
        signed.r.to_bytes(32, "big")
        + signed.s.to_bytes(32, "big")
        + bytes([signed.v])
        + bytes([int(signature_type)])
    )


def sign_typed_transfer(full_message: dict, private_key: str | bytes) -> bytes:
    """Sign an EIP-712 ``full_message`` and return a ``NO_PREPEND`` typed signature."""
    signed = Account.sign_typed_data(private_key, full_message=full_message)
    return (
        signed.r.to_bytes(32, "big")
        + signed.s.to_bytes(32, "big")
        + bytes([signed.v])
        + bytes([int(SignatureType.NO_PREPEND)])
    )


def create_typed_signature(raw_signature: bytes | str, signature_type: SignatureType) -> bytes:
    """Append the type byte to a 65-byte ``r || s || v`` signature.

    A recovery id of 0 or 1, as some wallets return it, is normalized to
    27 or 28. Raises ``ValueError`` if the input is not 65 bytes.
    """
    raw = parse_signature(raw_signature)
    if len(raw) != SIGNATURE_LENGTH - 1:
        raise ValueError(f"Expected a 65-byte signature, got {len(raw)} bytes")
    v = raw[64]
    if v in (0, 1):
        v += 27
    return raw[:64] + bytes([v, int(signature_type)])


def compatible_typed_signature(
    transfer_hash: bytes, raw_signature: bytes | str, account: str
) -> bytes:
    """Type an ``eth_sign`` result from a signer of unknown behavior.

    Most signers prefix the hash before signing; some older nodes sign the
    bare hash. ``NO_PREPEND`` is used when it recovers to *account*,
    otherwise ``DECIMAL``.
    """
    unprefixed = create_typed_signature(raw_signature, SignatureType.NO_PREPEND)
    if transfer_has_valid_signature(transfer_hash, unprefixed, account):
        return unprefixed
    return create_typed_signature(raw_signature, SignatureType.DECIMAL)
