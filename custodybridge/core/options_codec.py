"""Pack and unpack the 256-bit transfer options word.

Decoding is exact-width and side-effect free. An unmapped mode byte decodes
to ``None``; rejecting it is the orchestrator's job.
"""

from __future__ import annotations

from custodybridge.models.transfer import (
    EXPIRATION_BITS,
    MAX_UINT256,
    MODE_BITS,
    SALT_BITS,
    TransferMode,
    TransferOptions,
)

_MODE_MASK = (1 << MODE_BITS) - 1
_EXPIRATION_MASK = (1 << EXPIRATION_BITS) - 1
_SALT_MASK = (1 << SALT_BITS) - 1
_EXPIRATION_SHIFT = MODE_BITS
_SALT_SHIFT = MODE_BITS + EXPIRATION_BITS


def _check_word(options: int) -> int:
    if options < 0 or options > MAX_UINT256:
        raise ValueError(f"Options word {options} is outside the uint256 range")
    return options


def decode_raw_mode(options: int) -> int:
    """Return the low 8 bits of the options word."""
    return _check_word(options) & _MODE_MASK


def decode_mode(options: int) -> TransferMode | None:
    """Return the transfer mode, or ``None`` if the mode byte is unmapped."""
    raw_mode = decode_raw_mode(options)
    try:
        return TransferMode(raw_mode)
    except ValueError:
        return None


def decode_expiration(options: int) -> int:
    """Return the expiration timestamp (bits 8..127). 0 means never."""
    return (_check_word(options) >> _EXPIRATION_SHIFT) & _EXPIRATION_MASK


def decode_salt(options: int) -> int:
    """Return the caller-chosen salt (bits 128..255)."""
    return (_check_word(options) >> _SALT_SHIFT) & _SALT_MASK


def decode_options(options: int) -> TransferOptions:
    """Decode the whole word into a ``TransferOptions`` record."""
    return TransferOptions(
        raw_mode=decode_raw_mode(options),
        expiration=decode_expiration(options),
        salt=decode_salt(options),
    )


def encode_options(mode: TransferMode | int, expiration: int = 0, salt: int = 0) -> int:
    """Pack mode, expiration and salt into one options word.

    Raises ``ValueError`` if a subfield does not fit its bit width.
    """
    raw_mode = int(mode)
    if not 0 <= raw_mode <= _MODE_MASK:
        raise ValueError(f"Mode {raw_mode} does not fit in {MODE_BITS} bits")
    if not 0 <= expiration <= _EXPIRATION_MASK:
        raise ValueError(
            f"Expiration {expiration} does not fit in {EXPIRATION_BITS} bits"
        )
    if not 0 <= salt <= _SALT_MASK:
        raise ValueError(f"Salt {salt} does not fit in {SALT_BITS} bits")
    return raw_mode | (expiration << _EXPIRATION_SHIFT) | (salt << _SALT_SHIFT)
