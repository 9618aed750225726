"""``custodybridge sign`` — sign a transfer hash as the account holder."""

from __future__ import annotations

import typer
from rich.console import Console

from custodybridge.core.hasher import from_hex
from custodybridge.crypto.typed_signature import SignatureType, sign_transfer_hash

console = Console()


def sign_cmd(
    transfer_hash: str = typer.Argument(..., help="0x-prefixed transfer hash."),
    private_key: str = typer.Option(
        ...,
        "--private-key",
        envvar="CUSTODYBRIDGE_SIGNER_KEY",
        help="Signer private key (hex).",
    ),
    signature_type: str = typer.Option(
        "decimal", "--type", help="no_prepend, decimal or hexadecimal."
    ),
) -> None:
    """Print a 66-byte typed signature over TRANSFER_HASH."""
    try:
        kind = SignatureType[signature_type.upper()]
    except KeyError:
        console.print(f"[red]Unknown signature type:[/red] {signature_type}")
        raise typer.Exit(code=1) from None
    try:
        signature = sign_transfer_hash(from_hex(transfer_hash), private_key, kind)
    except ValueError as exc:
        console.print(f"[red]Cannot sign:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    console.print("0x" + signature.hex(), soft_wrap=True)
