"""``custodybridge options`` — decode or build a packed options word."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from custodybridge.cli.commands.hash_cmd import parse_mode
from custodybridge.core.options_codec import decode_options, encode_options
from custodybridge.models.transfer import to_uint256

console = Console()

options_app = typer.Typer(help="Inspect or build the packed transfer options word.")


@options_app.command(name="decode")
def decode_cmd(
    options: str = typer.Argument(..., help="Options word as 0x-hex or decimal."),
) -> None:
    """Split an options word into mode, expiration, and salt."""
    try:
        decoded = decode_options(to_uint256(options))
    except ValueError as exc:
        console.print(f"[red]Invalid options word:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    mode = decoded.mode
    table = Table(title="Transfer Options")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row(
        "mode",
        mode.name.lower() if mode is not None else f"[red]invalid ({decoded.raw_mode})[/red]",
    )
    table.add_row("expiration", "never" if decoded.never_expires else str(decoded.expiration))
    table.add_row("salt", f"0x{decoded.salt:032x}")
    console.print(table)


@options_app.command(name="encode")
def encode_cmd(
    mode: str = typer.Option("some_to_destination", "--mode", help="Mode name or byte."),
    expiration: int = typer.Option(0, "--expiration", help="Unix expiration, 0 for never."),
    salt: int = typer.Option(0, "--salt", help="Caller-chosen salt."),
) -> None:
    """Pack mode, expiration, and salt into one word."""
    try:
        word = encode_options(parse_mode(mode), expiration, salt)
    except ValueError as exc:
        console.print(f"[red]Cannot encode options:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    console.print(f"0x{word:064x}")
