"""``custodybridge hash`` — compute the EIP-712 hashes of a transfer."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from custodybridge.config import config
from custodybridge.core.hasher import HashEngine, to_hex
from custodybridge.core.options_codec import encode_options
from custodybridge.models.transfer import Transfer, TransferMode

console = Console()


def parse_mode(value: str) -> int:
    """Accept a mode name (``some_to_destination``) or a raw mode byte."""
    try:
        return TransferMode[value.strip().upper()].value
    except KeyError:
        pass
    try:
        return int(value, 0)
    except ValueError:
        raise typer.BadParameter(
            f"{value!r} is not a mode name ({', '.join(m.name.lower() for m in TransferMode)}) "
            "or an integer"
        ) from None


def hash_cmd(
    account: str = typer.Option(..., "--account", help="Account the transfer is for."),
    counterparty: str = typer.Option(..., "--counterparty", help="Collateral ledger address."),
    market_id: int = typer.Option(..., "--market-id", help="Margin market id."),
    amount: int = typer.Option(..., "--amount", help="Requested amount."),
    mode: str = typer.Option("some_to_destination", "--mode", help="Transfer mode name or byte."),
    account_number: int = typer.Option(0, "--account-number", help="Margin sub-account number."),
    expiration: int = typer.Option(0, "--expiration", help="Unix expiration, 0 for never."),
    salt: int = typer.Option(0, "--salt", help="Caller-chosen salt."),
    chain_id: int = typer.Option(config.chain_id, "--chain-id", help="Domain chain id."),
    bridge_address: str = typer.Option(
        config.bridge_address, "--bridge-address", help="Domain verifying contract."
    ),
) -> None:
    """Print the domain separator, struct hash, and transfer hash."""
    try:
        options = encode_options(parse_mode(mode), expiration, salt)
        transfer = Transfer(
            account=account,
            counterparty=counterparty,
            margin_account_number=account_number,
            margin_market_id=market_id,
            amount=amount,
            options=options,
        )
        engine = HashEngine(
            chain_id, bridge_address, name=config.domain_name, version=config.domain_version
        )
    except ValueError as exc:
        console.print(f"[red]Invalid transfer:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    table = Table(title="Transfer Hash")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green", overflow="fold")
    table.add_row("options", f"0x{options:064x}")
    table.add_row("domain separator", to_hex(engine.domain_separator))
    table.add_row("struct hash", to_hex(engine.struct_hash(transfer)))
    table.add_row("transfer hash", to_hex(engine.transfer_hash(transfer)))
    console.print(table)
