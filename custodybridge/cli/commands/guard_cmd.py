"""``custodybridge guard`` — show the replay status of a transfer hash."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from custodybridge.config import config
from custodybridge.core.hasher import from_hex
from custodybridge.core.replay_guard import ReplayGuard

console = Console()


def guard_cmd(
    transfer_hash: str = typer.Argument(..., help="0x-prefixed transfer hash."),
    db_path: Path = typer.Option(
        config.replay_guard_path, "--db", help="Path to the replay guard database."
    ),
) -> None:
    """Report whether TRANSFER_HASH was consumed or invalidated."""
    try:
        raw = from_hex(transfer_hash)
    except ValueError as exc:
        console.print(f"[red]Invalid hash:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    record = ReplayGuard(db_path).get_record(raw)
    if record is None:
        console.print(f"[green]unused[/green] {transfer_hash}")
        return
    console.print(
        f"[yellow]used[/yellow] {record.transfer_hash} "
        f"({record.reason.value} at {record.marked_at_utc.isoformat()})"
    )
