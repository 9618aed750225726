"""``custodybridge demo`` — run sample transfers against in-memory ledgers.

Walks through a delegate transfer, a signed "withdraw everything" transfer
with a ledger fee, and a rejected replay of that signature.
"""

from __future__ import annotations

from pathlib import Path

import typer
from eth_account import Account
from rich.console import Console
from rich.table import Table

from custodybridge.config import BridgeConfig
from custodybridge.core.errors import BridgeTransferError
from custodybridge.core.event_bus import EventBus
from custodybridge.core.options_codec import encode_options
from custodybridge.core.orchestrator import TransferOrchestrator
from custodybridge.core.replay_guard import ReplayGuard
from custodybridge.crypto.typed_signature import sign_transfer_hash
from custodybridge.ledgers.memory import (
    InMemoryCollateralLedger,
    InMemoryMarginLedger,
    InMemoryTokenVault,
)
from custodybridge.models.events import EventKind
from custodybridge.models.transfer import MarginAccount, Transfer, TransferMode

console = Console()

_BRIDGE = "0x00000000000000000000000000000000000b1d9e"
_MARGIN = "0x000000000000000000000000000000000000a001"
_COLLATERAL = "0x000000000000000000000000000000000000b001"
_USD_TOKEN = "0x000000000000000000000000000000000000c001"
_DELEGATE = "0x000000000000000000000000000000000000d001"
_MARKET_ID = 2


def demo_cmd(
    guard_db: Path = typer.Option(
        Path(".custodybridge/demo_replay_guard.db"),
        "--guard-db",
        help="Replay guard database for the demo run.",
    ),
    fee: int = typer.Option(3, "--fee", help="Flat margin ledger withdrawal fee."),
) -> None:
    """Run the demo scenario and print the emitted transfer records."""
    holder = Account.create()
    vault = InMemoryTokenVault(strict_approvals=True)
    margin = InMemoryMarginLedger(_MARGIN, vault)
    margin.add_market(_MARKET_ID, _USD_TOKEN)
    margin.set_global_delegate(_DELEGATE)
    collateral = InMemoryCollateralLedger(_COLLATERAL, _USD_TOKEN, vault)
    account = MarginAccount(owner=holder.address, number=0)
    margin.credit(account, _MARKET_ID, 1_000)

    bus = EventBus()
    events = []
    bus.register_handler(EventKind.TRANSFER_COMPLETED, events.append)
    orchestrator = TransferOrchestrator(
        margin,
        [collateral],
        vault,
        config=BridgeConfig(bridge_address=_BRIDGE, chain_id=1),
        replay_guard=ReplayGuard(guard_db),
        event_bus=bus,
    )
    orchestrator.approve_maximum_on_margin_ledger(_MARKET_ID)
    orchestrator.approve_maximum_on_collateral_ledger(_COLLATERAL)

    def transfer(mode: TransferMode, amount: int) -> Transfer:
        return Transfer(
            account=holder.address,
            counterparty=_COLLATERAL,
            margin_account_number=0,
            margin_market_id=_MARKET_ID,
            amount=amount,
            options=encode_options(mode, 0, int.from_bytes(Account.create().key[:16], "big")),
        )

    # 1. A global delegate moves an exact amount; no signature needed.
    orchestrator.bridge_transfer(transfer(TransferMode.SOME_TO_DESTINATION, 100), sender=_DELEGATE)

    # 2. A relayer submits the holder's signature to move everything that is left.
    margin.withdrawal_fee = fee
    signed = transfer(TransferMode.ALL_TO_DESTINATION, 0)
    signature = sign_transfer_hash(orchestrator.get_transfer_hash(signed), holder.key)
    relayer = Account.create().address
    orchestrator.bridge_transfer(signed, signature, sender=relayer)

    # 3. The same signature cannot be used twice.
    try:
        orchestrator.bridge_transfer(signed, signature, sender=relayer)
        replay_result = "[red]accepted[/red]"
    except BridgeTransferError as exc:
        replay_result = f"[green]rejected[/green] ({type(exc).__name__})"

    table = Table(title="Completed Transfers")
    table.add_column("Mode", style="cyan")
    table.add_column("Direction")
    table.add_column("Amount Moved", justify="right", style="green")
    table.add_column("Transfer Hash", style="dim")
    for event in events:
        table.add_row(
            event.mode.name.lower(),
            "to collateral" if event.to_destination else "to margin",
            str(event.amount_moved),
            event.transfer_hash[:18] + "...",
        )
    console.print(table)
    console.print(f"Replay of signed transfer: {replay_result}")
    console.print(
        f"Collateral balance of {holder.address}: "
        f"[bold]{collateral.balance(holder.address)}[/bold]"
    )
