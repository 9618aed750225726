"""Shared test fixtures for custodybridge."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from eth_account import Account
from eth_account.signers.local import LocalAccount

from custodybridge.config import BridgeConfig
from custodybridge.core.event_bus import EventBus
from custodybridge.core.options_codec import encode_options
from custodybridge.core.orchestrator import TransferOrchestrator
from custodybridge.core.replay_guard import ReplayGuard
from custodybridge.ledgers.memory import (
    InMemoryCollateralLedger,
    InMemoryMarginLedger,
    InMemoryTokenVault,
)
from custodybridge.models.events import BridgeEvent, EventKind
from custodybridge.models.transfer import MarginAccount, Transfer, TransferMode

BRIDGE_ADDRESS = "0x00000000000000000000000000000000000b1d9e"
MARGIN_ADDRESS = "0x000000000000000000000000000000000000a001"
COLLATERAL_ADDRESS = "0x000000000000000000000000000000000000b001"
USD_TOKEN = "0x000000000000000000000000000000000000c001"
OTHER_TOKEN = "0x000000000000000000000000000000000000c002"
GLOBAL_DELEGATE = "0x000000000000000000000000000000000000d001"
LOCAL_DELEGATE = "0x000000000000000000000000000000000000d002"
COLLATERAL_DELEGATE = "0x000000000000000000000000000000000000d003"
STRANGER = "0x000000000000000000000000000000000000d004"
MARKET_ID = 2
OTHER_MARKET_ID = 3
NOW = 1_700_000_000
CHAIN_ID = 1


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test databases."""
    return tmp_path


@pytest.fixture
def holder() -> LocalAccount:
    """The account holder; signs transfers."""
    return Account.from_key("0x" + "11" * 32)


@pytest.fixture
def intruder() -> LocalAccount:
    """A key that is not the holder's."""
    return Account.from_key("0x" + "22" * 32)


@pytest.fixture
def vault() -> InMemoryTokenVault:
    return InMemoryTokenVault(strict_approvals=True)


@pytest.fixture
def margin_ledger(vault: InMemoryTokenVault, holder: LocalAccount) -> InMemoryMarginLedger:
    """Margin ledger with two markets, a funded holder, and delegates."""
    ledger = InMemoryMarginLedger(MARGIN_ADDRESS, vault)
    ledger.add_market(MARKET_ID, USD_TOKEN)
    ledger.add_market(OTHER_MARKET_ID, OTHER_TOKEN)
    ledger.credit(MarginAccount(owner=holder.address, number=0), MARKET_ID, 1_000)
    ledger.set_global_delegate(GLOBAL_DELEGATE)
    ledger.set_local_delegate(holder.address, LOCAL_DELEGATE)
    return ledger


@pytest.fixture
def collateral_ledger(
    vault: InMemoryTokenVault, holder: LocalAccount
) -> InMemoryCollateralLedger:
    """Collateral ledger using the USD token, with a funded holder."""
    ledger = InMemoryCollateralLedger(COLLATERAL_ADDRESS, USD_TOKEN, vault)
    ledger.credit(holder.address, 500)
    ledger.grant_permission(holder.address, COLLATERAL_DELEGATE)
    ledger.grant_permission(holder.address, BRIDGE_ADDRESS)
    return ledger


@pytest.fixture
def replay_guard(tmp_dir: Path) -> ReplayGuard:
    """Provide a fresh ReplayGuard backed by a temp SQLite database."""
    return ReplayGuard(tmp_dir / "replay_guard.db")


@pytest.fixture
def bridge_config(tmp_dir: Path) -> BridgeConfig:
    return BridgeConfig(
        chain_id=CHAIN_ID,
        bridge_address=BRIDGE_ADDRESS,
        replay_guard_path=tmp_dir / "replay_guard.db",
    )


@pytest.fixture
def events() -> list[BridgeEvent]:
    return []


@pytest.fixture
def event_bus(events: list[BridgeEvent]) -> EventBus:
    """An EventBus that records every emitted event into ``events``."""
    bus = EventBus()
    for kind in EventKind:
        bus.register_handler(kind, events.append)
    return bus


@pytest.fixture
def orchestrator(
    margin_ledger: InMemoryMarginLedger,
    collateral_ledger: InMemoryCollateralLedger,
    vault: InMemoryTokenVault,
    bridge_config: BridgeConfig,
    replay_guard: ReplayGuard,
    event_bus: EventBus,
) -> TransferOrchestrator:
    """A fully bootstrapped orchestrator with a fixed clock at ``NOW``."""
    orch = TransferOrchestrator(
        margin_ledger,
        [collateral_ledger],
        vault,
        config=bridge_config,
        replay_guard=replay_guard,
        event_bus=event_bus,
        clock=lambda: NOW,
    )
    orch.approve_maximum_on_margin_ledger(MARKET_ID)
    orch.approve_maximum_on_collateral_ledger(COLLATERAL_ADDRESS)
    return orch


# ---------------------------------------------------------------------------
# Transfer factory shared across test modules
# ---------------------------------------------------------------------------


@pytest.fixture
def make_transfer(holder: LocalAccount) -> Callable[..., Transfer]:
    """Factory fixture: build a Transfer with sensible defaults."""

    def _factory(
        mode: TransferMode | int = TransferMode.SOME_TO_DESTINATION,
        amount: int = 100,
        expiration: int = 0,
        salt: int = 7,
        **overrides: Any,
    ) -> Transfer:
        defaults: dict[str, Any] = {
            "account": holder.address,
            "counterparty": COLLATERAL_ADDRESS,
            "margin_account_number": 0,
            "margin_market_id": MARKET_ID,
            "amount": amount,
            "options": encode_options(mode, expiration, salt),
        }
        defaults.update(overrides)
        return Transfer(**defaults)

    return _factory
