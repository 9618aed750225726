"""Tests for the in-memory ledgers and token vault."""

from __future__ import annotations

import pytest

from custodybridge.ledgers.interfaces import CollateralLedger, MarginLedger, TokenCustody
from custodybridge.ledgers.memory import LedgerOperationError
from custodybridge.models.transfer import AssetAmount, MarginAccount

from conftest import BRIDGE_ADDRESS, MARKET_ID, STRANGER, USD_TOKEN


class TestProtocols:
    def test_implementations_satisfy_protocols(self, margin_ledger, collateral_ledger, vault):
        assert isinstance(margin_ledger, MarginLedger)
        assert isinstance(collateral_ledger, CollateralLedger)
        assert isinstance(vault, TokenCustody)


class TestTokenVault:
    def test_transfer_requires_balance(self, vault):
        with pytest.raises(LedgerOperationError):
            vault.transfer(USD_TOKEN, STRANGER, BRIDGE_ADDRESS, 1)

    def test_strict_approvals_require_reset(self, vault):
        vault.approve(USD_TOKEN, BRIDGE_ADDRESS, STRANGER, 10)
        with pytest.raises(LedgerOperationError, match="reset to zero"):
            vault.approve(USD_TOKEN, BRIDGE_ADDRESS, STRANGER, 20)
        vault.approve(USD_TOKEN, BRIDGE_ADDRESS, STRANGER, 0)
        vault.approve(USD_TOKEN, BRIDGE_ADDRESS, STRANGER, 20)
        assert vault.allowance(USD_TOKEN, BRIDGE_ADDRESS, STRANGER) == 20

    def test_transfer_from_spends_allowance(self, vault):
        vault.mint(USD_TOKEN, BRIDGE_ADDRESS, 10)
        vault.approve(USD_TOKEN, BRIDGE_ADDRESS, STRANGER, 10)
        vault.transfer_from(USD_TOKEN, STRANGER, BRIDGE_ADDRESS, STRANGER, 4)
        assert vault.allowance(USD_TOKEN, BRIDGE_ADDRESS, STRANGER) == 6
        assert vault.balance_of(USD_TOKEN, STRANGER) == 4


class TestMarginLedger:
    def test_target_withdrawal_empties_account(self, margin_ledger, holder, vault):
        account = MarginAccount(owner=holder.address)
        margin_ledger.withdraw(account, MARKET_ID, AssetAmount.to_zero(), BRIDGE_ADDRESS)
        assert margin_ledger.balance(account, MARKET_ID) == 0
        assert vault.balance_of(USD_TOKEN, BRIDGE_ADDRESS) == 1_000

    def test_overdraw_rejected(self, margin_ledger, holder):
        with pytest.raises(LedgerOperationError):
            margin_ledger.withdraw(
                MarginAccount(owner=holder.address), MARKET_ID,
                AssetAmount.delta(5_000), BRIDGE_ADDRESS,
            )

    def test_deposit_requires_allowance(self, margin_ledger, holder, vault):
        vault.mint(USD_TOKEN, BRIDGE_ADDRESS, 10)
        with pytest.raises(LedgerOperationError, match="not approved"):
            margin_ledger.deposit(
                MarginAccount(owner=holder.address), MARKET_ID, 10, BRIDGE_ADDRESS
            )

    def test_unknown_market(self, margin_ledger):
        with pytest.raises(LedgerOperationError, match="Unknown market"):
            margin_ledger.get_asset_for_market(99)


class TestCollateralLedger:
    def test_withdraw_requires_operator_permission(self, collateral_ledger, holder):
        with pytest.raises(LedgerOperationError, match="may not withdraw"):
            collateral_ledger.withdraw(holder.address, STRANGER, 10, STRANGER)

    def test_owner_may_withdraw(self, collateral_ledger, holder, vault):
        collateral_ledger.withdraw(holder.address, holder.address, 10, holder.address)
        assert collateral_ledger.balance(holder.address) == 490
        assert vault.balance_of(USD_TOKEN, holder.address) == 10
