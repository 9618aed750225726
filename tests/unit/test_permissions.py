"""Tests for the PermissionResolver — owner, delegate, or nothing."""

from __future__ import annotations

import pytest

from custodybridge.core.permissions import PermissionResolver
from custodybridge.models.authorization import (
    DelegateAuthorization,
    DelegateScope,
    OwnerAuthorization,
)

from conftest import COLLATERAL_DELEGATE, GLOBAL_DELEGATE, LOCAL_DELEGATE, STRANGER


@pytest.fixture
def resolver(margin_ledger) -> PermissionResolver:
    return PermissionResolver(margin_ledger)


class TestOwner:
    @pytest.mark.parametrize("to_destination", [True, False])
    def test_owner_always_authorized(
        self, resolver, make_transfer, holder, collateral_ledger, to_destination
    ):
        result = resolver.resolve(
            holder.address, make_transfer(), to_destination, collateral_ledger
        )
        assert isinstance(result, OwnerAuthorization)

    def test_owner_match_ignores_address_case(
        self, resolver, make_transfer, holder, collateral_ledger
    ):
        result = resolver.resolve(
            holder.address.lower(), make_transfer(), True, collateral_ledger
        )
        assert isinstance(result, OwnerAuthorization)


class TestTowardDestination:
    def test_local_delegate(self, resolver, make_transfer, collateral_ledger):
        result = resolver.resolve(LOCAL_DELEGATE, make_transfer(), True, collateral_ledger)
        assert isinstance(result, DelegateAuthorization)
        assert result.scope is DelegateScope.MARGIN_LOCAL

    def test_global_delegate(self, resolver, make_transfer, collateral_ledger):
        result = resolver.resolve(GLOBAL_DELEGATE, make_transfer(), True, collateral_ledger)
        assert isinstance(result, DelegateAuthorization)
        assert result.scope is DelegateScope.MARGIN_GLOBAL

    def test_collateral_permission_does_not_count(
        self, resolver, make_transfer, collateral_ledger
    ):
        assert not resolver.is_authorized(
            COLLATERAL_DELEGATE, make_transfer(), True, collateral_ledger
        )

    def test_local_delegate_of_other_account(
        self, resolver, make_transfer, margin_ledger, collateral_ledger
    ):
        margin_ledger.set_local_delegate(STRANGER, LOCAL_DELEGATE)
        transfer = make_transfer(account=STRANGER)
        assert resolver.is_authorized(LOCAL_DELEGATE, transfer, True, collateral_ledger)
        other = make_transfer(account="0x000000000000000000000000000000000000e001")
        assert not resolver.is_authorized(LOCAL_DELEGATE, other, True, collateral_ledger)


class TestTowardSource:
    def test_collateral_permission(self, resolver, make_transfer, collateral_ledger):
        result = resolver.resolve(
            COLLATERAL_DELEGATE, make_transfer(), False, collateral_ledger
        )
        assert isinstance(result, DelegateAuthorization)
        assert result.scope is DelegateScope.COLLATERAL

    @pytest.mark.parametrize("caller", [GLOBAL_DELEGATE, LOCAL_DELEGATE])
    def test_margin_delegates_do_not_count(
        self, resolver, make_transfer, collateral_ledger, caller
    ):
        assert resolver.resolve(caller, make_transfer(), False, collateral_ledger) is None


class TestStranger:
    @pytest.mark.parametrize("to_destination", [True, False])
    def test_stranger_denied(self, resolver, make_transfer, collateral_ledger, to_destination):
        assert resolver.resolve(STRANGER, make_transfer(), to_destination, collateral_ledger) is None
