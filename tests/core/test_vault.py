"""Tests for perpledger/core/vault.py: authorized-caller collateral custody."""

import logging

import pytest

from perpledger.core import AuthorizationContext, ErrorKind, Event, Vault
from perpledger.core.types import REASON_INSUFFICIENT_COLLATERAL, REASON_NOT_AUTHORIZED, REASON_NOT_OWNER


OWNER = "0x" + "01" * 20
PERP_MANAGER = "0x" + "02" * 20
TRADER = "0x" + "03" * 20
OTHER = "0x" + "04" * 20
VAULT_ADDR = "0x" + "0a" * 20


def _make_vault(*, restrict_repoint: bool = False) -> Vault:
    auth = AuthorizationContext(owner=OWNER, authorized_caller=PERP_MANAGER)
    return Vault(auth, address=VAULT_ADDR, restrict_repoint=restrict_repoint)


# ---------------------------------------------------------------------------
# construction
# ---------------------------------------------------------------------------

class TestConstruction:
    def test_sets_perp_manager(self):
        vault = _make_vault()
        assert vault.perp_manager == PERP_MANAGER
        assert vault.authorized_caller == PERP_MANAGER
        assert vault.owner == OWNER

    def test_requires_authorized_caller(self):
        with pytest.raises(ValueError):
            Vault(AuthorizationContext(owner=OWNER), address=VAULT_ADDR)

    def test_unknown_account_reads_zero(self):
        assert _make_vault().get_collateral(TRADER) == 0


# ---------------------------------------------------------------------------
# deposit / withdraw
# ---------------------------------------------------------------------------

class TestDepositWithdraw:
    def test_scenario_deposit_then_withdraw(self):
        vault = _make_vault()
        r = vault.deposit(PERP_MANAGER, TRADER, 1000)
        assert r.ok
        assert r.event == Event.COLLATERAL_DEPOSITED
        assert vault.get_collateral(TRADER) == 1000

        r = vault.withdraw(PERP_MANAGER, TRADER, 500)
        assert r.ok
        assert r.value == 500
        assert vault.get_collateral(TRADER) == 500

    def test_deposit_by_other_not_authorized(self):
        vault = _make_vault()
        r = vault.deposit(OWNER, TRADER, 100)
        assert not r.ok
        assert r.error == ErrorKind.AUTHORIZATION
        assert r.reason == REASON_NOT_AUTHORIZED
        assert vault.get_collateral(TRADER) == 0

    def test_withdraw_by_other_not_authorized(self):
        vault = _make_vault()
        vault.deposit(PERP_MANAGER, TRADER, 100)
        r = vault.withdraw(TRADER, TRADER, 100)
        assert r.reason == REASON_NOT_AUTHORIZED
        assert vault.get_collateral(TRADER) == 100

    def test_not_authorized_regardless_of_amount(self):
        vault = _make_vault()
        assert vault.deposit(OTHER, TRADER, -5).reason == REASON_NOT_AUTHORIZED
        assert vault.withdraw(OTHER, TRADER, 10**30).reason == REASON_NOT_AUTHORIZED

    def test_withdraw_more_than_balance(self):
        vault = _make_vault()
        vault.deposit(PERP_MANAGER, TRADER, 100)
        r = vault.withdraw(PERP_MANAGER, TRADER, 200)
        assert not r.ok
        assert r.error == ErrorKind.INSUFFICIENT_FUNDS
        assert r.reason == REASON_INSUFFICIENT_COLLATERAL
        assert vault.get_collateral(TRADER) == 100

    def test_withdraw_entire_balance_prunes_entry(self):
        vault = _make_vault()
        vault.deposit(PERP_MANAGER, TRADER, 100)
        assert vault.withdraw(PERP_MANAGER, TRADER, 100).ok
        assert TRADER not in vault.state.balances
        assert vault.get_collateral(TRADER) == 0

    def test_negative_amount_rejected(self):
        vault = _make_vault()
        r = vault.deposit(PERP_MANAGER, TRADER, -1)
        assert r.error == ErrorKind.PARAM_DOMAIN

    def test_bool_amount_rejected(self):
        vault = _make_vault()
        assert vault.deposit(PERP_MANAGER, TRADER, True).error == ErrorKind.PARAM_DOMAIN

    def test_invalid_account_rejected(self):
        vault = _make_vault()
        r = vault.deposit(PERP_MANAGER, "not-an-address", 10)
        assert r.error == ErrorKind.PARAM_DOMAIN

    def test_account_case_insensitive(self):
        vault = _make_vault()
        upper = "0x" + "AB" * 20
        vault.deposit(PERP_MANAGER, upper, 10)
        assert vault.get_collateral(upper.lower()) == 10

    def test_accounts_isolated(self):
        vault = _make_vault()
        vault.deposit(PERP_MANAGER, TRADER, 10)
        vault.deposit(PERP_MANAGER, OTHER, 20)
        vault.withdraw(PERP_MANAGER, TRADER, 10)
        assert vault.get_collateral(OTHER) == 20
        assert vault.total_collateral() == 20


# ---------------------------------------------------------------------------
# liquidate
# ---------------------------------------------------------------------------

class TestLiquidate:
    def test_zeroes_balance(self):
        vault = _make_vault()
        vault.deposit(PERP_MANAGER, TRADER, 100)
        r = vault.liquidate(PERP_MANAGER, TRADER)
        assert r.ok
        assert r.effects["seized"] == 100
        assert vault.get_collateral(TRADER) == 0

    def test_empty_account(self):
        vault = _make_vault()
        r = vault.liquidate(PERP_MANAGER, TRADER)
        assert r.ok
        assert r.effects["seized"] == 0

    def test_only_authorized(self):
        vault = _make_vault()
        vault.deposit(PERP_MANAGER, TRADER, 100)
        r = vault.liquidate(OWNER, TRADER)
        assert r.reason == REASON_NOT_AUTHORIZED
        assert vault.get_collateral(TRADER) == 100


# ---------------------------------------------------------------------------
# set_perp_manager
# ---------------------------------------------------------------------------

class TestSetPerpManager:
    def test_open_repoint_by_anyone(self, caplog):
        vault = _make_vault()
        with caplog.at_level(logging.WARNING, logger="perpledger.core.vault"):
            r = vault.set_perp_manager(OTHER, OTHER)
        assert r.ok
        assert vault.authorized_caller == OTHER
        assert "non-owner" in caplog.text

    def test_owner_repoint_not_warned(self, caplog):
        vault = _make_vault()
        with caplog.at_level(logging.WARNING, logger="perpledger.core.vault"):
            assert vault.set_perp_manager(OWNER, OTHER).ok
        assert "non-owner" not in caplog.text

    def test_repoint_moves_authority(self):
        vault = _make_vault()
        vault.set_perp_manager(OWNER, OTHER)
        assert vault.deposit(PERP_MANAGER, TRADER, 1).reason == REASON_NOT_AUTHORIZED
        assert vault.deposit(OTHER, TRADER, 1).ok

    def test_restricted_repoint(self):
        vault = _make_vault(restrict_repoint=True)
        r = vault.set_perp_manager(OTHER, OTHER)
        assert r.reason == REASON_NOT_OWNER
        assert vault.authorized_caller == PERP_MANAGER
        assert vault.set_perp_manager(OWNER, OTHER).ok

    def test_invalid_address(self):
        vault = _make_vault()
        r = vault.set_perp_manager(OWNER, "0x1234")
        assert r.error == ErrorKind.PARAM_DOMAIN
        assert vault.authorized_caller == PERP_MANAGER
