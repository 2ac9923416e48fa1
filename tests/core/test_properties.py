"""Property tests: position, collateral and ownership laws over random inputs.

Uses Hypothesis to fuzz accounts, amounts and call sequences against freshly
deployed ledgers and checks the observable laws after every call.
"""

from __future__ import annotations

import importlib.util

import pytest

if importlib.util.find_spec("hypothesis") is None:  # pragma: no cover
    pytest.skip("hypothesis not installed", allow_module_level=True)

import hypothesis.strategies as st
from hypothesis import assume, given, settings

from perpledger.core import (
    AuthorizationContext,
    FeeManager,
    FundingRate,
    Governance,
    InsuranceFund,
    PerpetualManager,
    PriceOracle,
    Vault,
    link,
    state_to_dict,
)
from perpledger.core.types import (
    REASON_INSUFFICIENT_COLLATERAL,
    REASON_INSUFFICIENT_FUND,
    REASON_NO_POSITION,
    REASON_NOT_AUTHORIZED,
    REASON_NOT_OWNER,
    REASON_POSITION_EXISTS,
)


OWNER = "0x" + "01" * 20
OWNER_CTX = AuthorizationContext(owner=OWNER)

# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

addresses = st.binary(min_size=20, max_size=20).map(lambda b: "0x" + b.hex())
amounts = st.integers(min_value=0, max_value=10**24)
margins = st.integers(min_value=1, max_value=10**24)
leverages = st.integers(min_value=1, max_value=10)


def _linked():
    vault = Vault(OWNER_CTX.with_authorized_caller(OWNER), address="0x" + "0a" * 20)
    manager = PerpetualManager(OWNER_CTX, address="0x" + "0b" * 20, vault=vault)
    link(vault, manager)
    return vault, manager


# ---------------------------------------------------------------------------
# PerpetualManager
# ---------------------------------------------------------------------------

class TestPositionProperties:
    @given(account=addresses, is_long=st.booleans(), margin=margins, leverage=leverages)
    @settings(max_examples=200, deadline=2000)
    def test_open_records_size(self, account, is_long, margin, leverage):
        _, manager = _linked()
        assert manager.open_position(account, account, is_long, margin, leverage).ok
        pos = manager.get_position(account)
        assert pos.size == margin * leverage
        assert pos.margin == margin
        assert pos.is_long == is_long

    @given(account=addresses, first=margins, second=margins, leverage=leverages)
    @settings(max_examples=100, deadline=2000)
    def test_double_open_fails(self, account, first, second, leverage):
        _, manager = _linked()
        manager.open_position(account, account, True, first, leverage)
        r = manager.open_position(account, account, False, second, leverage)
        assert r.reason == REASON_POSITION_EXISTS
        assert manager.get_position(account).margin == first

    @given(account=addresses)
    @settings(max_examples=50, deadline=2000)
    def test_close_without_open_fails(self, account):
        _, manager = _linked()
        assert manager.close_position(account, account).reason == REASON_NO_POSITION

    @given(account=addresses, margin=margins, leverage=leverages)
    @settings(max_examples=100, deadline=2000)
    def test_close_zeroes_position(self, account, margin, leverage):
        _, manager = _linked()
        manager.open_position(account, account, True, margin, leverage)
        assert manager.close_position(account, account).ok
        pos = manager.get_position(account)
        assert pos.margin == 0
        assert pos.size == 0


# ---------------------------------------------------------------------------
# Vault
# ---------------------------------------------------------------------------

class TestCollateralProperties:
    @given(account=addresses, start=amounts, amount=amounts)
    @settings(max_examples=200, deadline=2000)
    def test_deposit_withdraw_round_trip(self, account, start, amount):
        vault, manager = _linked()
        manager.deposit(account, start)
        assert manager.deposit(account, amount).ok
        assert vault.get_collateral(account) == start + amount
        assert manager.withdraw(account, amount).ok
        assert vault.get_collateral(account) == start

    @given(account=addresses, balance=amounts, excess=st.integers(min_value=1, max_value=10**6))
    @settings(max_examples=200, deadline=2000)
    def test_overdraw_fails_unchanged(self, account, balance, excess):
        vault, manager = _linked()
        manager.deposit(account, balance)
        r = manager.withdraw(account, balance + excess)
        assert r.reason == REASON_INSUFFICIENT_COLLATERAL
        assert vault.get_collateral(account) == balance

    @given(caller=addresses, account=addresses, amount=st.integers())
    @settings(max_examples=200, deadline=2000)
    def test_outsider_never_authorized(self, caller, account, amount):
        vault, manager = _linked()
        assume(caller != manager.address)
        manager.deposit(account, 5)
        before = state_to_dict(vault.state)
        assert vault.deposit(caller, account, amount).reason == REASON_NOT_AUTHORIZED
        assert vault.withdraw(caller, account, amount).reason == REASON_NOT_AUTHORIZED
        assert vault.liquidate(caller, account).reason == REASON_NOT_AUTHORIZED
        assert state_to_dict(vault.state) == before


# ---------------------------------------------------------------------------
# Satellite ledgers
# ---------------------------------------------------------------------------

class TestOwnerOnlyProperties:
    @given(balance=amounts, excess=st.integers(min_value=1, max_value=10**6), beneficiary=addresses)
    @settings(max_examples=100, deadline=2000)
    def test_cover_beyond_balance_fails(self, balance, excess, beneficiary):
        fund = InsuranceFund(OWNER_CTX, address="0x" + "0f" * 20)
        fund.deposit(OWNER, balance)
        r = fund.cover_bad_debt(OWNER, beneficiary, balance + excess)
        assert r.reason == REASON_INSUFFICIENT_FUND
        assert fund.get_balance() == balance

    @given(caller=addresses, value=st.integers(), target=addresses)
    @settings(max_examples=200, deadline=2000)
    def test_non_owner_rejected_everywhere(self, caller, value, target):
        assume(caller != OWNER)
        oracle = PriceOracle(OWNER_CTX, address="0x" + "0c" * 20, clock=lambda: 0)
        fees = FeeManager(OWNER_CTX, address="0x" + "0d" * 20)
        funding = FundingRate(OWNER_CTX, address="0x" + "0e" * 20)
        fund = InsuranceFund(OWNER_CTX, address="0x" + "0f" * 20)
        gov = Governance(OWNER_CTX, address="0x" + "10" * 20)
        ledgers = (oracle, fees, funding, fund, gov)
        before = [state_to_dict(ledger.state) for ledger in ledgers]

        results = [
            oracle.set_price(caller, value),
            fees.collect_fee(caller, target, value),
            funding.update_funding(caller),
            fund.deposit(caller, value),
            fund.cover_bad_debt(caller, target, value),
            gov.set_parameter(caller, "feeRate", value),
        ]
        assert all(r.reason == REASON_NOT_OWNER for r in results)
        assert [state_to_dict(ledger.state) for ledger in ledgers] == before
