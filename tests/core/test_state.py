"""Tests for perpledger/core/state.py: snapshot immutability and serialization."""

import pytest

from perpledger.core import AuthorizationContext, Position, state_from_dict, state_to_dict
from perpledger.core.state import InsuranceState, ManagerState, OracleState, VaultState


OWNER = "0x" + "01" * 20
MANAGER = "0x" + "02" * 20
USER = "0x" + "03" * 20
OTHER = "0x" + "04" * 20


class TestImmutability:
    def test_mapping_fields_read_only(self):
        s = VaultState(auth=AuthorizationContext(owner=OWNER), balances={USER: 1})
        with pytest.raises(TypeError):
            s.balances[USER] = 2

    def test_source_dict_detached(self):
        raw = {USER: 1}
        s = VaultState(auth=AuthorizationContext(owner=OWNER), balances=raw)
        raw[USER] = 99
        assert s.balances[USER] == 1


class TestSerialization:
    def test_vault_round_trip(self):
        auth = AuthorizationContext(owner=OWNER, authorized_caller=MANAGER)
        s = VaultState(auth=auth, balances={OTHER: 5, USER: 7})
        d = state_to_dict(s)
        assert d["auth"] == {"owner": OWNER, "authorized_caller": MANAGER}
        assert list(d["balances"]) == sorted([OTHER, USER])
        assert state_from_dict(VaultState, d) == s

    def test_manager_round_trip(self):
        s = ManagerState(
            auth=AuthorizationContext(owner=OWNER),
            vault="0x" + "0a" * 20,
            min_leverage=1,
            max_leverage=10,
            positions={USER: Position(margin=10, size=50, is_long=True, entry_price=2000, leverage=5)},
        )
        d = state_to_dict(s)
        assert d["positions"][USER]["size"] == 50
        assert state_from_dict(ManagerState, d) == s

    def test_defaults_fill_missing_optional_fields(self):
        s = state_from_dict(InsuranceState, {"auth": {"owner": OWNER}, "balance": 0})
        assert s.total_deposited == 0

    def test_missing_required_field(self):
        with pytest.raises(KeyError):
            state_from_dict(OracleState, {"price": 1})

    def test_bad_scalar_type(self):
        with pytest.raises(TypeError):
            state_from_dict(OracleState, {"auth": {"owner": OWNER}, "price": 1.5})
