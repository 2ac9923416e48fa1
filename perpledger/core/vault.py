"""
Vault: per-account collateral custody.

Only the single authorized caller (expected to be the PerpetualManager) may
move funds. Balances are sparse: an account that decays to zero is dropped,
and reads of unknown accounts return 0.

``set_perp_manager`` repoints the authorized caller. By default anyone may
call it. A repoint by a non-owner is logged as a warning, and
``restrict_repoint=True`` makes it owner-only.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional

from .auth import AuthorizationContext, canonical_address, require_authorized, require_owner
from .guards import check_address, check_amount
from .ledger import Ledger
from .state import VaultState
from .types import (
    Account,
    Address,
    ErrorKind,
    Event,
    LedgerResult,
    REASON_INSUFFICIENT_COLLATERAL,
    accepted,
    rejected,
)


def _with_balance(state: VaultState, account: Account, amount: int) -> VaultState:
    balances = dict(state.balances)
    if amount == 0:
        balances.pop(account, None)
    else:
        balances[account] = amount
    return replace(state, balances=balances)


def _account_guards(state: VaultState, caller: Address, account: Account) -> Optional[LedgerResult]:
    reason = require_authorized(state.auth, caller)
    if reason is not None:
        return rejected(ErrorKind.AUTHORIZATION, reason)
    reason = check_address(account)
    if reason is not None:
        return rejected(ErrorKind.PARAM_DOMAIN, reason)
    return None


def apply_deposit(state: VaultState, caller: Address, account: Account, amount: int) -> LedgerResult:
    failed = _account_guards(state, caller, account)
    if failed is not None:
        return failed
    reason = check_amount(amount)
    if reason is not None:
        return rejected(ErrorKind.PARAM_DOMAIN, reason)

    account = canonical_address(account)
    balance = state.balances.get(account, 0) + amount
    return accepted(
        _with_balance(state, account, balance),
        Event.COLLATERAL_DEPOSITED,
        value=balance,
        account=account,
        amount=amount,
    )


def apply_withdraw(state: VaultState, caller: Address, account: Account, amount: int) -> LedgerResult:
    failed = _account_guards(state, caller, account)
    if failed is not None:
        return failed
    reason = check_amount(amount)
    if reason is not None:
        return rejected(ErrorKind.PARAM_DOMAIN, reason)

    account = canonical_address(account)
    current = state.balances.get(account, 0)
    if amount > current:
        return rejected(ErrorKind.INSUFFICIENT_FUNDS, REASON_INSUFFICIENT_COLLATERAL)
    balance = current - amount
    return accepted(
        _with_balance(state, account, balance),
        Event.COLLATERAL_WITHDRAWN,
        value=balance,
        account=account,
        amount=amount,
    )


def apply_liquidate(state: VaultState, caller: Address, account: Account) -> LedgerResult:
    failed = _account_guards(state, caller, account)
    if failed is not None:
        return failed

    account = canonical_address(account)
    seized = state.balances.get(account, 0)
    return accepted(
        _with_balance(state, account, 0),
        Event.COLLATERAL_LIQUIDATED,
        value=0,
        account=account,
        seized=seized,
    )


def apply_set_perp_manager(state: VaultState, caller: Address, address: Address, restricted: bool) -> LedgerResult:
    if restricted:
        reason = require_owner(state.auth, caller)
        if reason is not None:
            return rejected(ErrorKind.AUTHORIZATION, reason)
    reason = check_address(address)
    if reason is not None:
        return rejected(ErrorKind.PARAM_DOMAIN, reason)

    previous = state.auth.authorized_caller
    new_state = replace(state, auth=state.auth.with_authorized_caller(address))
    return accepted(
        new_state,
        Event.PERP_MANAGER_SET,
        value=new_state.auth.authorized_caller,
        previous=previous,
    )


class Vault(Ledger[VaultState]):
    kind = "Vault"

    def __init__(
        self,
        auth: AuthorizationContext,
        *,
        address: Address,
        restrict_repoint: bool = False,
    ) -> None:
        if auth.authorized_caller is None:
            raise ValueError("Vault requires an initial authorized caller")
        self.restrict_repoint = restrict_repoint
        super().__init__(VaultState(auth=auth), address=address)

    @property
    def authorized_caller(self) -> Address:
        return self._state.auth.authorized_caller  # type: ignore[return-value]

    # The authorized caller is expected to be the manager.
    perp_manager = authorized_caller

    def set_perp_manager(self, caller: Address, address: Address) -> LedgerResult:
        result = self._apply(
            "set_perp_manager", apply_set_perp_manager, caller, address, self.restrict_repoint,
        )
        if result.ok and not self._state.auth.is_owner(caller):
            self._logger.warning(
                "Vault %s authorized caller repointed to %s by non-owner %s",
                self.address, result.value, caller,
            )
        return result

    def deposit(self, caller: Address, account: Account, amount: int) -> LedgerResult:
        return self._apply("deposit", apply_deposit, caller, account, amount)

    def withdraw(self, caller: Address, account: Account, amount: int) -> LedgerResult:
        return self._apply("withdraw", apply_withdraw, caller, account, amount)

    def liquidate(self, caller: Address, account: Account) -> LedgerResult:
        return self._apply("liquidate", apply_liquidate, caller, account)

    def get_collateral(self, account: Account) -> int:
        return self._state.balances.get(canonical_address(account, name="account"), 0)

    def total_collateral(self) -> int:
        return sum(self._state.balances.values())
