"""
InsuranceFund: owner-operated loss-absorption reserve.

Accounting identity (checked after every call):

    balance == total_deposited - claims_paid

The beneficiary of ``cover_bad_debt`` is a routing/logging target; it is not
credited anywhere by this ledger.
"""

from __future__ import annotations

from dataclasses import replace

from .auth import AuthorizationContext, canonical_address, require_owner
from .guards import check_address, check_amount
from .ledger import Ledger
from .state import InsuranceState
from .types import (
    Account,
    Address,
    ErrorKind,
    Event,
    LedgerResult,
    REASON_INSUFFICIENT_FUND,
    accepted,
    rejected,
)


def apply_deposit(state: InsuranceState, caller: Address, amount: int) -> LedgerResult:
    reason = require_owner(state.auth, caller)
    if reason is not None:
        return rejected(ErrorKind.AUTHORIZATION, reason)
    reason = check_amount(amount)
    if reason is not None:
        return rejected(ErrorKind.PARAM_DOMAIN, reason)

    new_state = replace(
        state,
        balance=state.balance + amount,
        total_deposited=state.total_deposited + amount,
    )
    return accepted(new_state, Event.INSURANCE_DEPOSITED, value=new_state.balance, amount=amount)


def apply_cover_bad_debt(state: InsuranceState, caller: Address, beneficiary: Account, amount: int) -> LedgerResult:
    reason = require_owner(state.auth, caller)
    if reason is not None:
        return rejected(ErrorKind.AUTHORIZATION, reason)
    reason = check_address(beneficiary) or check_amount(amount)
    if reason is not None:
        return rejected(ErrorKind.PARAM_DOMAIN, reason)
    if amount > state.balance:
        return rejected(ErrorKind.INSUFFICIENT_FUNDS, REASON_INSUFFICIENT_FUND)

    new_state = replace(
        state,
        balance=state.balance - amount,
        claims_paid=state.claims_paid + amount,
    )
    return accepted(
        new_state,
        Event.BAD_DEBT_COVERED,
        value=new_state.balance,
        beneficiary=canonical_address(beneficiary),
        amount=amount,
    )


class InsuranceFund(Ledger[InsuranceState]):
    kind = "InsuranceFund"

    def __init__(self, auth: AuthorizationContext, *, address: Address) -> None:
        super().__init__(InsuranceState(auth=auth), address=address)

    def deposit(self, caller: Address, amount: int) -> LedgerResult:
        return self._apply("deposit", apply_deposit, caller, amount)

    def cover_bad_debt(self, caller: Address, beneficiary: Account, amount: int) -> LedgerResult:
        return self._apply("cover_bad_debt", apply_cover_bad_debt, caller, beneficiary, amount)

    def get_balance(self) -> int:
        return self._state.balance
