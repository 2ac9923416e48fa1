"""
FundingRate: per-account funding accrual counter.

``update_funding`` adds exactly one to the *caller's own* counter. It is a
placeholder for a rate x notional x elapsed-time settlement and is kept
literal for compatibility with existing clients.
"""

from __future__ import annotations

from dataclasses import replace

from .auth import AuthorizationContext, canonical_address, require_owner
from .ledger import Ledger
from .state import FundingState
from .types import Account, Address, ErrorKind, Event, LedgerResult, accepted, rejected


FUNDING_INCREMENT = 1


def apply_update_funding(state: FundingState, caller: Address) -> LedgerResult:
    reason = require_owner(state.auth, caller)
    if reason is not None:
        return rejected(ErrorKind.AUTHORIZATION, reason)

    account = canonical_address(caller)
    payments = dict(state.payments)
    payments[account] = payments.get(account, 0) + FUNDING_INCREMENT
    new_state = replace(state, payments=payments)
    return accepted(new_state, Event.FUNDING_UPDATED, value=payments[account], account=account)


class FundingRate(Ledger[FundingState]):
    kind = "FundingRate"

    def __init__(self, auth: AuthorizationContext, *, address: Address) -> None:
        super().__init__(FundingState(auth=auth), address=address)

    def update_funding(self, caller: Address) -> LedgerResult:
        return self._apply("update_funding", apply_update_funding, caller)

    def get_funding_payment(self, account: Account) -> int:
        return self._state.payments.get(canonical_address(account, name="account"), 0)
