"""
FeeManager: owner-operated accumulator of collected trading fees.

The payer is recorded for attribution only; no balance is debited here.
"""

from __future__ import annotations

from dataclasses import replace

from .auth import AuthorizationContext, canonical_address, require_owner
from .guards import check_address, check_amount
from .ledger import Ledger
from .state import FeeState
from .types import Account, Address, ErrorKind, Event, LedgerResult, accepted, rejected


def apply_collect_fee(state: FeeState, caller: Address, payer: Account, amount: int) -> LedgerResult:
    reason = require_owner(state.auth, caller)
    if reason is not None:
        return rejected(ErrorKind.AUTHORIZATION, reason)
    reason = check_address(payer) or check_amount(amount)
    if reason is not None:
        return rejected(ErrorKind.PARAM_DOMAIN, reason)

    payer = canonical_address(payer)
    by_payer = dict(state.fees_by_payer)
    by_payer[payer] = by_payer.get(payer, 0) + amount
    if by_payer[payer] == 0:
        del by_payer[payer]
    new_state = replace(
        state,
        collected_fees=state.collected_fees + amount,
        fees_by_payer=by_payer,
    )
    return accepted(new_state, Event.FEE_COLLECTED, value=new_state.collected_fees, payer=payer, amount=amount)


class FeeManager(Ledger[FeeState]):
    kind = "FeeManager"

    def __init__(self, auth: AuthorizationContext, *, address: Address) -> None:
        super().__init__(FeeState(auth=auth), address=address)

    def collect_fee(self, caller: Address, payer: Account, amount: int) -> LedgerResult:
        return self._apply("collect_fee", apply_collect_fee, caller, payer, amount)

    def get_collected_fees(self) -> int:
        return self._state.collected_fees

    def get_fees_paid_by(self, payer: Account) -> int:
        return self._state.fees_by_payer.get(canonical_address(payer, name="payer"), 0)
