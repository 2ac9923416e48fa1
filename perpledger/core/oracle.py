"""
PriceOracle: one owner-writable reference price.

The price is not bounds-checked; plausibility is the publisher's concern.
Each accepted ``set_price`` also stamps the ledger clock so readers can ask
whether the price is still within a validity window.
"""

from __future__ import annotations

from dataclasses import replace
import time
from typing import Callable, Optional

from .auth import AuthorizationContext, require_owner
from .guards import check_value
from .ledger import Ledger
from .state import OracleState
from .types import Address, ErrorKind, Event, LedgerResult, accepted, rejected


Clock = Callable[[], int]


def _wall_clock() -> int:
    return int(time.time())


def apply_set_price(state: OracleState, caller: Address, value: int, now: int) -> LedgerResult:
    reason = require_owner(state.auth, caller)
    if reason is not None:
        return rejected(ErrorKind.AUTHORIZATION, reason)
    reason = check_value(value)
    if reason is not None:
        return rejected(ErrorKind.PARAM_DOMAIN, reason)
    new_state = replace(state, price=value, updated_at=now)
    return accepted(new_state, Event.PRICE_SET, value=value, previous=state.price, updated_at=now)


class PriceOracle(Ledger[OracleState]):
    kind = "PriceOracle"

    def __init__(
        self,
        auth: AuthorizationContext,
        *,
        address: Address,
        initial_price: int = 0,
        clock: Optional[Clock] = None,
    ) -> None:
        if check_value(initial_price) is not None:
            raise ValueError(f"initial_price must be an int, got {initial_price!r}")
        self._clock: Clock = clock or _wall_clock
        super().__init__(OracleState(auth=auth, price=initial_price, updated_at=self._clock()), address=address)

    def set_price(self, caller: Address, value: int) -> LedgerResult:
        return self._apply("set_price", apply_set_price, caller, value, self._clock())

    def get_price(self) -> int:
        return self._state.price

    @property
    def updated_at(self) -> int:
        return self._state.updated_at

    def is_fresh(self, now: Optional[int] = None, *, max_staleness: int = 300) -> bool:
        """True iff the price was stamped at most ``max_staleness`` seconds before ``now``."""
        if max_staleness <= 0:
            raise ValueError(f"max_staleness must be positive: {max_staleness}")
        now = self._clock() if now is None else now
        stamped = self._state.updated_at
        if stamped > now:
            return False
        return (now - stamped) <= max_staleness
