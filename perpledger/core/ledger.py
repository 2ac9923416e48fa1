"""Mutex-guarded ledger shell.

A ledger owns exactly one frozen state snapshot. Every mutating call runs a
pure transition ``(state, ...) -> LedgerResult`` under the ledger's lock:

1. the transition runs its guards (parameter domain, identity, state, funds)
   against the PRE-state and builds a candidate POST-state,
2. the candidate is checked against ``invariants.check_all``,
3. an optional ``before_commit`` hook runs (cross-ledger calls),
4. the candidate replaces the current snapshot in a single assignment.

A call rejected at any step leaves the snapshot untouched. Readers take the
current snapshot without locking; it is immutable, so they never observe a
half-applied call.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Generic, Optional, TypeVar

from .auth import canonical_address
from .invariants import check_all
from .types import Address, ErrorKind, LedgerResult, rejected


S = TypeVar("S")

Transition = Callable[..., LedgerResult]
CommitHook = Callable[[LedgerResult], Optional[LedgerResult]]


class Ledger(Generic[S]):
    """Base class for every ledger: one snapshot, one lock, one address."""

    kind = "Ledger"

    def __init__(self, state: S, *, address: Address) -> None:
        self.address: Address = canonical_address(address)
        self._state: S = state
        self._lock = threading.RLock()
        self._logger = logging.getLogger(type(self).__module__)

    @property
    def state(self) -> S:
        return self._state

    @property
    def owner(self) -> Address:
        return self._state.auth.owner  # type: ignore[attr-defined]

    def _apply(
        self,
        op: str,
        transition: Transition,
        *args: Any,
        before_commit: CommitHook | None = None,
    ) -> LedgerResult:
        with self._lock:
            result = transition(self._state, *args)
            if not result.ok:
                self._logger.info("%s.%s rejected: %s", self.kind, op, result.reason)
                return result

            violations = check_all(result.state)
            if violations:
                self._logger.error("%s.%s violates %s", self.kind, op, violations)
                return rejected(ErrorKind.INVARIANT, f"invariant:{','.join(violations)}")

            if before_commit is not None:
                blocked = before_commit(result)
                if blocked is not None:
                    self._logger.info("%s.%s rejected downstream: %s", self.kind, op, blocked.reason)
                    return blocked

            self._state = result.state
            self._logger.debug("%s.%s accepted: %s %s", self.kind, op, result.event, dict(result.effects))
            return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}(address={self.address!r}, owner={self.owner!r})"
