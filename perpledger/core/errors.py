"""Exception types for the perpledger ledgers.

Ledger calls return ``LedgerResult``; ``unwrap()`` converts a rejected result
into the matching exception for callers that prefer raising.
"""

from __future__ import annotations

from .types import ErrorKind, LedgerResult


class LedgerError(Exception):
    """Base class for every rejection raised by ``unwrap()``."""

    kind: ErrorKind | None = None

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class AuthorizationError(LedgerError):
    """Caller is not the registered owner or authorized caller."""

    kind = ErrorKind.AUTHORIZATION


class StateError(LedgerError):
    """An operation's state precondition is not satisfied."""

    kind = ErrorKind.STATE


class InsufficientFundsError(LedgerError):
    """A requested debit exceeds the available balance."""

    kind = ErrorKind.INSUFFICIENT_FUNDS


class ParamDomainError(LedgerError):
    """A parameter lies outside its accepted domain."""

    kind = ErrorKind.PARAM_DOMAIN


class InvariantError(LedgerError):
    """A post-state violates one or more ledger invariants."""

    kind = ErrorKind.INVARIANT

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(f"invariant:{','.join(violations)}")


class LinkError(Exception):
    """Raised when a vault/manager pair cannot be linked consistently."""


class ConfigError(ValueError):
    """Raised when a configuration mapping is malformed."""


_BY_KIND: dict[ErrorKind, type[LedgerError]] = {
    ErrorKind.AUTHORIZATION: AuthorizationError,
    ErrorKind.STATE: StateError,
    ErrorKind.INSUFFICIENT_FUNDS: InsufficientFundsError,
    ErrorKind.PARAM_DOMAIN: ParamDomainError,
}


def unwrap(result: LedgerResult) -> LedgerResult:
    """Return ``result`` if accepted, else raise the matching ``LedgerError``.

    Raises:
        AuthorizationError: Caller identity check failed.
        StateError: Position state precondition failed.
        InsufficientFundsError: Debit exceeds balance.
        ParamDomainError: Parameter outside its domain.
        InvariantError: Post-state violated an invariant.
    """
    if result.ok:
        return result

    reason = result.reason or ""
    if result.error is ErrorKind.INVARIANT:
        raise InvariantError(reason.removeprefix("invariant:").split(","))
    exc_type = _BY_KIND.get(result.error) if result.error is not None else None
    if exc_type is None:
        raise LedgerError(reason)
    raise exc_type(reason)
