"""Ledger state snapshots and their serialization.

Each ledger holds one frozen snapshot and replaces it wholesale on every
accepted call. Mapping fields are wrapped read-only at construction so a
snapshot handed out to a reader can never be mutated behind the ledger's back.

Round-trip property (tested): ``state_from_dict(type(s), state_to_dict(s)) == s``.
"""

from __future__ import annotations

from dataclasses import MISSING, dataclass, field, fields
from types import MappingProxyType
from typing import Any, Mapping

from .auth import AuthorizationContext
from .types import Account, Address, Position


def _freeze(obj: Any, name: str) -> None:
    object.__setattr__(obj, name, MappingProxyType(dict(getattr(obj, name))))


@dataclass(frozen=True)
class OracleState:
    auth: AuthorizationContext
    price: int = 0
    updated_at: int = 0


@dataclass(frozen=True)
class FeeState:
    auth: AuthorizationContext
    collected_fees: int = 0
    fees_by_payer: Mapping[Account, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _freeze(self, "fees_by_payer")


@dataclass(frozen=True)
class FundingState:
    auth: AuthorizationContext
    payments: Mapping[Account, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _freeze(self, "payments")


@dataclass(frozen=True)
class InsuranceState:
    auth: AuthorizationContext
    balance: int = 0
    total_deposited: int = 0
    claims_paid: int = 0


@dataclass(frozen=True)
class GovernanceState:
    auth: AuthorizationContext
    parameters: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _freeze(self, "parameters")


@dataclass(frozen=True)
class VaultState:
    """``auth.authorized_caller`` is the only address allowed to move funds."""

    auth: AuthorizationContext
    balances: Mapping[Account, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _freeze(self, "balances")


@dataclass(frozen=True)
class ManagerState:
    """Open positions only; an account absent from ``positions`` is flat.

    With ``escrow_margin`` set, ``reserved_margin`` is the margin withdrawn
    from the Vault and held against open positions.
    """

    auth: AuthorizationContext
    vault: Address
    min_leverage: int
    max_leverage: int
    positions: Mapping[Account, Position] = field(default_factory=dict)
    escrow_margin: bool = False
    reserved_margin: int = 0

    def __post_init__(self) -> None:
        _freeze(self, "positions")


LedgerState = (
    OracleState | FeeState | FundingState | InsuranceState | GovernanceState | VaultState | ManagerState
)


def _encode(value: Any) -> Any:
    if isinstance(value, AuthorizationContext):
        return {"owner": value.owner, "authorized_caller": value.authorized_caller}
    if isinstance(value, Position):
        return {f.name: getattr(value, f.name) for f in fields(Position)}
    if isinstance(value, Mapping):
        return {k: _encode(v) for k, v in sorted(value.items())}
    return value


def state_to_dict(state: Any) -> dict[str, Any]:
    """Serialize a ledger snapshot to plain dicts/ints (sorted mapping keys)."""
    return {f.name: _encode(getattr(state, f.name)) for f in fields(state)}


def state_from_dict(cls: type, d: Mapping[str, Any]) -> Any:
    """Deserialize a snapshot of type ``cls``. Raises KeyError on missing fields."""
    kwargs: dict[str, Any] = {}
    for f in fields(cls):
        required = f.default is MISSING and f.default_factory is MISSING
        if not required and f.name not in d:
            continue
        val = d[f.name]
        if f.name == "auth":
            kwargs[f.name] = AuthorizationContext(
                owner=val["owner"], authorized_caller=val.get("authorized_caller"),
            )
        elif f.name == "positions":
            kwargs[f.name] = {acct: Position(**pos) for acct, pos in val.items()}
        elif isinstance(val, Mapping):
            kwargs[f.name] = dict(val)
        elif isinstance(val, bool) != isinstance(f.default, bool) or not isinstance(val, (int, str)):
            raise TypeError(f"state var {f.name!r} has wrong type {type(val).__name__}")
        else:
            kwargs[f.name] = val
    return cls(**kwargs)
