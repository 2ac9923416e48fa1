"""Shared data types for the perpledger ledgers.

All ledger states are frozen dataclasses (immutable); a ledger commits a new
snapshot per accepted call. Results are tagged: callers branch on
``LedgerResult.ok`` / ``LedgerResult.error`` rather than catching exceptions.

Units/conventions:
- amounts, margins, sizes and prices are plain integers (no scaling),
- accounts and ledger addresses are ``0x``-prefixed hex strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Any, Mapping


Account = str
Address = str

# Reason strings are part of the external surface; clients match on them.
REASON_NOT_OWNER = "Not owner"
REASON_NOT_AUTHORIZED = "Not authorized"
REASON_POSITION_EXISTS = "Position exists"
REASON_NO_POSITION = "No position"
REASON_INSUFFICIENT_COLLATERAL = "Insufficient collateral"
REASON_INSUFFICIENT_FUND = "Insufficient fund"
REASON_INVALID_AMOUNT = "Invalid amount"
REASON_INVALID_LEVERAGE = "Invalid leverage"
REASON_INVALID_VALUE = "Invalid value"


@unique
class ErrorKind(Enum):
    """One member per rejection class."""
    AUTHORIZATION = "authorization"
    STATE = "state"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    PARAM_DOMAIN = "param_domain"
    INVARIANT = "invariant"


@unique
class Event(Enum):
    """One member per accepted mutation."""
    PRICE_SET = "PriceSet"
    FEE_COLLECTED = "FeeCollected"
    FUNDING_UPDATED = "FundingUpdated"
    INSURANCE_DEPOSITED = "InsuranceDeposited"
    BAD_DEBT_COVERED = "BadDebtCovered"
    PARAMETER_SET = "ParameterSet"
    COLLATERAL_DEPOSITED = "CollateralDeposited"
    COLLATERAL_WITHDRAWN = "CollateralWithdrawn"
    COLLATERAL_LIQUIDATED = "CollateralLiquidated"
    PERP_MANAGER_SET = "PerpManagerSet"
    POSITION_OPENED = "PositionOpened"
    POSITION_CLOSED = "PositionClosed"
    POSITION_LIQUIDATED = "PositionLiquidated"


@dataclass(frozen=True)
class Position:
    """One account's open leveraged exposure. The zero value means no position."""

    margin: int = 0
    size: int = 0
    is_long: bool = False
    entry_price: int = 0
    leverage: int = 0

    @property
    def is_open(self) -> bool:
        return self.margin > 0


EMPTY_POSITION = Position()


@dataclass(frozen=True)
class LedgerResult:
    """Result of a single ledger call.

    ``state`` is the committed snapshot on success; ``value`` carries an
    operation-specific payload (new balance, opened position, ...).
    """

    ok: bool
    state: Any = None
    value: Any = None
    event: Event | None = None
    effects: Mapping[str, Any] = field(default_factory=dict)
    error: ErrorKind | None = None
    reason: str | None = None


def accepted(state: Any, event: Event, value: Any = None, **effects: Any) -> LedgerResult:
    return LedgerResult(ok=True, state=state, value=value, event=event, effects=effects)


def rejected(error: ErrorKind, reason: str) -> LedgerResult:
    return LedgerResult(ok=False, error=error, reason=reason)
