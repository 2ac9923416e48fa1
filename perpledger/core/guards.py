"""Parameter-domain guards shared by the ledgers.

Each guard returns a rejection reason string, or None when the value is in
its domain. Ledgers run these after the identity check and before any
state check.
"""

from __future__ import annotations

from typing import Optional

from .auth import is_address
from .types import REASON_INVALID_AMOUNT, REASON_INVALID_LEVERAGE, REASON_INVALID_VALUE


REASON_INVALID_ADDRESS = "Invalid address"


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def check_amount(value: object, *, positive: bool = False) -> Optional[str]:
    """Amounts are non-negative ints (strictly positive when ``positive``)."""
    if not _is_int(value):
        return REASON_INVALID_AMOUNT
    if value < 0 or (positive and value == 0):
        return REASON_INVALID_AMOUNT
    return None


def check_value(value: object) -> Optional[str]:
    """Unbounded integer values (prices, parameters)."""
    if not _is_int(value):
        return REASON_INVALID_VALUE
    return None


def check_leverage(value: object, *, min_leverage: int, max_leverage: int) -> Optional[str]:
    if not _is_int(value):
        return REASON_INVALID_LEVERAGE
    if not (min_leverage <= value <= max_leverage):
        return REASON_INVALID_LEVERAGE
    return None


def check_address(value: object) -> Optional[str]:
    if not is_address(value):
        return REASON_INVALID_ADDRESS
    return None
