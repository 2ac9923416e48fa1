"""
Governance: owner-writable key -> integer parameter store.

Keys are opaque strings. ``parameter_key(name)`` derives the conventional
32-byte keccak-256 key for a human-readable parameter name, the same slot an
EVM client computes with ``keccak256(toUtf8Bytes(name))``; hex keys are
lowercased so ``0xAB..`` and ``0xab..`` address the same slot. Unset keys
read as 0. There is no deletion.
"""

from __future__ import annotations

from dataclasses import replace
import re
from typing import Optional

from eth_hash.auto import keccak

from .auth import AuthorizationContext, require_owner
from .guards import check_value
from .ledger import Ledger
from .state import GovernanceState
from .types import Address, ErrorKind, Event, LedgerResult, accepted, rejected


REASON_INVALID_KEY = "Invalid key"

MAX_KEY_LEN = 256

_HASH_KEY_RE = re.compile(r"^0[xX][0-9a-fA-F]{64}$")


def parameter_key(name: str) -> str:
    """Keccak-256 key for a parameter name (e.g. ``"feeRate"``)."""
    if not isinstance(name, str) or not name:
        raise ValueError("parameter name must be a non-empty string")
    return "0x" + keccak(name.encode("utf-8")).hex()


def is_hash_key(key: object) -> bool:
    """True for a ``0x``-prefixed 32-byte hex key."""
    return isinstance(key, str) and _HASH_KEY_RE.fullmatch(key) is not None


def resolve_key(name: str) -> str:
    """Storage key for ``name``: hash keys pass through, plain names are hashed."""
    if is_hash_key(name):
        return "0x" + name[2:].lower()
    return parameter_key(name)


def canonical_key(key: object) -> Optional[str]:
    """Return the storage form of ``key``, or None if it is not a valid key."""
    if not isinstance(key, str) or not key or len(key) > MAX_KEY_LEN:
        return None
    if is_hash_key(key):
        return "0x" + key[2:].lower()
    return key


def apply_set_parameter(state: GovernanceState, caller: Address, key: str, value: int) -> LedgerResult:
    reason = require_owner(state.auth, caller)
    if reason is not None:
        return rejected(ErrorKind.AUTHORIZATION, reason)
    slot = canonical_key(key)
    if slot is None:
        return rejected(ErrorKind.PARAM_DOMAIN, REASON_INVALID_KEY)
    reason = check_value(value)
    if reason is not None:
        return rejected(ErrorKind.PARAM_DOMAIN, reason)

    parameters = dict(state.parameters)
    previous = parameters.get(slot, 0)
    parameters[slot] = value
    new_state = replace(state, parameters=parameters)
    return accepted(new_state, Event.PARAMETER_SET, value=value, key=slot, previous=previous)


class Governance(Ledger[GovernanceState]):
    kind = "Governance"

    def __init__(self, auth: AuthorizationContext, *, address: Address) -> None:
        super().__init__(GovernanceState(auth=auth), address=address)

    def set_parameter(self, caller: Address, key: str, value: int) -> LedgerResult:
        return self._apply("set_parameter", apply_set_parameter, caller, key, value)

    def get_parameter(self, key: str, default: int = 0) -> int:
        slot = canonical_key(key)
        if slot is None:
            return default
        return self._state.parameters.get(slot, default)
