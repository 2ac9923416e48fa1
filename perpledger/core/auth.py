"""Caller identity checks.

Every ledger is constructed with an explicit ``AuthorizationContext`` instead
of reading an ambient "message sender". Mutating calls pass the caller's
address and the ledger compares it against the context.

Addresses are 20-byte hex strings; they are canonicalized (lowercase, ``0x``
prefix) before any comparison so that checksum casing never splits an
identity in two.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import hashlib
import re
from typing import Optional

from .types import Address, REASON_NOT_AUTHORIZED, REASON_NOT_OWNER


ADDRESS_NBYTES = 20

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


def canonical_address(value: object, *, name: str = "address") -> Address:
    """Return ``value`` as a lowercase ``0x``-prefixed 20-byte hex string.

    Raises:
        TypeError: If ``value`` is not a string.
        ValueError: If ``value`` is not 20 bytes of hex.
    """
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string")
    s = value[2:] if value[:2] in ("0x", "0X") else value
    if len(s) != 2 * ADDRESS_NBYTES:
        raise ValueError(f"{name} must be {ADDRESS_NBYTES} bytes (hex length {2 * ADDRESS_NBYTES})")
    if not _HEX_RE.fullmatch(s):
        raise ValueError(f"{name} must be valid hex")
    return "0x" + s.lower()


def is_address(value: object) -> bool:
    try:
        canonical_address(value)
    except (TypeError, ValueError):
        return False
    return True


def derive_address(deployer: Address, label: str, salt: int = 0) -> Address:
    """Deterministic ledger address for ``label`` deployed by ``deployer``."""
    deployer = canonical_address(deployer, name="deployer")
    digest = hashlib.sha256(f"perpledger:{deployer}:{label}:{salt}".encode("utf-8")).hexdigest()
    return "0x" + digest[: 2 * ADDRESS_NBYTES]


@dataclass(frozen=True)
class AuthorizationContext:
    """Owner identity plus, for the Vault, the single authorized caller."""

    owner: Address
    authorized_caller: Optional[Address] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "owner", canonical_address(self.owner, name="owner"))
        if self.authorized_caller is not None:
            object.__setattr__(
                self,
                "authorized_caller",
                canonical_address(self.authorized_caller, name="authorized_caller"),
            )

    def with_authorized_caller(self, address: Address) -> "AuthorizationContext":
        return replace(self, authorized_caller=canonical_address(address, name="authorized_caller"))

    def is_owner(self, caller: Address) -> bool:
        return _same(caller, self.owner)

    def is_authorized(self, caller: Address) -> bool:
        return self.authorized_caller is not None and _same(caller, self.authorized_caller)


def _same(caller: object, expected: Address) -> bool:
    if not is_address(caller):
        return False
    return canonical_address(caller) == expected


def require_owner(ctx: AuthorizationContext, caller: Address) -> Optional[str]:
    """Return a rejection reason, or None if ``caller`` is the owner."""
    if not ctx.is_owner(caller):
        return REASON_NOT_OWNER
    return None


def require_authorized(ctx: AuthorizationContext, caller: Address) -> Optional[str]:
    """Return a rejection reason, or None if ``caller`` is the authorized caller."""
    if not ctx.is_authorized(caller):
        return REASON_NOT_AUTHORIZED
    return None
