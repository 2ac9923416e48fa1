"""
Core ledgers: collateral custody, positions and the satellite books.
"""

from .auth import AuthorizationContext, canonical_address, derive_address
from .errors import (
    AuthorizationError,
    ConfigError,
    InsufficientFundsError,
    InvariantError,
    LedgerError,
    LinkError,
    ParamDomainError,
    StateError,
    unwrap,
)
from .fees import FeeManager
from .funding import FundingRate
from .governance import Governance, parameter_key, resolve_key
from .insurance import InsuranceFund
from .link import link, verify_link
from .manager import PerpetualManager
from .oracle import PriceOracle
from .state import state_from_dict, state_to_dict
from .types import EMPTY_POSITION, ErrorKind, Event, LedgerResult, Position
from .vault import Vault

__all__ = [
    "AuthorizationContext",
    "canonical_address",
    "derive_address",
    "AuthorizationError",
    "ConfigError",
    "InsufficientFundsError",
    "InvariantError",
    "LedgerError",
    "LinkError",
    "ParamDomainError",
    "StateError",
    "unwrap",
    "FeeManager",
    "FundingRate",
    "Governance",
    "parameter_key",
    "resolve_key",
    "InsuranceFund",
    "link",
    "verify_link",
    "PerpetualManager",
    "PriceOracle",
    "state_from_dict",
    "state_to_dict",
    "EMPTY_POSITION",
    "ErrorKind",
    "Event",
    "LedgerResult",
    "Position",
    "Vault",
]
