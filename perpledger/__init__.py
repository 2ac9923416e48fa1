"""
perpledger: position and collateral ledgers for a leveraged perpetuals venue.

Seven small ledgers, each a mutex-guarded immutable snapshot:

- ``PriceOracle``, ``FeeManager``, ``FundingRate``, ``InsuranceFund`` and
  ``Governance``: owner-operated books of record,
- ``Vault``: per-account collateral, movable only by its authorized caller,
- ``PerpetualManager``: one position per account, funds moved via the Vault.

Every mutating call takes the caller's address and returns a tagged
``LedgerResult``; ``unwrap()`` turns a rejection into an exception.

Public API:
- ``deploy_exchange(deployer, config) -> Exchange``
- ``link(vault, manager)`` / ``verify_link(vault, manager)``
- ``load_config(path) -> ExchangeConfig``
"""

from .config import ExchangeConfig, ManagerConfig, OracleConfig, VaultConfig, load_config
from .core import (
    AuthorizationContext,
    AuthorizationError,
    ConfigError,
    EMPTY_POSITION,
    ErrorKind,
    Event,
    FeeManager,
    FundingRate,
    Governance,
    InsufficientFundsError,
    InsuranceFund,
    InvariantError,
    LedgerError,
    LedgerResult,
    LinkError,
    ParamDomainError,
    PerpetualManager,
    Position,
    PriceOracle,
    StateError,
    Vault,
    derive_address,
    link,
    parameter_key,
    unwrap,
    verify_link,
)
from .integration import Exchange, deploy_exchange

__version__ = "0.1.0"

__all__ = [
    "ExchangeConfig",
    "ManagerConfig",
    "OracleConfig",
    "VaultConfig",
    "load_config",
    "AuthorizationContext",
    "AuthorizationError",
    "ConfigError",
    "EMPTY_POSITION",
    "ErrorKind",
    "Event",
    "FeeManager",
    "FundingRate",
    "Governance",
    "InsufficientFundsError",
    "InsuranceFund",
    "InvariantError",
    "LedgerError",
    "LedgerResult",
    "LinkError",
    "ParamDomainError",
    "PerpetualManager",
    "Position",
    "PriceOracle",
    "StateError",
    "Vault",
    "derive_address",
    "link",
    "parameter_key",
    "unwrap",
    "verify_link",
    "Exchange",
    "deploy_exchange",
]
