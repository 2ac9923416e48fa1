"""
Configuration for a perpledger deployment.

Defaults match the reference deployment: leverage between 1x and 10x, an
initial reference price of 2000, a 300 second oracle validity window, and no
fund movement on open/close. A YAML mapping may override any field:

    oracle:
      initial_price: 1850
    manager:
      max_leverage: 20
      escrow_margin: true
    vault:
      restrict_repoint: true
    governance:
      feeRate: 42

Unknown sections or keys are rejected so a typo never silently falls back to
a default.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .core.errors import ConfigError


CONFIG_ENV_VAR = "PERPLEDGER_CONFIG"

MIN_LEVERAGE = 1
MAX_LEVERAGE = 10
DEFAULT_INITIAL_PRICE = 2000
DEFAULT_ORACLE_VALIDITY_SECONDS = 300


@dataclass(frozen=True)
class OracleConfig:
    initial_price: int = DEFAULT_INITIAL_PRICE
    validity_seconds: int = DEFAULT_ORACLE_VALIDITY_SECONDS

    def __post_init__(self) -> None:
        _require_int(self.initial_price, name="oracle.initial_price")
        _require_int(self.validity_seconds, name="oracle.validity_seconds", minimum=1)


@dataclass(frozen=True)
class ManagerConfig:
    min_leverage: int = MIN_LEVERAGE
    max_leverage: int = MAX_LEVERAGE
    # Move the margin out of the Vault on open and back on close.
    escrow_margin: bool = False

    def __post_init__(self) -> None:
        _require_int(self.min_leverage, name="manager.min_leverage", minimum=1)
        _require_int(self.max_leverage, name="manager.max_leverage", minimum=1)
        if self.min_leverage > self.max_leverage:
            raise ConfigError(
                f"manager.min_leverage ({self.min_leverage}) exceeds max_leverage ({self.max_leverage})"
            )
        _require_bool(self.escrow_margin, name="manager.escrow_margin")


@dataclass(frozen=True)
class VaultConfig:
    # When false (the default), anyone may repoint the authorized caller.
    restrict_repoint: bool = False

    def __post_init__(self) -> None:
        _require_bool(self.restrict_repoint, name="vault.restrict_repoint")


@dataclass(frozen=True)
class ExchangeConfig:
    oracle: OracleConfig = field(default_factory=OracleConfig)
    manager: ManagerConfig = field(default_factory=ManagerConfig)
    vault: VaultConfig = field(default_factory=VaultConfig)
    # Parameter name -> value written to Governance at deployment.
    governance: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name, value in self.governance.items():
            if not isinstance(name, str) or not name:
                raise ConfigError("governance parameter names must be non-empty strings")
            _require_int(value, name=f"governance.{name}")


def _require_int(value: Any, *, name: str, minimum: Optional[int] = None) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ConfigError(f"{name} must be an int, got {type(value).__name__}")
    if minimum is not None and value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")


def _require_bool(value: Any, *, name: str) -> None:
    if not isinstance(value, bool):
        raise ConfigError(f"{name} must be a bool, got {type(value).__name__}")


def _section(cls: type, raw: Any, *, name: str) -> Any:
    if raw is None:
        return cls()
    if not isinstance(raw, Mapping):
        raise ConfigError(f"{name} must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigError(f"unknown {name} keys: {', '.join(map(str, unknown))}")
    return cls(**dict(raw))


def config_from_mapping(raw: Mapping[str, Any]) -> ExchangeConfig:
    """Build an ``ExchangeConfig`` from a parsed mapping. Raises ConfigError."""
    if not isinstance(raw, Mapping):
        raise ConfigError("config must be a mapping")
    unknown = sorted(set(raw) - {"oracle", "manager", "vault", "governance"})
    if unknown:
        raise ConfigError(f"unknown config sections: {', '.join(map(str, unknown))}")

    governance = raw.get("governance") or {}
    if not isinstance(governance, Mapping):
        raise ConfigError("governance must be a mapping")

    return ExchangeConfig(
        oracle=_section(OracleConfig, raw.get("oracle"), name="oracle"),
        manager=_section(ManagerConfig, raw.get("manager"), name="manager"),
        vault=_section(VaultConfig, raw.get("vault"), name="vault"),
        governance=dict(governance),
    )


def load_config(path: str | Path | None = None) -> ExchangeConfig:
    """Load a YAML config from ``path``, or from ``$PERPLEDGER_CONFIG``.

    Returns the defaults when neither is given. An empty file is the defaults.
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR, "").strip()
        if not env_path:
            return ExchangeConfig()
        path = env_path

    p = Path(path)
    try:
        obj = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {p}: {exc}") from exc
    if obj is None:
        return ExchangeConfig()
    return config_from_mapping(obj)
