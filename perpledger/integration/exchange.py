"""
Exchange deployment: instantiate, wire and verify all seven ledgers.

Deployment and linking happen in one step:

1. deploy the satellites (PriceOracle, FeeManager, FundingRate,
   InsuranceFund, Governance) owned by the deployer,
2. deploy the Vault with the deployer as its temporary authorized caller,
3. deploy the PerpetualManager against that Vault, wired to the oracle,
   FeeManager, InsuranceFund and Governance,
4. ``link()`` the pair and verify both sides agree,
5. seed Governance with the configured parameters; names that are already
   32-byte hex keys are stored as given, other names are keccak-hashed.

Ledger addresses are derived deterministically from the deployer address and
the ledger name, so a given deployer always gets the same address book.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Optional

from ..config import ExchangeConfig
from ..core.auth import AuthorizationContext, canonical_address, derive_address
from ..core.errors import LinkError, unwrap
from ..core.fees import FeeManager
from ..core.funding import FundingRate
from ..core.governance import Governance, resolve_key
from ..core.insurance import InsuranceFund
from ..core.link import link, verify_link
from ..core.manager import PerpetualManager
from ..core.oracle import Clock, PriceOracle
from ..core.state import state_to_dict
from ..core.types import Address
from ..core.vault import Vault


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Exchange:
    deployer: Address
    price_oracle: PriceOracle
    fee_manager: FeeManager
    funding_rate: FundingRate
    insurance_fund: InsuranceFund
    governance: Governance
    vault: Vault
    perpetual_manager: PerpetualManager

    def addresses(self) -> dict[str, Address]:
        """Name -> address book, one entry per ledger."""
        return {
            "PriceOracle": self.price_oracle.address,
            "FeeManager": self.fee_manager.address,
            "FundingRate": self.funding_rate.address,
            "InsuranceFund": self.insurance_fund.address,
            "Governance": self.governance.address,
            "PerpetualManager": self.perpetual_manager.address,
            "Vault": self.vault.address,
        }

    def is_linked(self) -> bool:
        return verify_link(self.vault, self.perpetual_manager)

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Serialized state of every ledger, keyed like ``addresses()``."""
        ledgers = {
            "PriceOracle": self.price_oracle,
            "FeeManager": self.fee_manager,
            "FundingRate": self.funding_rate,
            "InsuranceFund": self.insurance_fund,
            "Governance": self.governance,
            "PerpetualManager": self.perpetual_manager,
            "Vault": self.vault,
        }
        return {name: state_to_dict(ledger.state) for name, ledger in ledgers.items()}


def deploy_exchange(
    deployer: Address,
    config: Optional[ExchangeConfig] = None,
    *,
    salt: int = 0,
    clock: Optional[Clock] = None,
) -> Exchange:
    """Deploy and link a full exchange owned by ``deployer``.

    Raises:
        LinkError: The vault/manager pair could not be linked.
        ParamDomainError: A configured governance parameter was rejected.
    """
    config = config or ExchangeConfig()
    deployer = canonical_address(deployer, name="deployer")
    owner = AuthorizationContext(owner=deployer)

    def _addr(name: str) -> Address:
        return derive_address(deployer, name, salt)

    price_oracle = PriceOracle(
        owner,
        address=_addr("PriceOracle"),
        initial_price=config.oracle.initial_price,
        clock=clock,
    )
    fee_manager = FeeManager(owner, address=_addr("FeeManager"))
    funding_rate = FundingRate(owner, address=_addr("FundingRate"))
    insurance_fund = InsuranceFund(owner, address=_addr("InsuranceFund"))
    governance = Governance(owner, address=_addr("Governance"))

    vault = Vault(
        owner.with_authorized_caller(deployer),
        address=_addr("Vault"),
        restrict_repoint=config.vault.restrict_repoint,
    )
    manager = PerpetualManager(
        owner,
        address=_addr("PerpetualManager"),
        vault=vault,
        oracle=price_oracle,
        fee_manager=fee_manager,
        insurance_fund=insurance_fund,
        governance=governance,
        min_leverage=config.manager.min_leverage,
        max_leverage=config.manager.max_leverage,
        escrow_margin=config.manager.escrow_margin,
    )
    link(vault, manager)

    for name, value in sorted(config.governance.items()):
        unwrap(governance.set_parameter(deployer, resolve_key(name), value))

    exchange = Exchange(
        deployer=deployer,
        price_oracle=price_oracle,
        fee_manager=fee_manager,
        funding_rate=funding_rate,
        insurance_fund=insurance_fund,
        governance=governance,
        vault=vault,
        perpetual_manager=manager,
    )
    if not exchange.is_linked():
        raise LinkError("deployed exchange is not linked")
    logger.info("deployed exchange for %s: %s", deployer, exchange.addresses())
    return exchange
