"""
Two-phase wiring of a Vault and its PerpetualManager.

Both ledgers are constructed first; ``link()`` then points the Vault's
authorized caller at the manager while holding both locks (manager first,
then vault), so no reader ever sees one side pointing correctly and the
other not. A manager built against a different Vault is a ``LinkError``
instead of a stream of "Not authorized" rejections later on.
"""

from __future__ import annotations

import logging

from .errors import LinkError
from .manager import PerpetualManager
from .vault import Vault


logger = logging.getLogger(__name__)


def verify_link(vault: Vault, manager: PerpetualManager) -> bool:
    """True iff the vault authorizes the manager and the manager targets the vault."""
    return manager.state.vault == vault.address and vault.authorized_caller == manager.address


def link(vault: Vault, manager: PerpetualManager) -> None:
    """Make ``manager`` the single authorized caller of ``vault``.

    Raises:
        LinkError: The manager targets another vault, or the vault refused
            the repoint.
    """
    if manager.vault is not vault or manager.state.vault != vault.address:
        raise LinkError(
            f"manager {manager.address} targets vault {manager.state.vault}, not {vault.address}"
        )

    with manager._lock, vault._lock:
        if vault.authorized_caller != manager.address:
            res = vault.set_perp_manager(vault.owner, manager.address)
            if not res.ok:
                raise LinkError(f"vault {vault.address} refused repoint: {res.reason}")
        if not verify_link(vault, manager):
            raise LinkError(f"vault {vault.address} and manager {manager.address} disagree after link")

    logger.info("linked vault %s <-> manager %s", vault.address, manager.address)
