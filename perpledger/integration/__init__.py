"""
Deployment layer: builds and cross-links a full set of ledgers.
"""

from .exchange import Exchange, deploy_exchange

__all__ = [
    "Exchange",
    "deploy_exchange",
]
