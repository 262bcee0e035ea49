"""Datasources for the ledger.

Provides abstracted exchange access through the Datasource pattern:
- HyperliquidDatasource: Hyperliquid info API over HTTP
- InMemoryDatasource: Pre-normalized data held in memory
- get_datasource / register_datasource: Construction by kind
"""

from perp_ledger.infrastructure.datasources.base import (
    Datasource,
    HealthStatus,
    UpstreamFetchError,
    filter_trades,
)
from perp_ledger.infrastructure.datasources.hyperliquid import HyperliquidDatasource
from perp_ledger.infrastructure.datasources.memory import InMemoryDatasource
from perp_ledger.infrastructure.datasources.registry import (
    available_datasources,
    get_datasource,
    register_datasource,
)

__all__ = [
    "Datasource",
    "HealthStatus",
    "UpstreamFetchError",
    "filter_trades",
    "HyperliquidDatasource",
    "InMemoryDatasource",
    "available_datasources",
    "get_datasource",
    "register_datasource",
]
