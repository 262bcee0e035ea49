"""Infrastructure layer for the ledger.

Contains:
- config: Runtime and report configuration
- log_config: structlog setup
- datasources: Exchange data access abstractions
"""

from perp_ledger.infrastructure.config import (
    LedgerConfig,
    ReportConfig,
    DEFAULT_CONFIG,
    DEFAULT_REPORT_CONFIG,
    load_config,
)
from perp_ledger.infrastructure.log_config import setup_logging
from perp_ledger.infrastructure.datasources import (
    Datasource,
    HealthStatus,
    UpstreamFetchError,
    HyperliquidDatasource,
    InMemoryDatasource,
    get_datasource,
    register_datasource,
)

__all__ = [
    # Config
    "LedgerConfig",
    "ReportConfig",
    "DEFAULT_CONFIG",
    "DEFAULT_REPORT_CONFIG",
    "load_config",
    # Logging
    "setup_logging",
    # Datasources
    "Datasource",
    "HealthStatus",
    "UpstreamFetchError",
    "HyperliquidDatasource",
    "InMemoryDatasource",
    "get_datasource",
    "register_datasource",
]
