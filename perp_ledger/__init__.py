"""Perp Ledger: Position lifecycle and P&L analytics for perp traders.

Rebuilds position lifecycles from exchange fills, computes realized and
unrealized P&L, detects builder-attribution taint, and ranks tracked
users for a leaderboard.

Architecture:
- domain/: Core business logic (models, reconstruction, metrics)
- infrastructure/: Config, logging and datasources
- application/: Use cases and services
- interfaces/: CLI
"""

__version__ = "0.1.0"

from perp_ledger.domain import (
    Trade,
    PositionState,
    PnLData,
    LeaderboardEntry,
    LedgerError,
    MalformedInputError,
)
from perp_ledger.infrastructure import (
    LedgerConfig,
    DEFAULT_CONFIG,
    UpstreamFetchError,
)

__all__ = [
    # Version
    "__version__",
    # Domain models
    "Trade",
    "PositionState",
    "PnLData",
    "LeaderboardEntry",
    # Errors
    "LedgerError",
    "MalformedInputError",
    "UpstreamFetchError",
    # Infrastructure
    "LedgerConfig",
    "DEFAULT_CONFIG",
]
