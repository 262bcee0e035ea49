"""Application Layer: Use cases and service orchestration.

This layer contains:
- queries.py: Validated parameter bundles
- services/: Business logic orchestration
  - ledger.py: Trades, position history and P&L for one user
  - leaderboard.py: Concurrent ranking of tracked users
"""

from perp_ledger.application.queries import (
    LeaderboardQuery,
    PnLQuery,
    PositionQuery,
    TradeQuery,
)
from perp_ledger.application.services import (
    LedgerService,
    LeaderboardService,
    rank_entries,
)

__all__ = [
    "LeaderboardQuery",
    "PnLQuery",
    "PositionQuery",
    "TradeQuery",
    "LedgerService",
    "LeaderboardService",
    "rank_entries",
]
