"""Application Services for the ledger.

Services orchestrate datasource access to implement use cases.

Available services:
- LedgerService: Trades, position history and P&L for one user
- LeaderboardService: Concurrent ranking of tracked users
"""

from perp_ledger.application.services.ledger import LedgerService
from perp_ledger.application.services.leaderboard import (
    LeaderboardService,
    rank_entries,
)

__all__ = [
    "LedgerService",
    "LeaderboardService",
    "rank_entries",
]
