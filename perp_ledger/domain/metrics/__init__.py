"""Performance metrics for leaderboard ranking.

- Win/Loss: Win rate, largest/average win and loss, profit factor
- Returns: Capped effective capital and return percentage

Usage:
    from perp_ledger.domain.metrics import (
        calculate_win_loss,
        effective_capital,
        return_pct,
    )
"""

# Win/Loss
from perp_ledger.domain.metrics.win_loss import (
    WinLossStats,
    calculate_win_loss,
    profit_factor,
)

# Returns
from perp_ledger.domain.metrics.returns import (
    effective_capital,
    return_pct,
)

__all__ = [
    # Win/Loss
    "WinLossStats",
    "calculate_win_loss",
    "profit_factor",
    # Returns
    "effective_capital",
    "return_pct",
]
