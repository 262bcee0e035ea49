"""Win/Loss statistics over closing fills.

A fill is "closing" when it realized non-zero P&L. Wins are closing
fills with positive P&L, losses those with negative P&L.

Profit Factor:
    profit_factor = gross_profit / gross_loss

    With no losses the ratio is undefined, and two cases stay distinct:
    - gross_profit > 0  -> math.inf (never capped)
    - gross_profit == 0 -> 0.0 (no activity)
"""

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np


# =============================================================================
# Data Classes
# =============================================================================

@dataclass(frozen=True, slots=True)
class WinLossStats:
    """Win/loss breakdown of closing fills.

    Attributes:
        win_count: Fills with positive realized P&L
        loss_count: Fills with negative realized P&L
        win_rate: win_count / closing fills (0 with no closing fills)
        largest_win: Max positive P&L (0 with no wins)
        largest_loss: Min negative P&L (0 with no losses)
        avg_win: Mean of wins
        avg_loss: Mean of losses (negative)
        gross_profit: Sum of wins
        gross_loss: Absolute sum of losses
    """
    win_count: int
    loss_count: int
    win_rate: float
    largest_win: float
    largest_loss: float
    avg_win: float
    avg_loss: float
    gross_profit: float
    gross_loss: float

    @property
    def closing_count(self) -> int:
        return self.win_count + self.loss_count

    @property
    def profit_factor(self) -> float:
        return profit_factor(self.gross_profit, self.gross_loss)


# =============================================================================
# Core Calculation
# =============================================================================

def profit_factor(gross_profit: float, gross_loss: float) -> float:
    """Gross profit over gross loss.

    Example:
        >>> profit_factor(300.0, 100.0)
        3.0
        >>> profit_factor(50.0, 0.0)
        inf
        >>> profit_factor(0.0, 0.0)
        0.0
    """
    if gross_loss > 0:
        return gross_profit / gross_loss
    return math.inf if gross_profit > 0 else 0.0


def calculate_win_loss(closed_pnls: Sequence[float]) -> WinLossStats:
    """Calculate win/loss statistics from per-fill realized P&L.

    Args:
        closed_pnls: Realized P&L of every fill (zeros are ignored)

    Returns:
        WinLossStats
    """
    pnl = np.asarray(closed_pnls, dtype=np.float64)
    wins = pnl[pnl > 0]
    losses = pnl[pnl < 0]
    closing = len(wins) + len(losses)

    gross_profit = math.fsum(wins.tolist())
    loss_sum = math.fsum(losses.tolist())

    return WinLossStats(
        win_count=int(len(wins)),
        loss_count=int(len(losses)),
        win_rate=len(wins) / closing if closing > 0 else 0.0,
        largest_win=float(wins.max()) if len(wins) else 0.0,
        largest_loss=float(losses.min()) if len(losses) else 0.0,
        avg_win=gross_profit / len(wins) if len(wins) else 0.0,
        avg_loss=loss_sum / len(losses) if len(losses) else 0.0,
        gross_profit=gross_profit,
        gross_loss=abs(loss_sum),
    )
