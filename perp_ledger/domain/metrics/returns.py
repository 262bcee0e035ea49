"""Return on capital.

Formula:
    effective_capital = min(start_equity, max_start_capital)
    return_pct = realized_pnl / effective_capital × 100

The cap keeps accounts that entered the window with large balances
from being compared on a different denominator than everyone else.
"""


def effective_capital(start_equity: float, max_start_capital: float | None = None) -> float:
    """Starting equity, capped when a cap is supplied.

    Example:
        >>> effective_capital(50_000.0, 10_000.0)
        10000.0
        >>> effective_capital(5_000.0, 10_000.0)
        5000.0
    """
    if max_start_capital is not None:
        return min(start_equity, max_start_capital)
    return start_equity


def return_pct(realized_pnl: float, capital: float) -> float:
    """Realized P&L as a percentage of capital; 0 when capital <= 0."""
    if capital <= 0:
        return 0.0
    return realized_pnl / capital * 100
