"""P&L Aggregator: Summarise a user's fills, funding and open exposure.

Combines:
- Realized P&L, fees and volume from fills
- Funding payments inside the coin / time filter
- Unrealized P&L from the current risk snapshot
- Win/loss statistics and return on effective capital

With builder_only, statistics only see builder-attributed fills, while
taint is judged over the full unfiltered fill set.
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from perp_ledger.domain.metrics import calculate_win_loss, effective_capital, return_pct
from perp_ledger.domain.models import FundingPayment, PnLData, RiskSnapshot, Trade
from perp_ledger.domain.taint import filter_builder_trades, is_tainted


def filter_funding(
    funding: Iterable[FundingPayment],
    coin: str | None = None,
    from_ms: int | None = None,
    to_ms: int | None = None,
) -> list[FundingPayment]:
    """Funding payments matching coin (case-insensitive) and time range (inclusive)."""
    result = []
    for f in funding:
        if coin is not None and f.coin.upper() != coin.upper():
            continue
        if from_ms is not None and f.time_ms < from_ms:
            continue
        if to_ms is not None and f.time_ms > to_ms:
            continue
        result.append(f)
    return result


def unrealized_from_risk(risk: RiskSnapshot | None, coin: str | None = None) -> float:
    """Unrealized P&L for one coin, or all coins when coin is None."""
    if risk is None:
        return 0.0
    if coin is not None:
        pos = risk.get(coin)
        return pos.unrealized_pnl if pos else 0.0
    return risk.total_unrealized_pnl


def aggregate_pnl(
    user: str,
    trades: Sequence[Trade],
    funding: Iterable[FundingPayment],
    risk: RiskSnapshot | None,
    start_equity: float,
    *,
    coin: str | None = None,
    from_ms: int | None = None,
    to_ms: int | None = None,
    builder: str | None = None,
    builder_only: bool = False,
    max_start_capital: float | None = None,
) -> PnLData:
    """Aggregate fills and funding into a PnLData summary.

    Args:
        user: User address
        trades: Fills already restricted to coin and time range
        funding: All funding payments for the user (filtered here)
        risk: Current risk snapshot, or None
        start_equity: Account equity at the start of the window
        coin: Coin filter, also applied to funding and unrealized P&L
        from_ms: Window start (inclusive), applied to funding
        to_ms: Window end (inclusive), applied to funding
        builder: Tracked builder id
        builder_only: Only count builder-attributed fills
        max_start_capital: Cap on the return denominator

    Returns:
        PnLData for the query
    """
    counted = filter_builder_trades(trades, builder) if builder_only else list(trades)
    tainted = is_tainted(trades, builder) if builder_only else False

    realized = math.fsum(t.closed_pnl for t in counted)
    fees = math.fsum(t.fee for t in counted)
    volume = math.fsum(t.notional for t in counted)
    funding_paid = math.fsum(
        f.amount for f in filter_funding(funding, coin, from_ms, to_ms)
    )

    stats = calculate_win_loss([t.closed_pnl for t in counted])

    capital = effective_capital(start_equity, max_start_capital)
    unrealized = unrealized_from_risk(risk, coin)

    return PnLData(
        user=user,
        coin=coin,
        from_ms=from_ms,
        to_ms=to_ms,
        realized_pnl=realized,
        unrealized_pnl=unrealized,
        total_pnl=realized + unrealized,
        return_pct=return_pct(realized, capital),
        fees_paid=fees,
        funding_paid=funding_paid,
        trade_count=len(counted),
        volume=volume,
        win_count=stats.win_count,
        loss_count=stats.loss_count,
        win_rate=stats.win_rate,
        largest_win=stats.largest_win,
        largest_loss=stats.largest_loss,
        avg_win=stats.avg_win,
        avg_loss=stats.avg_loss,
        profit_factor=stats.profit_factor,
        effective_capital=capital,
        tainted=tainted,
    )
