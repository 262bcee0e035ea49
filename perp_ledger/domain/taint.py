"""Taint Detector: Builder-attribution contamination across lifecycles.

A lifecycle is tainted when it contains both fills routed by the tracked
builder and fills that were not. Builder-only statistics for a tainted
user are unreliable, because closing fills inherit cost basis from
opening fills of the other kind.

Segmentation uses the same boundary rule as the position reconstructor
(see domain.lifecycle), so the two always agree.
"""

from __future__ import annotations

from typing import Iterable

from perp_ledger.domain.lifecycle import group_by_coin, is_builder_trade, step_net_size
from perp_ledger.domain.models import Trade


def _coin_is_tainted(trades: list[Trade], builder: str) -> bool:
    net_size = 0.0
    in_lifecycle = False
    has_builder = False
    has_non_builder = False

    for trade in trades:
        prev = net_size
        net_size = step_net_size(prev, trade)

        if prev == 0 and net_size != 0:
            in_lifecycle = True
            has_builder = False
            has_non_builder = False

        if in_lifecycle:
            if is_builder_trade(trade, builder):
                has_builder = True
            else:
                has_non_builder = True

        if net_size == 0 and in_lifecycle:
            if has_builder and has_non_builder:
                return True
            in_lifecycle = False

    # Lifecycle still open at the end of the window
    return in_lifecycle and has_builder and has_non_builder


def tainted_coins(trades: Iterable[Trade], builder: str | None) -> set[str]:
    """Coins (uppercased) with at least one mixed lifecycle."""
    if builder is None:
        return set()
    return {
        coin
        for coin, coin_trades in group_by_coin(trades).items()
        if _coin_is_tainted(coin_trades, builder)
    }


def is_tainted(trades: Iterable[Trade], builder: str | None) -> bool:
    """True if any instrument has a lifecycle mixing builder and other fills.

    Args:
        trades: Unfiltered fills for one user
        builder: Tracked builder id; None disables detection

    Returns:
        Whether any lifecycle (closed or still open) is mixed
    """
    if builder is None:
        return False
    for coin_trades in group_by_coin(trades).values():
        if _coin_is_tainted(coin_trades, builder):
            return True
    return False


def filter_builder_trades(trades: Iterable[Trade], builder: str | None) -> list[Trade]:
    """Keep only builder-attributed fills.

    With no tracked builder configured, nothing is filtered.
    """
    if builder is None:
        return list(trades)
    return [t for t in trades if is_builder_trade(t, builder)]
