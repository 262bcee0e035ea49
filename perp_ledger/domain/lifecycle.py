"""Lifecycle boundary rule shared by the reconstructor and taint detector.

A lifecycle is the span of trades for one instrument from a flat
position until it returns to flat. Both consumers must agree on where
a lifecycle starts and ends, so both advance net size through
step_net_size() and classify attribution through is_builder_trade().
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from perp_ledger.domain.models import Trade

# Exchange sizes carry at most a handful of decimals; rounding here keeps
# sums like 0.1 + 0.2 - 0.3 landing on exact zero.
SIZE_DECIMALS = 10


def step_net_size(prev: float, trade: Trade) -> float:
    """Net size after applying one trade."""
    new = round(prev + trade.signed_size, SIZE_DECIMALS)
    return new + 0.0  # normalise -0.0


def is_builder_trade(trade: Trade, builder: str | None) -> bool:
    """True if the trade was routed by the tracked builder."""
    if builder is None or trade.builder is None:
        return False
    return trade.builder.lower() == builder.lower()


def coin_key(coin: str) -> str:
    return coin.upper()


def sort_trades(trades: Iterable[Trade]) -> list[Trade]:
    """Ascending by time; ties keep input order."""
    return sorted(trades, key=lambda t: t.time_ms)


def group_by_coin(trades: Iterable[Trade]) -> dict[str, list[Trade]]:
    """Time-ordered trades per uppercased coin."""
    groups: dict[str, list[Trade]] = defaultdict(list)
    for trade in sort_trades(trades):
        groups[coin_key(trade.coin)].append(trade)
    return dict(groups)
