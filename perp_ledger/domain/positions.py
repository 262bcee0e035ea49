"""Position Reconstructor: Replay fills into position snapshots.

Cost-Basis Logic:
- Each instrument is an independent account
- Increasing fills (from flat, or same sign) add px * |sz| to cost basis
- Decreasing fills shrink cost basis by the fraction of size closed and
  accumulate the fill's reported closed P&L
- A flip (long -> short or short -> long in one fill) resets the basis to
  the excess size at the flip price; the closing part never carries over
- Average entry = cost basis / |net size|

Lifecycles:
- A lifecycle id is allocated each time an instrument leaves exactly zero
- Realized P&L and builder flags reset when the instrument returns to zero
- Ids come from one counter per replay, so they increase across instruments
  in time order and never decrease
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Mapping

import structlog

from perp_ledger.domain.lifecycle import (
    coin_key,
    is_builder_trade,
    sort_trades,
    step_net_size,
)
from perp_ledger.domain.models import PositionState, RiskSnapshot, Trade

log = structlog.get_logger(__name__)


# =============================================================================
# Per-Instrument State
# =============================================================================

@dataclass
class InstrumentAccount:
    """Running position for one instrument."""

    net_size: float = 0.0
    total_cost: float = 0.0
    avg_entry_px: float = 0.0
    realized_pnl: float = 0.0
    lifecycle_id: int = 0
    has_builder_trades: bool = False
    has_non_builder_trades: bool = False

    @property
    def is_flat(self) -> bool:
        return self.net_size == 0

    @property
    def is_mixed(self) -> bool:
        """Lifecycle saw both builder and non-builder fills."""
        return self.has_builder_trades and self.has_non_builder_trades

    def start_lifecycle(self, lifecycle_id: int) -> None:
        self.lifecycle_id = lifecycle_id
        self.realized_pnl = 0.0
        self.has_builder_trades = False
        self.has_non_builder_trades = False

    def end_lifecycle(self) -> None:
        self.realized_pnl = 0.0
        self.has_builder_trades = False
        self.has_non_builder_trades = False
        self.total_cost = 0.0
        self.avg_entry_px = 0.0

    def mark_attribution(self, builder_trade: bool) -> None:
        if builder_trade:
            self.has_builder_trades = True
        else:
            self.has_non_builder_trades = True

    def apply(self, trade: Trade) -> None:
        """Apply one fill to size, cost basis and realized P&L."""
        prev = self.net_size
        signed = trade.signed_size
        new = step_net_size(prev, trade)

        increasing = (prev >= 0 and signed > 0) or (prev <= 0 and signed < 0)

        if increasing:
            self.total_cost += trade.px * abs(signed)
            self.net_size = new
            self.avg_entry_px = self.total_cost / abs(new) if new != 0 else 0.0
            return

        # Decreasing, closing, or flipping (zero-size fills land here too)
        self.realized_pnl += trade.closed_pnl
        if prev != 0:
            closed = min(abs(signed), abs(prev))
            self.total_cost *= 1 - closed / abs(prev)

        self.net_size = new

        if (prev > 0 and new < 0) or (prev < 0 and new > 0):
            self.total_cost = trade.px * abs(new)
            self.avg_entry_px = trade.px
        elif new != 0:
            self.avg_entry_px = self.total_cost / abs(new)
        else:
            self.total_cost = 0.0
            self.avg_entry_px = 0.0

    def unrealized_pnl(self, mark: float | None) -> float:
        """Open P&L at the given mark; 0 if flat or no usable mark."""
        if self.net_size == 0 or mark is None or mark <= 0:
            return 0.0
        size = abs(self.net_size)
        diff = mark - self.avg_entry_px
        return size * diff if self.net_size > 0 else -size * diff


# =============================================================================
# Reconstruction
# =============================================================================

def reconstruct_positions(
    trades: Iterable[Trade],
    marks: Mapping[str, float] | None = None,
    *,
    builder: str | None = None,
    taint_enabled: bool = False,
) -> list[PositionState]:
    """Replay fills into one PositionState per fill.

    Args:
        trades: Fills for one user (any instruments, any order)
        marks: Current mark price per coin (uppercased keys)
        builder: Tracked builder id for taint flags
        taint_enabled: Whether snapshots may be flagged as tainted

    Returns:
        Snapshots in ascending time order (ties keep input order).
        Instruments with no fills are absent.

    Example:
        >>> states = reconstruct_positions([
        ...     Trade(time_ms=1, coin="BTC", side="buy", px=100.0, sz=10.0),
        ...     Trade(time_ms=2, coin="BTC", side="sell", px=110.0, sz=15.0,
        ...           closed_pnl=100.0),
        ... ])
        >>> [(s.net_size, s.avg_entry_px, s.realized_pnl) for s in states]
        [(10.0, 100.0, 0.0), (-5.0, 110.0, 100.0)]
    """
    marks = marks or {}
    accounts: dict[str, InstrumentAccount] = {}
    states: list[PositionState] = []
    next_lifecycle_id = 0

    for trade in sort_trades(trades):
        coin = coin_key(trade.coin)
        account = accounts.get(coin)
        if account is None:
            account = accounts[coin] = InstrumentAccount()

        if account.is_flat and step_net_size(0.0, trade) != 0:
            next_lifecycle_id += 1
            account.start_lifecycle(next_lifecycle_id)

        account.mark_attribution(is_builder_trade(trade, builder))
        account.apply(trade)

        states.append(PositionState(
            time_ms=trade.time_ms,
            coin=coin,
            net_size=account.net_size,
            avg_entry_px=account.avg_entry_px,
            unrealized_pnl=account.unrealized_pnl(marks.get(coin)),
            realized_pnl=account.realized_pnl,
            lifecycle_id=account.lifecycle_id,
            tainted=taint_enabled and account.is_mixed,
        ))

        if account.is_flat:
            account.end_lifecycle()

    log.debug(
        "positions_reconstructed",
        trades=len(states),
        instruments=len(accounts),
        lifecycles=next_lifecycle_id,
    )
    return states


def apply_risk_overlay(
    states: list[PositionState],
    risk: RiskSnapshot | None,
) -> list[PositionState]:
    """Attach liquidation price and margin to each open instrument's last snapshot.

    Args:
        states: Output of reconstruct_positions
        risk: Current risk snapshot, or None if unavailable

    Returns:
        New list; snapshots of closed positions are left untouched
    """
    if risk is None or not states:
        return list(states)

    last_index: dict[str, int] = {}
    for i, state in enumerate(states):
        last_index[state.coin] = i

    result = list(states)
    for coin, i in last_index.items():
        state = result[i]
        if state.net_size == 0:
            continue
        pos = risk.get(coin)
        if pos is None:
            continue
        result[i] = replace(
            state,
            liquidation_px=pos.liquidation_px,
            margin_used=pos.margin_used,
        )
    return result
