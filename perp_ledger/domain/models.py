"""Domain Models: Core data structures for the ledger.

These models represent the fundamental business entities:
- Trade: A single executed fill
- FundingPayment: A periodic funding transfer
- PositionRisk / RiskSnapshot: Current per-instrument risk from the exchange
- PositionState: Position snapshot emitted after each trade
- PnLData: Aggregate P&L summary for one query
- LeaderboardEntry: A ranked user

Design Principles:
- Immutable (frozen dataclass)
- Validated in __post_init__
- Optional fields are explicit (None means "not attributed" / "no risk data")
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Literal

Side = Literal["buy", "sell"]
LeaderboardMetric = Literal["volume", "pnl", "return_pct"]

LEADERBOARD_METRICS: tuple[str, ...] = ("volume", "pnl", "return_pct")

# Direction tags reported by the exchange for perp fills
TRADE_DIRECTIONS: tuple[str, ...] = (
    "Open Long",
    "Open Short",
    "Close Long",
    "Close Short",
    "Increase Long",
    "Increase Short",
    "Reduce Long",
    "Reduce Short",
)

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


def _validate_non_negative(value: int | float, field_name: str) -> None:
    """Validate that value is non-negative."""
    if value < 0:
        raise ValueError(f"{field_name} must be non-negative, got: {value}")


def validate_address(user: str, field_name: str = "user") -> None:
    """Validate an 0x-prefixed 20-byte hex address."""
    if not user:
        raise ValueError(f"{field_name} cannot be empty")
    if not ADDRESS_PATTERN.match(user):
        raise ValueError(
            f"{field_name} must be 0x followed by 40 hex characters, got: {user}"
        )


# =============================================================================
# Inputs
# =============================================================================

@dataclass(frozen=True, slots=True)
class Trade:
    """A single executed fill.

    Attributes:
        time_ms: Fill time in epoch milliseconds
        coin: Instrument symbol (e.g., "BTC")
        side: "buy" or "sell"
        px: Fill price (non-negative)
        sz: Fill size, unsigned (non-negative)
        fee: Fee paid for this fill
        closed_pnl: Realized P&L contributed by this fill
        builder: Builder credited for routing the order, None if unattributed
        direction: Exchange direction tag (e.g., "Open Long", "Long > Short")
        liquidation: Whether this fill was part of a liquidation
        crossed: Whether the order crossed the book (taker)

    Example:
        >>> t = Trade(time_ms=1, coin="BTC", side="buy", px=100.0, sz=2.0,
        ...           fee=0.1, closed_pnl=0.0)
        >>> t.signed_size
        2.0
        >>> t.notional
        200.0
    """

    time_ms: int
    coin: str
    side: Side
    px: float
    sz: float
    fee: float = 0.0
    closed_pnl: float = 0.0
    builder: str | None = None
    direction: str = ""
    liquidation: bool = False
    crossed: bool = False
    hash: str | None = None
    order_id: int | None = None
    trade_id: int | None = None
    liquidation_method: str | None = None

    def __post_init__(self) -> None:
        """Validate all fields after initialization."""
        if not self.coin:
            raise ValueError("coin cannot be empty")
        if self.side not in ("buy", "sell"):
            raise ValueError(f"side must be 'buy' or 'sell', got: {self.side}")
        _validate_non_negative(self.px, "px")
        _validate_non_negative(self.sz, "sz")

    @property
    def signed_size(self) -> float:
        """Size with sign: positive for buys, negative for sells."""
        return self.sz if self.side == "buy" else -self.sz

    @property
    def notional(self) -> float:
        """Traded value (px * sz)."""
        return self.px * self.sz

    @property
    def is_closing(self) -> bool:
        """A fill that realized P&L."""
        return self.closed_pnl != 0


@dataclass(frozen=True, slots=True)
class FundingPayment:
    """A funding transfer for one instrument.

    amount is signed as the exchange reports it: negative when the
    user paid funding, positive when received.
    """

    time_ms: int
    coin: str
    amount: float
    position_size: float = 0.0
    funding_rate: float = 0.0


@dataclass(frozen=True, slots=True)
class PositionRisk:
    """Current risk figures for one open position."""

    coin: str
    size: float
    entry_px: float
    unrealized_pnl: float
    margin_used: float
    liquidation_px: float | None = None


@dataclass(frozen=True, slots=True)
class RiskSnapshot:
    """Point-in-time account state: open positions and account value."""

    positions: dict[str, PositionRisk] = field(default_factory=dict)
    account_value: float = 0.0
    time_ms: int | None = None

    def get(self, coin: str) -> PositionRisk | None:
        """Lookup a position by coin (case-insensitive)."""
        return self.positions.get(coin.upper())

    @property
    def total_unrealized_pnl(self) -> float:
        return sum(p.unrealized_pnl for p in self.positions.values())


# =============================================================================
# Outputs
# =============================================================================

@dataclass(frozen=True, slots=True)
class PositionState:
    """Position snapshot emitted after one trade.

    Attributes:
        time_ms: Time of the trade that produced this snapshot
        coin: Instrument symbol (uppercased)
        net_size: Signed size (positive = long, negative = short)
        avg_entry_px: Volume-weighted average entry price of the open side
        unrealized_pnl: P&L of the open size at the current mark
        realized_pnl: Realized P&L accumulated within the current lifecycle
        lifecycle_id: Id of the flat -> open -> flat span this belongs to
        tainted: Lifecycle mixed builder and non-builder trades
        liquidation_px: Only on the latest snapshot of an open position
        margin_used: Only on the latest snapshot of an open position
    """

    time_ms: int
    coin: str
    net_size: float
    avg_entry_px: float
    unrealized_pnl: float
    realized_pnl: float
    lifecycle_id: int
    tainted: bool = False
    liquidation_px: float | None = None
    margin_used: float | None = None

    @property
    def is_flat(self) -> bool:
        return self.net_size == 0

    def to_dict(self) -> dict:
        """Convert to dictionary for DataFrame creation."""
        return {
            "time_ms": self.time_ms,
            "coin": self.coin,
            "net_size": self.net_size,
            "avg_entry_px": self.avg_entry_px,
            "unrealized_pnl": self.unrealized_pnl,
            "realized_pnl": self.realized_pnl,
            "lifecycle_id": self.lifecycle_id,
            "tainted": self.tainted,
            "liquidation_px": self.liquidation_px,
            "margin_used": self.margin_used,
        }


@dataclass(frozen=True, slots=True)
class PnLData:
    """Aggregate P&L summary for a (user, coin filter, time range) query.

    profit_factor is math.inf when there were wins but no losses.
    """

    user: str
    coin: str | None
    from_ms: int | None
    to_ms: int | None

    # PNL
    realized_pnl: float
    unrealized_pnl: float
    total_pnl: float
    return_pct: float

    # Costs
    fees_paid: float
    funding_paid: float

    # Activity
    trade_count: int
    volume: float

    # Win/Loss
    win_count: int
    loss_count: int
    win_rate: float
    largest_win: float
    largest_loss: float
    avg_win: float
    avg_loss: float
    profit_factor: float

    effective_capital: float
    tainted: bool = False

    @classmethod
    def empty(
        cls,
        user: str,
        coin: str | None = None,
        from_ms: int | None = None,
        to_ms: int | None = None,
    ) -> PnLData:
        """All-zero summary for a user with no activity."""
        return cls(
            user=user, coin=coin, from_ms=from_ms, to_ms=to_ms,
            realized_pnl=0.0, unrealized_pnl=0.0, total_pnl=0.0, return_pct=0.0,
            fees_paid=0.0, funding_paid=0.0, trade_count=0, volume=0.0,
            win_count=0, loss_count=0, win_rate=0.0,
            largest_win=0.0, largest_loss=0.0, avg_win=0.0, avg_loss=0.0,
            profit_factor=0.0, effective_capital=0.0, tainted=False,
        )

    def metric(self, name: str) -> float:
        """Value of a leaderboard metric."""
        if name == "volume":
            return self.volume
        if name == "pnl":
            return self.realized_pnl
        if name == "return_pct":
            return self.return_pct
        raise ValueError(f"metric must be one of {LEADERBOARD_METRICS}, got: {name}")

    def to_dict(self) -> dict:
        """Convert to dictionary for DataFrame creation."""
        return {
            "user": self.user,
            "coin": self.coin,
            "from_ms": self.from_ms,
            "to_ms": self.to_ms,
            "realized_pnl": self.realized_pnl,
            "unrealized_pnl": self.unrealized_pnl,
            "total_pnl": self.total_pnl,
            "return_pct": self.return_pct,
            "fees_paid": self.fees_paid,
            "funding_paid": self.funding_paid,
            "trade_count": self.trade_count,
            "volume": self.volume,
            "win_count": self.win_count,
            "loss_count": self.loss_count,
            "win_rate": self.win_rate,
            "largest_win": self.largest_win,
            "largest_loss": self.largest_loss,
            "avg_win": self.avg_win,
            "avg_loss": self.avg_loss,
            "profit_factor": self.profit_factor,
            "effective_capital": self.effective_capital,
            "tainted": self.tainted,
        }


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    """A ranked user with the display subset of their PnLData."""

    rank: int
    user: str
    metric_name: str
    metric_value: float
    trade_count: int
    volume: float
    realized_pnl: float
    return_pct: float
    win_rate: float
    tainted: bool = False

    def __post_init__(self) -> None:
        if self.rank < 1:
            raise ValueError(f"rank must be positive, got: {self.rank}")

    def to_dict(self) -> dict:
        """Convert to dictionary for DataFrame creation."""
        return {
            "rank": self.rank,
            "user": self.user,
            "metric_name": self.metric_name,
            "metric_value": self.metric_value,
            "trade_count": self.trade_count,
            "volume": self.volume,
            "realized_pnl": self.realized_pnl,
            "return_pct": self.return_pct,
            "win_rate": self.win_rate,
            "tainted": self.tainted,
        }
