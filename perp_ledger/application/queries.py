"""Query parameter bundles for the ledger operations.

Each operation takes one frozen query object. Validation happens at
construction and raises ValueError, so a query that exists is valid.
"""

from __future__ import annotations

from dataclasses import dataclass

from perp_ledger.domain.models import LEADERBOARD_METRICS, validate_address


def _validate_window(from_ms: int | None, to_ms: int | None) -> None:
    if from_ms is not None and from_ms < 0:
        raise ValueError(f"from_ms must be non-negative, got: {from_ms}")
    if to_ms is not None and to_ms < 0:
        raise ValueError(f"to_ms must be non-negative, got: {to_ms}")
    if from_ms is not None and to_ms is not None and from_ms > to_ms:
        raise ValueError(f"from_ms ({from_ms}) must not be after to_ms ({to_ms})")


def _validate_cap(max_start_capital: float | None) -> None:
    if max_start_capital is not None and max_start_capital < 0:
        raise ValueError(f"max_start_capital must be non-negative, got: {max_start_capital}")


@dataclass(frozen=True, slots=True)
class TradeQuery:
    """Filters for get_trades.

    Attributes:
        user: 0x-prefixed address
        coin: Instrument filter (case-insensitive)
        from_ms: Window start, inclusive
        to_ms: Window end, inclusive
        builder_only: Only builder-attributed fills
    """

    user: str
    coin: str | None = None
    from_ms: int | None = None
    to_ms: int | None = None
    builder_only: bool = False

    def __post_init__(self) -> None:
        validate_address(self.user)
        _validate_window(self.from_ms, self.to_ms)


@dataclass(frozen=True, slots=True)
class PositionQuery:
    """Filters for get_position_history.

    builder_only enables taint flags on the snapshots; the replay itself
    always uses every fill.
    """

    user: str
    coin: str | None = None
    from_ms: int | None = None
    to_ms: int | None = None
    builder_only: bool = False

    def __post_init__(self) -> None:
        validate_address(self.user)
        _validate_window(self.from_ms, self.to_ms)


@dataclass(frozen=True, slots=True)
class PnLQuery:
    """Filters for get_pnl."""

    user: str
    coin: str | None = None
    from_ms: int | None = None
    to_ms: int | None = None
    builder_only: bool = False
    max_start_capital: float | None = None

    def __post_init__(self) -> None:
        validate_address(self.user)
        _validate_window(self.from_ms, self.to_ms)
        _validate_cap(self.max_start_capital)


@dataclass(frozen=True, slots=True)
class LeaderboardQuery:
    """Filters for get_leaderboard.

    Attributes:
        metric: "volume", "pnl" (realized) or "return_pct"
        builder_only: Rank builder flow only, excluding tainted users
        limit: Max entries (None uses the configured default)
    """

    metric: str = "pnl"
    coin: str | None = None
    from_ms: int | None = None
    to_ms: int | None = None
    builder_only: bool = True
    max_start_capital: float | None = None
    limit: int | None = None

    def __post_init__(self) -> None:
        if self.metric not in LEADERBOARD_METRICS:
            raise ValueError(
                f"metric must be one of {', '.join(LEADERBOARD_METRICS)}, got: {self.metric}"
            )
        if self.limit is not None and self.limit <= 0:
            raise ValueError(f"limit must be positive, got: {self.limit}")
        _validate_window(self.from_ms, self.to_ms)
        _validate_cap(self.max_start_capital)

    def pnl_query(self, user: str) -> PnLQuery:
        """Per-user P&L query carrying this leaderboard's filters."""
        return PnLQuery(
            user=user,
            coin=self.coin,
            from_ms=self.from_ms,
            to_ms=self.to_ms,
            builder_only=self.builder_only,
            max_start_capital=self.max_start_capital,
        )
