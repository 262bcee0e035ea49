"""Base Datasource: Abstract interface for exchange data access.

Datasource Pattern provides:
- Abstraction over data sources (exchange APIs, in-memory fixtures)
- Normalized domain values at the boundary
- Consistent error handling (UpstreamFetchError)
- Easy testing via dependency injection
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable

from perp_ledger.domain.errors import LedgerError
from perp_ledger.domain.models import FundingPayment, RiskSnapshot, Trade
from perp_ledger.domain.lifecycle import sort_trades


class UpstreamFetchError(LedgerError):
    """Exception raised when a datasource call fails."""

    def __init__(self, message: str, endpoint: str | None = None):
        self.endpoint = endpoint
        super().__init__(f"{message}" + (f" (endpoint: {endpoint})" if endpoint else ""))


@dataclass(frozen=True, slots=True)
class HealthStatus:
    """Result of a datasource health check."""
    healthy: bool
    latency_ms: float
    message: str = ""


def filter_trades(
    trades: Iterable[Trade],
    coin: str | None = None,
    from_ms: int | None = None,
    to_ms: int | None = None,
) -> list[Trade]:
    """Apply coin (case-insensitive) and inclusive time filters, sorted by time."""
    result = []
    for t in trades:
        if coin is not None and t.coin.upper() != coin.upper():
            continue
        if from_ms is not None and t.time_ms < from_ms:
            continue
        if to_ms is not None and t.time_ms > to_ms:
            continue
        result.append(t)
    return sort_trades(result)


class Datasource(ABC):
    """Abstract base class for exchange datasources.

    All datasources should:
    1. Return normalized domain values
    2. Return trades sorted ascending by time
    3. Raise UpstreamFetchError on failures
    """

    name: str = "abstract"

    @abstractmethod
    def fetch_trades(
        self,
        user: str,
        coin: str | None = None,
        from_ms: int | None = None,
        to_ms: int | None = None,
    ) -> list[Trade]:
        """Fills for a user, filtered and sorted ascending by time.

        Raises:
            UpstreamFetchError: If data cannot be fetched
            MalformedInputError: If a record cannot be parsed
        """

    @abstractmethod
    def fetch_funding(self, user: str) -> list[FundingPayment]:
        """All funding payments for a user."""

    @abstractmethod
    def fetch_mark_prices(self) -> dict[str, float]:
        """Current mark price per coin (uppercased keys)."""

    @abstractmethod
    def fetch_risk_snapshot(self, user: str) -> RiskSnapshot | None:
        """Current risk snapshot, or None if unavailable."""

    @abstractmethod
    def fetch_equity(
        self,
        user: str,
        at_ms: int | None = None,
        snapshot: RiskSnapshot | None = None,
    ) -> float:
        """Account equity at a point in time (current if at_ms is None).

        snapshot is a risk snapshot the caller already fetched for this
        user; datasources without point-in-time equity read it instead of
        fetching again.
        """

    @abstractmethod
    def list_tracked_users(self) -> list[str]:
        """Addresses ranked by the leaderboard."""

    @abstractmethod
    def health_check(self) -> HealthStatus:
        """Check the upstream is reachable and report latency."""

    def close(self) -> None:
        """Release any held resources."""
