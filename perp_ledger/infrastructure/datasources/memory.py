"""In-Memory Datasource: Pre-normalized data held in dicts.

Used for offline analysis of exported fills and as a test double.
Users listed in failing_users raise UpstreamFetchError on every call.
"""

from __future__ import annotations

from typing import Iterable, Mapping

from perp_ledger.domain.models import FundingPayment, RiskSnapshot, Trade
from perp_ledger.infrastructure.datasources.base import (
    Datasource,
    HealthStatus,
    UpstreamFetchError,
    filter_trades,
)


class InMemoryDatasource(Datasource):
    """Datasource serving fixed, already-normalized data.

    Example:
        >>> ds = InMemoryDatasource(
        ...     trades={"0xabc...": [trade1, trade2]},
        ...     marks={"BTC": 100.0},
        ...     tracked_users=["0xabc..."],
        ... )
        >>> ds.fetch_trades("0xabc...", coin="btc")
    """

    name = "memory"

    def __init__(
        self,
        trades: Mapping[str, Iterable[Trade]] | None = None,
        funding: Mapping[str, Iterable[FundingPayment]] | None = None,
        marks: Mapping[str, float] | None = None,
        risk: Mapping[str, RiskSnapshot] | None = None,
        equity: Mapping[str, float] | None = None,
        tracked_users: Iterable[str] = (),
        failing_users: Iterable[str] = (),
    ):
        self._trades = {u: list(ts) for u, ts in (trades or {}).items()}
        self._funding = {u: list(fs) for u, fs in (funding or {}).items()}
        self._marks = {c.upper(): px for c, px in (marks or {}).items()}
        self._risk = dict(risk or {})
        self._equity = dict(equity or {})
        self._tracked = list(tracked_users)
        self._failing = set(failing_users)

    def _check(self, user: str, endpoint: str) -> None:
        if user in self._failing:
            raise UpstreamFetchError(f"Simulated failure for {user}", endpoint)

    def fetch_trades(
        self,
        user: str,
        coin: str | None = None,
        from_ms: int | None = None,
        to_ms: int | None = None,
    ) -> list[Trade]:
        self._check(user, "trades")
        return filter_trades(self._trades.get(user, []), coin, from_ms, to_ms)

    def fetch_funding(self, user: str) -> list[FundingPayment]:
        self._check(user, "funding")
        return list(self._funding.get(user, []))

    def fetch_mark_prices(self) -> dict[str, float]:
        return dict(self._marks)

    def fetch_risk_snapshot(self, user: str) -> RiskSnapshot | None:
        self._check(user, "risk")
        return self._risk.get(user)

    def fetch_equity(
        self,
        user: str,
        at_ms: int | None = None,
        snapshot: RiskSnapshot | None = None,
    ) -> float:
        self._check(user, "equity")
        if user in self._equity:
            return self._equity[user]
        snapshot = snapshot or self._risk.get(user)
        return snapshot.account_value if snapshot else 0.0

    def list_tracked_users(self) -> list[str]:
        return list(self._tracked)

    def health_check(self) -> HealthStatus:
        return HealthStatus(healthy=True, latency_ms=0.0, message="in-memory")
