"""Hyperliquid Datasource: Fills, funding and risk from the info API.

Every call is a JSON POST to the info endpoint:
- userFills / userFillsByTime -> Trade
- userFunding                 -> FundingPayment
- clearinghouseState          -> RiskSnapshot
- allMids                     -> mark prices

Transport errors, non-2xx responses and undecodable bodies raise
UpstreamFetchError. No retries are performed here.
"""

from __future__ import annotations

import threading
import time
from typing import Any

import httpx
import structlog

from perp_ledger.domain.models import FundingPayment, RiskSnapshot, Trade
from perp_ledger.domain.normalizer import (
    normalize_clearinghouse,
    normalize_fill,
    normalize_funding,
    normalize_mids,
)
from perp_ledger.infrastructure.config import DEFAULT_CONFIG, LedgerConfig
from perp_ledger.infrastructure.datasources.base import (
    Datasource,
    HealthStatus,
    UpstreamFetchError,
    filter_trades,
)

log = structlog.get_logger(__name__)


class HyperliquidDatasource(Datasource):
    """Datasource backed by the Hyperliquid info API.

    Example:
        >>> ds = HyperliquidDatasource()
        >>> trades = ds.fetch_trades("0x...", coin="BTC")
        >>> marks = ds.fetch_mark_prices()  # {"BTC": 97000.0, ...}
    """

    name = "hyperliquid"

    def __init__(
        self,
        config: LedgerConfig = DEFAULT_CONFIG,
        client: httpx.Client | None = None,
    ):
        """Initialize the datasource.

        Args:
            config: Endpoint, timeout, cache and tracked-user settings
            client: Pre-built client (tests pass one with a MockTransport)
        """
        self._config = config
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=config.request_timeout)
        self._price_cache: dict[str, float] | None = None
        self._price_cache_at = 0.0
        self._price_lock = threading.Lock()

    # --- Transport ---

    def _post(self, body: dict[str, Any]) -> Any:
        endpoint = str(body.get("type"))
        try:
            response = self._client.post(self._config.info_url, json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamFetchError(
                f"Hyperliquid API error: {e.response.status_code} {e.response.reason_phrase}",
                endpoint,
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamFetchError(f"Hyperliquid request failed: {e}", endpoint) from e

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamFetchError(f"Invalid JSON from Hyperliquid: {e}", endpoint) from e

    def _post_list(self, body: dict[str, Any]) -> list:
        data = self._post(body)
        if not isinstance(data, list):
            raise UpstreamFetchError(
                f"Expected a list, got {type(data).__name__}", str(body.get("type"))
            )
        return data

    # --- Datasource API ---

    def fetch_trades(
        self,
        user: str,
        coin: str | None = None,
        from_ms: int | None = None,
        to_ms: int | None = None,
    ) -> list[Trade]:
        """Fetch and normalize fills.

        With from_ms the time-ranged endpoint is paged forward until a
        short page comes back. Without it only the most recent page is
        available; a full page is logged as possibly truncated.
        """
        if from_ms is not None:
            trades = self._fetch_fills_by_time(user, from_ms, to_ms)
        else:
            fills = self._post_list({"type": "userFills", "user": user})
            if len(fills) >= self._config.fills_page_limit:
                log.warning("fills_truncated", user=user, endpoint="userFills", fills=len(fills))
            trades = [normalize_fill(raw) for raw in fills]
        return filter_trades(trades, coin, from_ms, to_ms)

    def _fetch_fills_by_time(self, user: str, from_ms: int, to_ms: int | None) -> list[Trade]:
        """Page through userFillsByTime starting at from_ms.

        Each next page starts at the last fill time seen; fills repeated
        across the page boundary are dropped.
        """
        page_limit = self._config.fills_page_limit
        trades: list[Trade] = []
        seen: set = set()
        start = from_ms

        while True:
            body: dict[str, Any] = {"type": "userFillsByTime", "user": user, "startTime": start}
            if to_ms is not None:
                body["endTime"] = to_ms
            page = [normalize_fill(raw) for raw in self._post_list(body)]

            for trade in page:
                key = (trade.trade_id, trade.time_ms) if trade.trade_id is not None else trade
                if key not in seen:
                    seen.add(key)
                    trades.append(trade)

            if len(page) < page_limit:
                return trades

            last = max(t.time_ms for t in page)
            if last <= start:
                # A full page inside one millisecond cannot be advanced past
                log.warning("fills_truncated", user=user, endpoint="userFillsByTime", at_ms=start)
                return trades
            if to_ms is not None and last >= to_ms:
                return trades
            start = last

    def fetch_funding(self, user: str) -> list[FundingPayment]:
        records = self._post_list({"type": "userFunding", "user": user, "startTime": 0})
        return [normalize_funding(raw) for raw in records]

    def fetch_mark_prices(self) -> dict[str, float]:
        """Mid prices, cached for price_cache_ttl_ms."""
        with self._price_lock:
            now = time.monotonic()
            ttl = self._config.price_cache_ttl_ms / 1000
            if self._price_cache is not None and now - self._price_cache_at < ttl:
                return self._price_cache

            raw = self._post({"type": "allMids"})
            if not isinstance(raw, dict):
                raise UpstreamFetchError(
                    f"Expected an object, got {type(raw).__name__}", "allMids"
                )
            self._price_cache = normalize_mids(raw)
            self._price_cache_at = now
            return self._price_cache

    def fetch_risk_snapshot(self, user: str) -> RiskSnapshot | None:
        """Clearinghouse state, or None when the upstream call fails."""
        try:
            raw = self._post({"type": "clearinghouseState", "user": user})
        except UpstreamFetchError as e:
            log.warning("risk_snapshot_unavailable", user=user, error=str(e))
            return None
        if not raw:
            return None
        return normalize_clearinghouse(raw)

    def fetch_equity(
        self,
        user: str,
        at_ms: int | None = None,
        snapshot: RiskSnapshot | None = None,
    ) -> float:
        """Current account value.

        The info API has no historical equity, so at_ms is accepted for
        interface compatibility and the current value is returned. A
        supplied snapshot is used without another clearinghouseState call.
        """
        if snapshot is None:
            snapshot = self.fetch_risk_snapshot(user)
        if snapshot is None:
            return 0.0
        return snapshot.account_value

    def list_tracked_users(self) -> list[str]:
        return list(self._config.tracked_users)

    def health_check(self) -> HealthStatus:
        start = time.perf_counter()
        try:
            self._post({"type": "allMids"})
        except UpstreamFetchError as e:
            return HealthStatus(
                healthy=False,
                latency_ms=(time.perf_counter() - start) * 1000,
                message=str(e),
            )
        return HealthStatus(
            healthy=True,
            latency_ms=(time.perf_counter() - start) * 1000,
            message="Hyperliquid info API responding",
        )

    def clear_cache(self) -> None:
        """Clear cached mark prices."""
        with self._price_lock:
            self._price_cache = None
            self._price_cache_at = 0.0

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
