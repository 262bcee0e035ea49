"""Ledger Service: Single-user trades, positions and P&L.

Orchestrates datasource access and domain logic:
1. Fetch fills (and funding, marks, risk as needed)
2. Reconstruct positions or aggregate P&L
3. Return domain values

Errors from the datasource propagate to the caller unchanged.
An empty history is not an error: position history is [], and a user
with no fills, no funding in the window and no risk snapshot gets
PnLData.empty.
"""

from __future__ import annotations

import structlog

from perp_ledger.application.queries import PnLQuery, PositionQuery, TradeQuery
from perp_ledger.domain.models import PnLData, PositionState, Trade
from perp_ledger.domain.pnl import aggregate_pnl, filter_funding
from perp_ledger.domain.positions import apply_risk_overlay, reconstruct_positions
from perp_ledger.domain.taint import filter_builder_trades, tainted_coins
from perp_ledger.infrastructure.config import DEFAULT_CONFIG, LedgerConfig
from perp_ledger.infrastructure.datasources import Datasource, HealthStatus

log = structlog.get_logger(__name__)


class LedgerService:
    """Service for single-user ledger queries.

    Example:
        >>> service = LedgerService(HyperliquidDatasource(config), config)
        >>> trades = service.get_trades(TradeQuery(user="0x..."))
        >>> history = service.get_position_history(PositionQuery(user="0x...", coin="BTC"))
        >>> pnl = service.get_pnl(PnLQuery(user="0x...", builder_only=True))
    """

    def __init__(self, datasource: Datasource, config: LedgerConfig = DEFAULT_CONFIG):
        """Initialize the service.

        Args:
            datasource: Exchange data access
            config: Settings (target_builder is used for attribution)
        """
        self._datasource = datasource
        self._config = config

    @property
    def datasource(self) -> Datasource:
        return self._datasource

    @property
    def config(self) -> LedgerConfig:
        return self._config

    @property
    def builder(self) -> str | None:
        return self._config.target_builder

    def get_trades(self, query: TradeQuery) -> list[Trade]:
        """Fills for a user, optionally builder-attributed only.

        Returns:
            Trades sorted ascending by time
        """
        trades = self._datasource.fetch_trades(
            query.user, query.coin, query.from_ms, query.to_ms
        )
        if query.builder_only:
            trades = filter_builder_trades(trades, self.builder)
        return trades

    def get_position_history(self, query: PositionQuery) -> list[PositionState]:
        """Position snapshot after every fill in the window.

        The replay uses every fill (builder or not) so sizes stay correct;
        builder_only only turns on taint flags.
        """
        trades = self._datasource.fetch_trades(
            query.user, query.coin, query.from_ms, query.to_ms
        )
        if not trades:
            return []

        marks = self._datasource.fetch_mark_prices()
        risk = self._datasource.fetch_risk_snapshot(query.user)

        states = reconstruct_positions(
            trades,
            marks,
            builder=self.builder,
            taint_enabled=query.builder_only,
        )
        return apply_risk_overlay(states, risk)

    def get_pnl(self, query: PnLQuery) -> PnLData:
        """Aggregate P&L summary for a user."""
        trades = self._datasource.fetch_trades(
            query.user, query.coin, query.from_ms, query.to_ms
        )
        funding = filter_funding(
            self._datasource.fetch_funding(query.user),
            query.coin,
            query.from_ms,
            query.to_ms,
        )
        risk = self._datasource.fetch_risk_snapshot(query.user)
        if not trades and not funding and risk is None:
            return PnLData.empty(query.user, query.coin, query.from_ms, query.to_ms)

        start_equity = self._datasource.fetch_equity(
            query.user, query.from_ms, snapshot=risk
        )

        pnl = aggregate_pnl(
            query.user,
            trades,
            funding,
            risk,
            start_equity,
            coin=query.coin,
            from_ms=query.from_ms,
            to_ms=query.to_ms,
            builder=self.builder,
            builder_only=query.builder_only,
            max_start_capital=query.max_start_capital,
        )
        if pnl.tainted:
            log.info(
                "pnl_tainted",
                user=query.user,
                coins=sorted(tainted_coins(trades, self.builder)),
            )
        return pnl

    def health(self) -> HealthStatus:
        return self._datasource.health_check()
