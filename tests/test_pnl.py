"""Unit tests for domain/pnl.py and domain/metrics/.

Tests verify:
1. Win/loss statistics over closing fills
2. Profit factor keeps infinite and zero cases distinct
3. Return is computed on capped effective capital
4. Builder-only aggregation counts builder fills but judges taint on all fills
"""

import math

import pytest

from perp_ledger.domain.metrics import (
    calculate_win_loss,
    effective_capital,
    profit_factor,
    return_pct,
)
from perp_ledger.domain.models import FundingPayment, PositionRisk, RiskSnapshot, Trade
from perp_ledger.domain.pnl import aggregate_pnl, filter_funding, unrealized_from_risk

USER = "0x" + "1" * 40
BUILDER = "0x" + "b" * 40


def trade(time_ms, side, px, sz, coin="BTC", fee=0.0, closed_pnl=0.0, builder=None):
    return Trade(time_ms=time_ms, coin=coin, side=side, px=px, sz=sz,
                 fee=fee, closed_pnl=closed_pnl, builder=builder)


# =============================================================================
# Metrics
# =============================================================================

class TestProfitFactor:
    """Tests for profit factor edge cases."""

    def test_ratio(self):
        assert profit_factor(300.0, 100.0) == 3.0

    def test_wins_without_losses_is_infinite(self):
        assert math.isinf(profit_factor(50.0, 0.0))

    def test_no_activity_is_zero(self):
        assert profit_factor(0.0, 0.0) == 0.0

    def test_losses_only(self):
        assert profit_factor(0.0, 40.0) == 0.0


class TestCalculateWinLoss:
    """Tests for win/loss statistics."""

    def test_mixed(self):
        stats = calculate_win_loss([0.0, 100.0, -50.0, 0.0, 200.0, -25.0])
        assert stats.win_count == 2
        assert stats.loss_count == 2
        assert stats.closing_count == 4
        assert stats.win_rate == 0.5
        assert stats.largest_win == 200.0
        assert stats.largest_loss == -50.0
        assert stats.avg_win == 150.0
        assert stats.avg_loss == -37.5
        assert stats.gross_profit == 300.0
        assert stats.gross_loss == 75.0
        assert stats.profit_factor == 4.0

    def test_empty(self):
        stats = calculate_win_loss([])
        assert stats.win_count == 0
        assert stats.win_rate == 0.0
        assert stats.largest_win == 0.0
        assert stats.profit_factor == 0.0

    def test_zeros_are_not_closing(self):
        stats = calculate_win_loss([0.0, 0.0])
        assert stats.closing_count == 0
        assert stats.win_rate == 0.0

    def test_frozen(self):
        stats = calculate_win_loss([1.0])
        with pytest.raises(AttributeError):
            stats.win_count = 5


class TestReturns:
    """Tests for effective capital and return percentage."""

    def test_effective_capital_capped(self):
        assert effective_capital(50_000.0, 10_000.0) == 10_000.0

    def test_effective_capital_below_cap(self):
        assert effective_capital(5_000.0, 10_000.0) == 5_000.0

    def test_effective_capital_no_cap(self):
        assert effective_capital(50_000.0) == 50_000.0

    def test_return_pct(self):
        assert return_pct(500.0, 10_000.0) == pytest.approx(5.0)

    @pytest.mark.parametrize("capital", [0.0, -100.0])
    def test_return_pct_no_capital(self, capital):
        assert return_pct(500.0, capital) == 0.0


# =============================================================================
# Helpers
# =============================================================================

class TestFilterFunding:
    """Tests for funding filters."""

    def test_coin_and_window(self):
        funding = [
            FundingPayment(time_ms=1, coin="BTC", amount=-1.0),
            FundingPayment(time_ms=5, coin="btc", amount=-2.0),
            FundingPayment(time_ms=10, coin="BTC", amount=-4.0),
            FundingPayment(time_ms=5, coin="ETH", amount=3.0),
        ]
        result = filter_funding(funding, coin="BTC", from_ms=5, to_ms=10)
        assert [f.amount for f in result] == [-2.0, -4.0]

    def test_no_filters(self):
        funding = [FundingPayment(time_ms=1, coin="BTC", amount=1.0)]
        assert filter_funding(funding) == funding


class TestUnrealizedFromRisk:
    """Tests for unrealized P&L lookup."""

    def test_none(self):
        assert unrealized_from_risk(None) == 0.0

    def test_by_coin_and_total(self):
        risk = RiskSnapshot(positions={
            "BTC": PositionRisk("BTC", 1.0, 100.0, 15.0, 10.0),
            "ETH": PositionRisk("ETH", 1.0, 10.0, -5.0, 1.0),
        })
        assert unrealized_from_risk(risk, "eth") == -5.0
        assert unrealized_from_risk(risk, "SOL") == 0.0
        assert unrealized_from_risk(risk) == 10.0


# =============================================================================
# aggregate_pnl
# =============================================================================

class TestAggregatePnl:
    """Tests for P&L aggregation."""

    def test_basic_summary(self):
        trades = [
            trade(1, "buy", 100.0, 2.0, fee=0.2),
            trade(2, "sell", 110.0, 1.0, fee=0.1, closed_pnl=10.0),
            trade(3, "sell", 95.0, 1.0, fee=0.1, closed_pnl=-5.0),
        ]
        funding = [FundingPayment(time_ms=2, coin="BTC", amount=-0.5)]
        pnl = aggregate_pnl(USER, trades, funding, None, 1_000.0)

        assert pnl.realized_pnl == pytest.approx(5.0)
        assert pnl.fees_paid == pytest.approx(0.4)
        assert pnl.volume == pytest.approx(200.0 + 110.0 + 95.0)
        assert pnl.funding_paid == pytest.approx(-0.5)
        assert pnl.trade_count == 3
        assert pnl.win_count == 1
        assert pnl.loss_count == 1
        assert pnl.win_rate == 0.5
        assert pnl.profit_factor == 2.0
        assert pnl.return_pct == pytest.approx(0.5)
        assert pnl.effective_capital == 1_000.0
        assert pnl.total_pnl == pnl.realized_pnl + pnl.unrealized_pnl
        assert not pnl.tainted

    def test_no_trades(self):
        """No fills still reports unrealized and funding."""
        risk = RiskSnapshot(
            positions={"BTC": PositionRisk("BTC", 1.0, 100.0, 7.0, 10.0)},
            account_value=500.0,
        )
        funding = [FundingPayment(time_ms=1, coin="BTC", amount=-1.0)]
        pnl = aggregate_pnl(USER, [], funding, risk, 500.0)

        assert pnl.trade_count == 0
        assert pnl.realized_pnl == 0.0
        assert pnl.win_rate == 0.0
        assert pnl.profit_factor == 0.0
        assert pnl.return_pct == 0.0
        assert pnl.unrealized_pnl == 7.0
        assert pnl.funding_paid == -1.0

    def test_wins_only_profit_factor_infinite(self):
        trades = [
            trade(1, "buy", 100.0, 1.0),
            trade(2, "sell", 120.0, 1.0, closed_pnl=20.0),
        ]
        pnl = aggregate_pnl(USER, trades, [], None, 1_000.0)
        assert math.isinf(pnl.profit_factor)

    def test_capped_return(self):
        trades = [
            trade(1, "buy", 100.0, 1.0),
            trade(2, "sell", 200.0, 1.0, closed_pnl=100.0),
        ]
        pnl = aggregate_pnl(USER, trades, [], None, 50_000.0, max_start_capital=1_000.0)
        assert pnl.effective_capital == 1_000.0
        assert pnl.return_pct == pytest.approx(10.0)

    def test_zero_equity(self):
        trades = [trade(1, "sell", 10.0, 1.0, closed_pnl=3.0)]
        pnl = aggregate_pnl(USER, trades, [], None, 0.0)
        assert pnl.return_pct == 0.0

    def test_coin_filter_applies_to_funding_and_unrealized(self):
        risk = RiskSnapshot(positions={
            "BTC": PositionRisk("BTC", 1.0, 100.0, 7.0, 10.0),
            "ETH": PositionRisk("ETH", 1.0, 10.0, 3.0, 1.0),
        })
        funding = [
            FundingPayment(time_ms=1, coin="BTC", amount=-1.0),
            FundingPayment(time_ms=1, coin="ETH", amount=-9.0),
        ]
        pnl = aggregate_pnl(USER, [], funding, risk, 0.0, coin="btc")
        assert pnl.unrealized_pnl == 7.0
        assert pnl.funding_paid == -1.0
        assert pnl.coin == "btc"

    def test_builder_only_counts_builder_fills(self):
        trades = [
            trade(1, "buy", 100.0, 1.0, builder=BUILDER),
            trade(2, "sell", 110.0, 1.0, builder=BUILDER, closed_pnl=10.0),
            trade(3, "buy", 50.0, 1.0, coin="ETH"),
            trade(4, "sell", 40.0, 1.0, coin="ETH", closed_pnl=-10.0),
        ]
        pnl = aggregate_pnl(USER, trades, [], None, 1_000.0,
                            builder=BUILDER, builder_only=True)
        assert pnl.trade_count == 2
        assert pnl.realized_pnl == 10.0
        assert pnl.volume == pytest.approx(210.0)
        assert not pnl.tainted

    def test_builder_only_taint_uses_all_fills(self):
        """Taint is judged on the unfiltered fills."""
        trades = [
            trade(1, "buy", 100.0, 1.0, builder=BUILDER),
            trade(2, "sell", 110.0, 1.0, closed_pnl=10.0),
        ]
        pnl = aggregate_pnl(USER, trades, [], None, 1_000.0,
                            builder=BUILDER, builder_only=True)
        assert pnl.tainted
        assert pnl.trade_count == 1
        assert pnl.realized_pnl == 0.0

    def test_all_flow_never_tainted(self):
        trades = [
            trade(1, "buy", 100.0, 1.0, builder=BUILDER),
            trade(2, "sell", 110.0, 1.0, closed_pnl=10.0),
        ]
        pnl = aggregate_pnl(USER, trades, [], None, 1_000.0, builder=BUILDER)
        assert not pnl.tainted
        assert pnl.trade_count == 2
