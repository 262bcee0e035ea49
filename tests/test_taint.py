"""Unit tests for domain/taint.py and domain/lifecycle.py."""

import pytest

from perp_ledger.domain.lifecycle import (
    group_by_coin,
    is_builder_trade,
    sort_trades,
    step_net_size,
)
from perp_ledger.domain.models import Trade
from perp_ledger.domain.positions import reconstruct_positions
from perp_ledger.domain.taint import (
    filter_builder_trades,
    is_tainted,
    tainted_coins,
)

BUILDER = "0x" + "b" * 40
OTHER = "0x" + "c" * 40


def trade(time_ms, side, sz, coin="BTC", builder=None, px=100.0):
    return Trade(time_ms=time_ms, coin=coin, side=side, px=px, sz=sz, builder=builder)


# =============================================================================
# Lifecycle Helpers
# =============================================================================

class TestLifecycleHelpers:
    """Tests for the shared boundary helpers."""

    def test_step_net_size_rounds(self):
        assert step_net_size(0.30000000000000004, trade(1, "sell", 0.3)) == 0.0

    def test_step_net_size_no_negative_zero(self):
        result = step_net_size(-0.5, trade(1, "buy", 0.5))
        assert result == 0.0
        assert str(result) == "0.0"

    def test_is_builder_trade_case_insensitive(self):
        assert is_builder_trade(trade(1, "buy", 1.0, builder=BUILDER), BUILDER.upper())

    def test_is_builder_trade_none(self):
        assert not is_builder_trade(trade(1, "buy", 1.0), BUILDER)
        assert not is_builder_trade(trade(1, "buy", 1.0, builder=BUILDER), None)

    def test_sort_trades_stable(self):
        a = trade(5, "buy", 1.0)
        b = trade(5, "sell", 1.0)
        c = trade(1, "buy", 2.0)
        assert sort_trades([a, b, c]) == [c, a, b]

    def test_group_by_coin(self):
        groups = group_by_coin([
            trade(2, "buy", 1.0, coin="eth"),
            trade(1, "buy", 1.0, coin="ETH"),
            trade(3, "buy", 1.0),
        ])
        assert set(groups) == {"ETH", "BTC"}
        assert [t.time_ms for t in groups["ETH"]] == [1, 2]


# =============================================================================
# Taint Detection
# =============================================================================

class TestIsTainted:
    """Tests for taint detection."""

    def test_pure_builder_lifecycle(self):
        trades = [
            trade(1, "buy", 1.0, builder=BUILDER),
            trade(2, "sell", 1.0, builder=BUILDER),
        ]
        assert not is_tainted(trades, BUILDER)

    def test_pure_non_builder_lifecycle(self):
        trades = [trade(1, "buy", 1.0), trade(2, "sell", 1.0, builder=OTHER)]
        assert not is_tainted(trades, BUILDER)

    def test_mixed_closed_lifecycle(self):
        trades = [
            trade(1, "buy", 1.0, builder=BUILDER),
            trade(2, "sell", 1.0),
        ]
        assert is_tainted(trades, BUILDER)

    def test_mixed_open_lifecycle(self):
        """A lifecycle still open at the end of the window counts."""
        trades = [
            trade(1, "buy", 1.0),
            trade(2, "buy", 1.0, builder=BUILDER),
        ]
        assert is_tainted(trades, BUILDER)

    def test_separate_lifecycles_not_mixed(self):
        """Builder and non-builder fills in different lifecycles are clean."""
        trades = [
            trade(1, "buy", 1.0, builder=BUILDER),
            trade(2, "sell", 1.0, builder=BUILDER),
            trade(3, "buy", 1.0),
            trade(4, "sell", 1.0),
        ]
        assert not is_tainted(trades, BUILDER)

    def test_instruments_are_independent(self):
        trades = [
            trade(1, "buy", 1.0, builder=BUILDER),
            trade(2, "buy", 1.0, coin="ETH"),
            trade(3, "sell", 1.0, builder=BUILDER),
            trade(4, "sell", 1.0, coin="ETH"),
        ]
        assert not is_tainted(trades, BUILDER)

    def test_flip_keeps_lifecycle(self):
        """A flip does not pass through zero, so it stays one lifecycle."""
        trades = [
            trade(1, "buy", 1.0, builder=BUILDER),
            trade(2, "sell", 2.0),
            trade(3, "buy", 1.0, builder=BUILDER),
        ]
        assert is_tainted(trades, BUILDER)

    def test_no_builder_configured(self):
        trades = [trade(1, "buy", 1.0, builder=BUILDER), trade(2, "sell", 1.0)]
        assert not is_tainted(trades, None)
        assert tainted_coins(trades, None) == set()

    def test_empty(self):
        assert not is_tainted([], BUILDER)

    def test_tainted_coins(self):
        trades = [
            trade(1, "buy", 1.0, coin="eth", builder=BUILDER),
            trade(2, "sell", 1.0, coin="ETH"),
            trade(3, "buy", 1.0, builder=BUILDER),
        ]
        assert tainted_coins(trades, BUILDER) == {"ETH"}

    @pytest.mark.parametrize("fills", [
        [("buy", 1.0, True), ("sell", 1.0, False)],
        [("buy", 1.0, True), ("sell", 1.0, True), ("buy", 2.0, False)],
        [("sell", 0.5, False), ("sell", 0.5, True), ("buy", 1.0, True)],
        [("buy", 0.1, True), ("buy", 0.2, True), ("sell", 0.3, True), ("buy", 1.0, False)],
    ])
    def test_agrees_with_reconstructor(self, fills):
        """Detector and reconstructor segment lifecycles the same way."""
        trades = [
            trade(i, side, sz, builder=BUILDER if attributed else None)
            for i, (side, sz, attributed) in enumerate(fills, start=1)
        ]
        states = reconstruct_positions(trades, builder=BUILDER, taint_enabled=True)
        assert is_tainted(trades, BUILDER) == any(s.tainted for s in states)


class TestFilterBuilderTrades:
    """Tests for builder-only filtering."""

    def test_keeps_builder_fills(self):
        trades = [
            trade(1, "buy", 1.0, builder=BUILDER),
            trade(2, "buy", 1.0, builder=OTHER),
            trade(3, "buy", 1.0),
        ]
        assert [t.time_ms for t in filter_builder_trades(trades, BUILDER)] == [1]

    def test_no_builder_keeps_all(self):
        trades = [trade(1, "buy", 1.0), trade(2, "buy", 1.0, builder=OTHER)]
        assert filter_builder_trades(trades, None) == trades
