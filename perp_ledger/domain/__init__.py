"""Domain Layer: Core business logic and entities.

This layer contains:
- models.py: Data structures (Trade, PositionState, PnLData, ...)
- errors.py: Error taxonomy
- normalizer.py: Exchange records -> domain models
- lifecycle.py: Shared flat -> open -> flat boundary rule
- positions.py: Cost-basis replay into position snapshots
- taint.py: Builder-attribution taint detection
- metrics/: Win/loss and return calculations
- pnl.py: P&L aggregation
"""

from perp_ledger.domain.errors import LedgerError, MalformedInputError
from perp_ledger.domain.models import (
    LEADERBOARD_METRICS,
    FundingPayment,
    LeaderboardEntry,
    LeaderboardMetric,
    PnLData,
    PositionRisk,
    PositionState,
    RiskSnapshot,
    Side,
    Trade,
)
from perp_ledger.domain.normalizer import (
    normalize_clearinghouse,
    normalize_fill,
    normalize_funding,
    normalize_mids,
    parse_decimal,
)
from perp_ledger.domain.positions import apply_risk_overlay, reconstruct_positions
from perp_ledger.domain.taint import filter_builder_trades, is_tainted, tainted_coins
from perp_ledger.domain.pnl import aggregate_pnl, filter_funding

__all__ = [
    # Errors
    "LedgerError",
    "MalformedInputError",
    # Models
    "LEADERBOARD_METRICS",
    "FundingPayment",
    "LeaderboardEntry",
    "LeaderboardMetric",
    "PnLData",
    "PositionRisk",
    "PositionState",
    "RiskSnapshot",
    "Side",
    "Trade",
    # Normalizer
    "normalize_clearinghouse",
    "normalize_fill",
    "normalize_funding",
    "normalize_mids",
    "parse_decimal",
    # Positions
    "apply_risk_overlay",
    "reconstruct_positions",
    # Taint
    "filter_builder_trades",
    "is_tainted",
    "tainted_coins",
    # P&L
    "aggregate_pnl",
    "filter_funding",
]
