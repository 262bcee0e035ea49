"""Trade Normalizer: Exchange records to canonical domain values.

Converts Hyperliquid info-API payloads into domain models:
- normalize_fill: userFills record -> Trade
- normalize_funding: userFunding record -> FundingPayment
- normalize_clearinghouse: clearinghouseState -> RiskSnapshot
- normalize_mids: allMids -> {coin: price}

All functions are pure. Any unparseable field or non-object payload
raises MalformedInputError.
"""

from __future__ import annotations

import math
from typing import Any, Mapping

from perp_ledger.domain.errors import MalformedInputError
from perp_ledger.domain.models import (
    FundingPayment,
    PositionRisk,
    RiskSnapshot,
    Trade,
)

SIDE_CODES = {"B": "buy", "A": "sell"}


def parse_decimal(value: Any, field: str) -> float:
    """Parse a decimal string (or number) from upstream data.

    Args:
        value: String like "101.5" or a number
        field: Field name for error reporting

    Returns:
        Parsed finite float

    Raises:
        MalformedInputError: If value is missing, not numeric, or not finite
    """
    if value is None or isinstance(value, bool):
        raise MalformedInputError(f"Expected decimal, got {value!r}", field, value)
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        raise MalformedInputError(f"Invalid decimal {value!r}", field, value) from None
    if not math.isfinite(parsed):
        raise MalformedInputError(f"Non-finite decimal {value!r}", field, value)
    return parsed


def parse_optional_decimal(value: Any, field: str) -> float | None:
    """Like parse_decimal, but None and "" map to None."""
    if value is None or value == "":
        return None
    return parse_decimal(value, field)


def _mapping(value: Any, field: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise MalformedInputError(
            f"Expected an object, got {type(value).__name__}", field, value
        )
    return value


def _require(raw: Mapping[str, Any], key: str) -> Any:
    try:
        return raw[key]
    except (KeyError, TypeError):
        raise MalformedInputError("Missing required field", key) from None


def _parse_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise MalformedInputError(f"Expected integer, got {value!r}", field, value)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise MalformedInputError(f"Invalid integer {value!r}", field, value) from None


def _optional_int(value: Any, field: str) -> int | None:
    if value is None:
        return None
    return _parse_int(value, field)


# =============================================================================
# Fills
# =============================================================================

def normalize_fill(raw: Mapping[str, Any]) -> Trade:
    """Convert a userFills record into a Trade.

    Args:
        raw: Fill dict with string decimals, e.g.
            {"coin": "BTC", "px": "100.5", "sz": "0.1", "side": "B",
             "time": 1700000000000, "fee": "0.01", "closedPnl": "0.0",
             "dir": "Open Long", "builder": "0xabc...", ...}

    Returns:
        Trade with numeric fields and "buy"/"sell" side

    Raises:
        MalformedInputError: If a field cannot be parsed
    """
    raw = _mapping(raw, "fill")
    side_code = _require(raw, "side")
    side = SIDE_CODES.get(side_code) if isinstance(side_code, str) else None
    if side is None:
        raise MalformedInputError(f"Unknown side code {side_code!r}", "side", side_code)

    coin = _require(raw, "coin")
    if not isinstance(coin, str) or not coin:
        raise MalformedInputError(f"Invalid coin {coin!r}", "coin", coin)

    px = parse_decimal(_require(raw, "px"), "px")
    sz = parse_decimal(_require(raw, "sz"), "sz")
    if px < 0 or sz < 0:
        raise MalformedInputError("Price and size must be non-negative", "px/sz", (px, sz))

    liquidation = raw.get("liquidation")
    builder = raw.get("builder") or None

    return Trade(
        time_ms=_parse_int(_require(raw, "time"), "time"),
        coin=coin,
        side=side,
        px=px,
        sz=sz,
        fee=parse_decimal(raw.get("fee", "0"), "fee"),
        closed_pnl=parse_decimal(raw.get("closedPnl", "0"), "closedPnl"),
        builder=builder.lower() if isinstance(builder, str) else None,
        direction=str(raw.get("dir") or ""),
        liquidation=bool(liquidation),
        crossed=bool(raw.get("crossed", False)),
        hash=raw.get("hash"),
        order_id=_optional_int(raw.get("oid"), "oid"),
        trade_id=_optional_int(raw.get("tid"), "tid"),
        liquidation_method=liquidation.get("method") if isinstance(liquidation, dict) else None,
    )


# =============================================================================
# Funding
# =============================================================================

def normalize_funding(raw: Mapping[str, Any]) -> FundingPayment:
    """Convert a userFunding record into a FundingPayment.

    Accepts both the flat shape ({"time", "coin", "usdc", ...}) and the
    ledger-update shape ({"time", "delta": {"coin", "usdc", ...}}).
    """
    raw = _mapping(raw, "funding")
    body = _mapping(raw["delta"], "delta") if "delta" in raw else raw
    coin = _require(body, "coin")
    if not isinstance(coin, str) or not coin:
        raise MalformedInputError(f"Invalid coin {coin!r}", "coin", coin)

    return FundingPayment(
        time_ms=_parse_int(_require(raw, "time"), "time"),
        coin=coin,
        amount=parse_decimal(_require(body, "usdc"), "usdc"),
        position_size=parse_decimal(body.get("szi", "0"), "szi"),
        funding_rate=parse_decimal(body.get("fundingRate", "0"), "fundingRate"),
    )


# =============================================================================
# Risk / Prices
# =============================================================================

def normalize_clearinghouse(raw: Mapping[str, Any]) -> RiskSnapshot:
    """Convert a clearinghouseState payload into a RiskSnapshot.

    Coins are uppercased so lookups are case-insensitive.
    """
    raw = _mapping(raw, "clearinghouseState")
    asset_positions = raw.get("assetPositions") or []
    if not isinstance(asset_positions, list):
        raise MalformedInputError(
            f"Expected a list, got {type(asset_positions).__name__}",
            "assetPositions",
            asset_positions,
        )

    positions: dict[str, PositionRisk] = {}
    for entry in asset_positions:
        pos = _mapping(_require(_mapping(entry, "assetPositions"), "position"), "position")
        coin = str(_require(pos, "coin")).upper()
        positions[coin] = PositionRisk(
            coin=coin,
            size=parse_decimal(pos.get("szi", "0"), "szi"),
            entry_px=parse_decimal(pos.get("entryPx") or "0", "entryPx"),
            unrealized_pnl=parse_decimal(pos.get("unrealizedPnl", "0"), "unrealizedPnl"),
            margin_used=parse_decimal(pos.get("marginUsed", "0"), "marginUsed"),
            liquidation_px=parse_optional_decimal(pos.get("liquidationPx"), "liquidationPx"),
        )

    summary = _mapping(raw.get("marginSummary") or {}, "marginSummary")
    return RiskSnapshot(
        positions=positions,
        account_value=parse_decimal(summary.get("accountValue", "0"), "accountValue"),
        time_ms=_optional_int(raw.get("time"), "time"),
    )


def normalize_mids(raw: Mapping[str, Any]) -> dict[str, float]:
    """Convert an allMids payload into {COIN: mid price}."""
    raw = _mapping(raw, "allMids")
    return {str(coin).upper(): parse_decimal(px, str(coin)) for coin, px in raw.items()}
