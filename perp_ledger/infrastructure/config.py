"""Configuration: Centralized settings.

This module provides:
- LedgerConfig: Datasource, builder and leaderboard settings
- ReportConfig: Output location and formats for exported reports
- load_config: Build LedgerConfig from the environment (optionally a .env file)

Environment Variables:
    HYPERLIQUID_INFO_URL   Info API endpoint
    TARGET_BUILDER         Builder address to attribute fills to
    TRACKED_USERS          Comma-separated leaderboard addresses
    PRICE_CACHE_TTL_MS     Mark price cache lifetime
    MAX_LEADERBOARD_SIZE   Default leaderboard limit
    REQUEST_TIMEOUT        HTTP timeout in seconds
    FILLS_PAGE_LIMIT       Max fills the info API returns per request
    PARALLEL_WORKERS       Leaderboard fan-out width
    DATASOURCE_TYPE        "hyperliquid" or "memory"
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


@dataclass(frozen=True)
class LedgerConfig:
    """Runtime settings for datasources and services.

    Attributes:
        info_url: Hyperliquid info endpoint (POST JSON)
        target_builder: Builder address for attribution, None to disable
        tracked_users: Addresses ranked by the leaderboard
        price_cache_ttl_ms: How long mark prices are reused
        max_leaderboard_size: Default leaderboard limit
        request_timeout: HTTP timeout in seconds
        fills_page_limit: Page size of the fills endpoints (a full page means more may follow)
        parallel_workers: Max concurrent per-user aggregations
        datasource: Registered datasource kind
    """

    info_url: str = "https://api.hyperliquid.xyz/info"
    target_builder: str | None = None
    tracked_users: tuple[str, ...] = ()
    price_cache_ttl_ms: int = 5_000
    max_leaderboard_size: int = 100
    request_timeout: float = 10.0
    fills_page_limit: int = 2_000
    parallel_workers: int = 8
    datasource: str = "hyperliquid"


@dataclass(frozen=True)
class ReportConfig:
    """Configuration for report export.

    Attributes:
        output_dir: Directory for output files
        output_formats: Formats to write ("csv", "parquet", "xlsx")
    """
    output_dir: Path = Path(".")
    output_formats: tuple[str, ...] = ("csv", "parquet")


def _split_users(value: str) -> tuple[str, ...]:
    return tuple(u.strip() for u in value.split(",") if u.strip())


def load_config(env_file: str | Path | None = None) -> LedgerConfig:
    """Build a LedgerConfig from environment variables.

    Args:
        env_file: Optional .env file loaded first (existing variables win)

    Returns:
        LedgerConfig with defaults for anything unset
    """
    if env_file is not None:
        load_dotenv(env_file)

    defaults = LedgerConfig()
    builder = os.environ.get("TARGET_BUILDER", "").strip()

    return LedgerConfig(
        info_url=os.environ.get("HYPERLIQUID_INFO_URL", defaults.info_url),
        target_builder=builder.lower() or None,
        tracked_users=_split_users(os.environ.get("TRACKED_USERS", "")),
        price_cache_ttl_ms=int(os.environ.get("PRICE_CACHE_TTL_MS", defaults.price_cache_ttl_ms)),
        max_leaderboard_size=int(os.environ.get("MAX_LEADERBOARD_SIZE", defaults.max_leaderboard_size)),
        request_timeout=float(os.environ.get("REQUEST_TIMEOUT", defaults.request_timeout)),
        fills_page_limit=int(os.environ.get("FILLS_PAGE_LIMIT", defaults.fills_page_limit)),
        parallel_workers=int(os.environ.get("PARALLEL_WORKERS", defaults.parallel_workers)),
        datasource=os.environ.get("DATASOURCE_TYPE", defaults.datasource),
    )


# Default instances
DEFAULT_CONFIG = LedgerConfig()
DEFAULT_REPORT_CONFIG = ReportConfig()
