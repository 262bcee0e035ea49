"""Leaderboard Service: Rank tracked users by a P&L metric.

Orchestrates the leaderboard:
1. List tracked users from the datasource
2. Aggregate each user's P&L concurrently (bounded thread pool)
3. Drop users whose aggregation failed, and tainted users in builder-only mode
4. Sort descending by metric (ties keep tracked-user order), assign ranks
5. Truncate to the limit, optionally export to CSV / Parquet / Excel
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

import polars as pl
import structlog

from perp_ledger.application.queries import LeaderboardQuery
from perp_ledger.application.services.ledger import LedgerService
from perp_ledger.domain.models import LeaderboardEntry, PnLData
from perp_ledger.infrastructure.config import (
    DEFAULT_CONFIG,
    DEFAULT_REPORT_CONFIG,
    LedgerConfig,
    ReportConfig,
)

log = structlog.get_logger(__name__)

# Column order for output
REPORT_SCHEMA = {
    "rank": pl.Int64,
    "user": pl.Utf8,
    "metric_name": pl.Utf8,
    "metric_value": pl.Float64,
    "trade_count": pl.Int64,
    "volume": pl.Float64,
    "realized_pnl": pl.Float64,
    "return_pct": pl.Float64,
    "win_rate": pl.Float64,
    "tainted": pl.Boolean,
}


def rank_entries(
    results: list[tuple[str, PnLData]],
    metric: str,
    limit: int,
) -> list[LeaderboardEntry]:
    """Sort users descending by metric and assign 1-based ranks.

    Args:
        results: (user, PnLData) pairs in tracked-user order
        metric: "volume", "pnl" or "return_pct"
        limit: Max entries returned

    Returns:
        Ranked entries; equal values keep their input order
    """
    if not results:
        return []

    rows = [
        {
            "user": user,
            "metric_value": float(pnl.metric(metric)),
            "trade_count": pnl.trade_count,
            "volume": float(pnl.volume),
            "realized_pnl": float(pnl.realized_pnl),
            "return_pct": float(pnl.return_pct),
            "win_rate": float(pnl.win_rate),
            "tainted": pnl.tainted,
        }
        for user, pnl in results
    ]
    schema = {k: v for k, v in REPORT_SCHEMA.items() if k not in ("rank", "metric_name")}

    df = pl.DataFrame(rows, schema=schema)
    df = df.sort("metric_value", descending=True, maintain_order=True)
    df = df.with_row_index("rank", offset=1)
    df = df.head(limit)

    return [
        LeaderboardEntry(
            rank=int(row["rank"]),
            user=row["user"],
            metric_name=metric,
            metric_value=row["metric_value"],
            trade_count=row["trade_count"],
            volume=row["volume"],
            realized_pnl=row["realized_pnl"],
            return_pct=row["return_pct"],
            win_rate=row["win_rate"],
            tainted=row["tainted"],
        )
        for row in df.iter_rows(named=True)
    ]


class LeaderboardService:
    """Service for ranking tracked users.

    Example:
        >>> service = LeaderboardService(ledger)
        >>> entries = service.get_leaderboard(LeaderboardQuery(metric="volume"))
        >>> service.save_report(entries, "leaderboard")
    """

    def __init__(
        self,
        ledger: LedgerService,
        config: LedgerConfig = DEFAULT_CONFIG,
        report_config: ReportConfig | None = None,
    ):
        """Initialize the service.

        Args:
            ledger: Single-user service used for each aggregation
            config: Worker count and default limit
            report_config: Export settings (uses defaults if not provided)
        """
        self._ledger = ledger
        self._config = config
        self._report_config = report_config or DEFAULT_REPORT_CONFIG

    def _user_pnl(self, query: LeaderboardQuery, user: str) -> PnLData:
        return self._ledger.get_pnl(query.pnl_query(user))

    def collect(self, query: LeaderboardQuery, users: list[str]) -> list[tuple[str, PnLData]]:
        """Aggregate P&L for each user concurrently.

        Failures are logged and the user is dropped; the batch always
        completes. Output keeps the order of users.
        """
        if not users:
            return []

        slots: list[PnLData | None] = [None] * len(users)
        workers = max(1, min(self._config.parallel_workers, len(users)))

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self._user_pnl, query, user): i
                for i, user in enumerate(users)
            }
            for future in as_completed(futures):
                i = futures[future]
                try:
                    slots[i] = future.result()
                except Exception as e:
                    log.warning(
                        "leaderboard_user_failed",
                        user=users[i],
                        error_type=type(e).__name__,
                        error=str(e),
                    )

        return [(user, pnl) for user, pnl in zip(users, slots) if pnl is not None]

    def get_leaderboard(self, query: LeaderboardQuery) -> list[LeaderboardEntry]:
        """Rank tracked users by the query's metric."""
        users = self._ledger.datasource.list_tracked_users()
        results = self.collect(query, users)

        if query.builder_only:
            tainted = [user for user, pnl in results if pnl.tainted]
            if tainted:
                log.info("leaderboard_tainted_excluded", users=tainted)
            results = [(user, pnl) for user, pnl in results if not pnl.tainted]

        limit = query.limit or self._config.max_leaderboard_size
        entries = rank_entries(results, query.metric, limit)
        log.debug(
            "leaderboard_ranked",
            metric=query.metric,
            tracked=len(users),
            ranked=len(entries),
        )
        return entries

    # --- Export ---

    @staticmethod
    def to_frame(entries: list[LeaderboardEntry]) -> pl.DataFrame:
        """Entries as a DataFrame in report column order."""
        return pl.DataFrame([e.to_dict() for e in entries], schema=REPORT_SCHEMA)

    def save_report(
        self,
        entries: list[LeaderboardEntry],
        base_name: str = "leaderboard",
        formats: tuple[str, ...] | None = None,
    ) -> list[Path]:
        """Save entries to the configured formats.

        Args:
            entries: Ranked entries
            base_name: Base filename without extension
            formats: Output formats (uses config if not provided)

        Returns:
            List of saved file paths
        """
        formats = formats or self._report_config.output_formats
        output_dir = self._report_config.output_dir
        df = self.to_frame(entries)
        saved = []

        for fmt in formats:
            path = output_dir / f"{base_name}.{fmt}"

            if fmt == "csv":
                df.write_csv(path)
            elif fmt == "parquet":
                df.write_parquet(path)
            elif fmt == "xlsx":
                self._save_excel(df, path)
            else:
                raise ValueError(f"Unknown format: {fmt}")

            saved.append(path)

        return saved

    def _save_excel(self, df: pl.DataFrame, path: Path) -> None:
        """Save entries to Excel.

        Creates two sheets:
        1. Leaderboard - rank, user and the ranked metric
        2. Full Report - all columns
        """
        import xlsxwriter

        workbook = xlsxwriter.Workbook(str(path))

        ws1 = workbook.add_worksheet("Leaderboard")
        self._write_sheet(workbook, ws1, df, ["rank", "user", "metric_name", "metric_value"])

        ws2 = workbook.add_worksheet("Full Report")
        self._write_sheet(workbook, ws2, df, df.columns)

        workbook.close()

    def _write_sheet(
        self,
        workbook,
        worksheet,
        df: pl.DataFrame,
        columns: list[str],
    ) -> None:
        """Write DataFrame columns to an Excel worksheet."""
        header_fmt = workbook.add_format({
            "bold": True,
            "bg_color": "#4472C4",
            "font_color": "white",
            "border": 1,
        })
        num_fmt = workbook.add_format({"num_format": "#,##0.00"})
        pct_fmt = workbook.add_format({"num_format": "0.00%"})

        for col_idx, col_name in enumerate(columns):
            worksheet.write(0, col_idx, col_name, header_fmt)

        for row_idx, row in enumerate(df.select(columns).iter_rows(named=True), 1):
            for col_idx, col_name in enumerate(columns):
                value = row[col_name]
                if col_name in ("volume", "realized_pnl", "metric_value"):
                    worksheet.write(row_idx, col_idx, value, num_fmt)
                elif col_name == "win_rate":
                    worksheet.write(row_idx, col_idx, value, pct_fmt)
                else:
                    worksheet.write(row_idx, col_idx, value)

        worksheet.set_column(1, 1, 46)
