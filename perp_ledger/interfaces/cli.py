"""Command Line Interface for the ledger.

Provides CLI access to ledger operations:
- trades: List a user's fills
- positions: Reconstructed position history
- pnl: P&L summary
- leaderboard: Rank tracked users
- health: Datasource health check

Usage:
    python -m perp_ledger trades USER [--coin BTC] [--builder-only]
    python -m perp_ledger positions USER [--coin BTC]
    python -m perp_ledger pnl USER [--max-start-capital 10000]
    python -m perp_ledger leaderboard [--metric volume] [--limit 20] [--save]
    python -m perp_ledger health
"""

import argparse
import math
import sys
from datetime import datetime, timezone
from pathlib import Path

from perp_ledger import __version__
from perp_ledger.application import (
    LeaderboardQuery,
    LeaderboardService,
    LedgerService,
    PnLQuery,
    PositionQuery,
    TradeQuery,
)
from perp_ledger.domain import LEADERBOARD_METRICS, LedgerError
from perp_ledger.infrastructure import (
    ReportConfig,
    get_datasource,
    load_config,
    setup_logging,
)


def _fmt_time(time_ms: int) -> str:
    return datetime.fromtimestamp(time_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _fmt_factor(value: float) -> str:
    return "inf" if math.isinf(value) else f"{value:.2f}"


def _build_ledger(args: argparse.Namespace) -> LedgerService:
    config = load_config(args.env_file)
    datasource = get_datasource(args.datasource, config)
    return LedgerService(datasource, config)


def cmd_trades(args: argparse.Namespace) -> int:
    """List a user's fills."""
    ledger = _build_ledger(args)
    query = TradeQuery(
        user=args.user,
        coin=args.coin,
        from_ms=args.from_ms,
        to_ms=args.to_ms,
        builder_only=args.builder_only,
    )
    trades = ledger.get_trades(query)

    print(f"Fills for {args.user}: {len(trades)}")
    print("-" * 78)
    print(f"{'Time (UTC)':<20} {'Coin':<8} {'Side':<5} {'Price':>12} {'Size':>12} "
          f"{'Closed PnL':>12} {'B':>2}")
    for t in trades:
        print(f"{_fmt_time(t.time_ms):<20} {t.coin:<8} {t.side:<5} {t.px:>12.4f} "
              f"{t.sz:>12.4f} {t.closed_pnl:>+12.2f} {'*' if t.builder else '':>2}")
    return 0


def cmd_positions(args: argparse.Namespace) -> int:
    """Show reconstructed position history."""
    ledger = _build_ledger(args)
    query = PositionQuery(
        user=args.user,
        coin=args.coin,
        from_ms=args.from_ms,
        to_ms=args.to_ms,
        builder_only=args.builder_only,
    )
    states = ledger.get_position_history(query)

    if not states:
        print(f"No fills for {args.user}")
        return 0

    print(f"{'Time (UTC)':<20} {'Coin':<8} {'Cycle':>5} {'Net Size':>12} {'Avg Entry':>12} "
          f"{'Realized':>12} {'Unrealized':>12} {'T':>2}")
    print("-" * 90)
    for s in states:
        print(f"{_fmt_time(s.time_ms):<20} {s.coin:<8} {s.lifecycle_id:>5} {s.net_size:>12.4f} "
              f"{s.avg_entry_px:>12.4f} {s.realized_pnl:>+12.2f} {s.unrealized_pnl:>+12.2f} "
              f"{'!' if s.tainted else '':>2}")
        if s.liquidation_px is not None or s.margin_used is not None:
            liq = f"{s.liquidation_px:.4f}" if s.liquidation_px is not None else "-"
            print(f"{'':<20} liq px {liq}  margin used {s.margin_used or 0:.2f}")
    return 0


def cmd_pnl(args: argparse.Namespace) -> int:
    """Show P&L summary."""
    ledger = _build_ledger(args)
    query = PnLQuery(
        user=args.user,
        coin=args.coin,
        from_ms=args.from_ms,
        to_ms=args.to_ms,
        builder_only=args.builder_only,
        max_start_capital=args.max_start_capital,
    )
    pnl = ledger.get_pnl(query)

    print(f"[{pnl.user}] {pnl.coin or 'all coins'}")
    print("=" * 50)
    print()
    print("[P&L]")
    print(f"  Realized:    {pnl.realized_pnl:+,.2f}")
    print(f"  Unrealized:  {pnl.unrealized_pnl:+,.2f}")
    print(f"  Total:       {pnl.total_pnl:+,.2f}")
    print(f"  Return:      {pnl.return_pct:+.2f}% on {pnl.effective_capital:,.2f}")
    print()
    print("[Costs]")
    print(f"  Fees:        {pnl.fees_paid:,.2f}")
    print(f"  Funding:     {pnl.funding_paid:+,.2f}")
    print()
    print("[Activity]")
    print(f"  Fills:       {pnl.trade_count:,}")
    print(f"  Volume:      {pnl.volume:,.2f}")
    print()
    print("[Win Rate]")
    print(f"  Wins:        {pnl.win_count:,} (avg {pnl.avg_win:+,.2f}, best {pnl.largest_win:+,.2f})")
    print(f"  Losses:      {pnl.loss_count:,} (avg {pnl.avg_loss:+,.2f}, worst {pnl.largest_loss:+,.2f})")
    print(f"  Win rate:    {pnl.win_rate * 100:.1f}%")
    print(f"  Profit factor: {_fmt_factor(pnl.profit_factor)}")
    if pnl.tainted:
        print()
        print("  ! Builder-only figures are tainted by non-builder fills")
    return 0


def cmd_leaderboard(args: argparse.Namespace) -> int:
    """Rank tracked users."""
    ledger = _build_ledger(args)
    query = LeaderboardQuery(
        metric=args.metric,
        coin=args.coin,
        from_ms=args.from_ms,
        to_ms=args.to_ms,
        builder_only=not args.all_flow,
        max_start_capital=args.max_start_capital,
        limit=args.limit,
    )
    report_config = ReportConfig(
        output_dir=Path(args.output).parent if args.output else Path("."),
        output_formats=tuple(args.formats.split(",")),
    )
    service = LeaderboardService(ledger, ledger.config, report_config)
    entries = service.get_leaderboard(query)

    if args.save:
        base_name = Path(args.output).stem if args.output else "leaderboard"
        for path in service.save_report(entries, base_name):
            print(f"Saved: {path}")
        print()

    print(f"[Leaderboard by {args.metric}]")
    print(f"{'Rank':<5} {'User':<44} {'Value':>16} {'Fills':>7} {'Win':>7}")
    print("-" * 82)
    for e in entries:
        print(f"{e.rank:<5} {e.user:<44} {e.metric_value:>16,.2f} {e.trade_count:>7} "
              f"{e.win_rate * 100:>6.1f}%")
    return 0


def cmd_health(args: argparse.Namespace) -> int:
    """Check datasource health."""
    ledger = _build_ledger(args)
    status = ledger.health()
    mark = "OK" if status.healthy else "FAIL"
    print(f"{ledger.datasource.name}: {mark} ({status.latency_ms:.0f} ms) {status.message}")
    return 0 if status.healthy else 1


def _add_filters(parser: argparse.ArgumentParser, user: bool = True) -> None:
    if user:
        parser.add_argument("user", help="Wallet address (0x...)")
    parser.add_argument("--coin", help="Instrument filter (e.g., BTC)")
    parser.add_argument("--from-ms", type=int, help="Window start (epoch ms)")
    parser.add_argument("--to-ms", type=int, help="Window end (epoch ms)")


def main(argv: list[str] | None = None) -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        prog="perp_ledger",
        description="Perp Ledger - Position and P&L analytics",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument("--env-file", help="Load settings from a .env file")
    parser.add_argument("--datasource", help="Datasource kind (default from config)")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # trades command
    trades_parser = subparsers.add_parser("trades", help="List fills")
    _add_filters(trades_parser)
    trades_parser.add_argument("--builder-only", action="store_true",
                               help="Only builder-attributed fills")

    # positions command
    positions_parser = subparsers.add_parser("positions", help="Position history")
    _add_filters(positions_parser)
    positions_parser.add_argument("--builder-only", action="store_true",
                                  help="Flag tainted lifecycles")

    # pnl command
    pnl_parser = subparsers.add_parser("pnl", help="P&L summary")
    _add_filters(pnl_parser)
    pnl_parser.add_argument("--builder-only", action="store_true",
                            help="Only builder-attributed fills")
    pnl_parser.add_argument("--max-start-capital", type=float,
                            help="Cap on the return denominator")

    # leaderboard command
    lb_parser = subparsers.add_parser("leaderboard", help="Rank tracked users")
    _add_filters(lb_parser, user=False)
    lb_parser.add_argument("-m", "--metric", default="pnl", choices=LEADERBOARD_METRICS,
                           help="Ranking metric")
    lb_parser.add_argument("-n", "--limit", type=int, help="Max entries")
    lb_parser.add_argument("--all-flow", action="store_true",
                           help="Rank all fills instead of builder flow only")
    lb_parser.add_argument("--max-start-capital", type=float,
                           help="Cap on the return denominator")
    lb_parser.add_argument("-o", "--output", default="leaderboard",
                           help="Output filename (without extension)")
    lb_parser.add_argument("-f", "--formats", default="csv,parquet",
                           help="Output formats: csv, parquet, xlsx (comma-separated)")
    lb_parser.add_argument("--save", action="store_true", help="Save output files")

    # health command
    subparsers.add_parser("health", help="Datasource health check")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    setup_logging(args.log_level)

    commands = {
        "trades": cmd_trades,
        "positions": cmd_positions,
        "pnl": cmd_pnl,
        "leaderboard": cmd_leaderboard,
        "health": cmd_health,
    }

    try:
        return commands[args.command](args)
    except (LedgerError, ValueError) as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
