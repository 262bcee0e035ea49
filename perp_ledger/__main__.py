"""Entry point for running perp_ledger as a module.

Usage:
    python -m perp_ledger [command] [options]

Commands:
    trades       List a user's fills
    positions    Reconstructed position history
    pnl          P&L summary
    leaderboard  Rank tracked users
    health       Datasource health check

Examples:
    python -m perp_ledger pnl 0x... --coin BTC --builder-only
    python -m perp_ledger leaderboard --metric return_pct --max-start-capital 10000
    python -m perp_ledger --env-file .env health
"""

import sys

from perp_ledger.interfaces.cli import main

if __name__ == "__main__":
    sys.exit(main())
