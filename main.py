"""
TradeCockpit Main Entry Point

Runs the risk monitor against the HTTP quote feed. Positions and watchlist
entries can be seeded on the command line, e.g.

    python main.py --position NVDA:ira:120.50 --position HOOD:tasty:40:25 --once
"""

import argparse
import asyncio
import signal
import sys
from typing import List, Optional

from config.settings import get_settings
from core.errors import PreconditionError
from core.monitor import RiskMonitor
from core.portfolio import Portfolio
from data.quotes import HttpQuoteFeed
from utils.logger import get_logger, setup_logging

logger = get_logger("main")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="TradeCockpit risk monitor")
    parser.add_argument(
        "--position", action="append", default=[], metavar="TICKER:ACCOUNT:ENTRY[:SHARES]",
        help="Open a position before monitoring (repeatable)",
    )
    parser.add_argument("--watch", action="append", default=[], metavar="TICKER", help="Add a watchlist ticker")
    parser.add_argument("--risk-percent", type=float, help="Risk percent for sizing")
    parser.add_argument("--quote-url", help="Quote endpoint URL")
    parser.add_argument("--interval", type=int, help="Refresh interval in seconds")
    parser.add_argument("--once", action="store_true", help="Run a single refresh cycle and exit")
    parser.add_argument("--log-level", help="Override log level")
    return parser.parse_args(argv)


def seed_portfolio(portfolio: Portfolio, args: argparse.Namespace) -> None:
    if args.risk_percent is not None:
        portfolio.set_risk_percent(args.risk_percent)

    for value in args.position:
        parts = value.split(":")
        if len(parts) not in (3, 4):
            raise PreconditionError("position", value, "expected TICKER:ACCOUNT:ENTRY[:SHARES]")
        ticker, account_id, entry = parts[:3]
        shares = parts[3] if len(parts) == 4 else None
        position = portfolio.open_position(ticker, account_id, entry, shares=shares)
        logger.info(f"Opened {position.ticker} x{position.shares} @ {position.entry_price:.2f} in {account_id}")

    for ticker in args.watch:
        portfolio.add_signal(ticker)


async def run(args: argparse.Namespace) -> int:
    portfolio = Portfolio.from_settings()
    seed_portfolio(portfolio, args)

    feed = HttpQuoteFeed(url=args.quote_url)
    monitor = RiskMonitor(portfolio, feed, interval=args.interval)

    if args.once:
        result = await monitor.refresh()
        snapshot = result.snapshot
        for account_id, acct in snapshot.accounts.items():
            logger.info(
                f"{account_id}: {acct.position_count} positions, value ${acct.total_value:,.2f}, "
                f"P&L ${acct.total_pnl:,.2f}, risk ${acct.total_risk:,.2f} ({acct.risk_percent:.2f}%)"
            )
        return 0

    loop = asyncio.get_running_loop()
    task = monitor.start()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, task.cancel)
        except NotImplementedError:
            # Windows event loops do not support signal handlers
            pass

    try:
        await task
    except asyncio.CancelledError:
        logger.info("Shutdown requested")
    finally:
        await monitor.stop()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} v{settings.version}")
    try:
        return asyncio.run(run(args))
    except (PreconditionError, KeyError) as e:
        logger.error(f"Invalid input: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
