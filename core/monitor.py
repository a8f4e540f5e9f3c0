"""
TradeCockpit Risk Monitor

Periodic refresh loop: fetch quotes for every tracked ticker, flip breakeven
triggers, recompute the risk snapshot and log advisory alerts. Nothing here
closes positions or places orders.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from config.settings import get_settings
from core.models import Position
from core.portfolio import Portfolio
from data.quotes import QuoteFeed
from risk.manager import PortfolioRisk, PositionMetrics
from utils.logger import monitor_logger as logger, risk_logger


class MonitorState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass
class RefreshResult:
    """Outcome of one refresh cycle."""
    timestamp: datetime
    quotes_received: int
    tickers_requested: int
    triggered: List[Position] = field(default_factory=list)
    stops_hit: List[PositionMetrics] = field(default_factory=list)
    snapshot: Optional[PortfolioRisk] = None


class RiskMonitor:
    """Drives Portfolio.apply_quotes from a QuoteFeed on a fixed cadence."""

    def __init__(self, portfolio: Portfolio, feed: QuoteFeed, interval: Optional[int] = None):
        self.portfolio = portfolio
        self.feed = feed
        self.interval = interval or get_settings().quote_refresh_interval
        self.state = MonitorState.STOPPED
        self.cycles = 0
        self.errors = 0
        self.last_result: Optional[RefreshResult] = None
        self._task: Optional[asyncio.Task] = None

    async def refresh(self) -> RefreshResult:
        """Run one full refresh cycle over the current portfolio."""
        tickers = self.portfolio.tracked_tickers()
        quotes = await self.feed.get_quotes(tickers) if tickers else {}
        if tickers and not quotes:
            logger.warning(f"No quotes received for {len(tickers)} tickers; keeping previous set")

        triggered = self.portfolio.apply_quotes(quotes)
        for position in triggered:
            risk_logger.risk(
                f"{position.ticker} reached breakeven trigger, stop moved to {position.entry_price:.2f}",
                level="INFO",
                risk_event_type="breakeven_triggered",
                ticker=position.ticker,
                account_id=position.account_id,
            )

        stops_hit = [m for m in self.portfolio.position_metrics() if m.stop_hit]
        for metrics in stops_hit:
            risk_logger.risk(
                f"{metrics.ticker} at {metrics.price:.2f} is at or below stop {metrics.effective_stop:.2f}",
                risk_event_type="stop_hit",
                ticker=metrics.ticker,
                account_id=metrics.account_id,
                stop_source=metrics.stop_source.value,
            )

        snapshot = self.portfolio.risk_snapshot()
        for account_id, acct in snapshot.accounts.items():
            if acct.elevated:
                risk_logger.risk(
                    f"Account {account_id} risk {acct.risk_percent:.2f}% of balance",
                    risk_event_type="elevated_risk",
                    account_id=account_id,
                    total_risk=acct.total_risk,
                )
        if snapshot.elevated:
            risk_logger.risk(
                f"Portfolio risk {snapshot.risk_percent:.2f}% of total balance",
                risk_event_type="elevated_risk",
                total_risk=snapshot.total_risk,
            )

        self.cycles += 1
        result = RefreshResult(
            timestamp=self.portfolio.last_update or datetime.now(),
            quotes_received=len(quotes),
            tickers_requested=len(tickers),
            triggered=triggered,
            stops_hit=stops_hit,
            snapshot=snapshot,
        )
        self.last_result = result
        logger.info(
            f"Refresh {self.cycles}: {len(quotes)}/{len(tickers)} quotes, "
            f"risk ${snapshot.total_risk:,.2f} ({snapshot.risk_percent:.2f}%)"
        )
        return result

    async def run(self, max_cycles: Optional[int] = None) -> None:
        """Refresh every `interval` seconds until stopped or `max_cycles` is reached."""
        self.state = MonitorState.RUNNING
        logger.system(f"Risk monitor started, refreshing every {self.interval}s")
        completed = 0
        try:
            while self.state == MonitorState.RUNNING:
                try:
                    await self.refresh()
                except Exception as e:
                    self.errors += 1
                    logger.exception(f"Refresh cycle failed: {e}")
                completed += 1
                if max_cycles is not None and completed >= max_cycles:
                    break
                await asyncio.sleep(self.interval)
        finally:
            self.state = MonitorState.STOPPED
            logger.system("Risk monitor stopped")

    def start(self) -> asyncio.Task:
        if self._task is not None and not self._task.done():
            logger.warning("Risk monitor already running")
            return self._task
        self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        if self.state == MonitorState.STOPPED and self._task is None:
            return
        self.state = MonitorState.STOPPING
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self.state = MonitorState.STOPPED
