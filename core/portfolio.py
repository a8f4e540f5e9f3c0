"""
TradeCockpit Portfolio

Owning application state for the dashboard: accounts, open positions, the
watchlist, the risk percent setting and the latest quote set. Operator
actions are validated here, before any risk math runs, and every derived
figure is recomputed from current state on each read.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Set

from config.settings import get_settings
from core.errors import PositionNotFoundError, PreconditionError
from core.models import Position, Quote, Signal, SignalType
from data.storage import AccountStore, PositionStore, SettingsStore, WatchlistStore
from risk.manager import (
    PortfolioRisk,
    PositionMetrics,
    RiskConfig,
    RiskManager,
    SignalMetrics,
    SizingResult,
    gain_percent,
    resolve_price,
)
from risk.session import MarketSession, classify_session, order_label
from utils.logger import core_logger as logger, create_audit_log


@dataclass
class OrderTicket:
    """What the operator would send to the broker. Nothing is routed."""
    side: str
    ticker: str
    shares: int
    price: float
    session: MarketSession
    order_label: str
    unrealized_pnl: float = 0.0
    gain_percent: float = 0.0


def _parse_price(field: str, value) -> float:
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise PreconditionError(field, value, "not a number")
    if not math.isfinite(price) or price <= 0:
        raise PreconditionError(field, value, "must be greater than 0")
    return price


def _parse_shares(value) -> int:
    if isinstance(value, bool):
        raise PreconditionError("shares", value, "not an integer")
    if isinstance(value, str):
        value = value.strip()
        try:
            value = int(value)
        except ValueError:
            raise PreconditionError("shares", value, "not an integer")
    elif isinstance(value, float):
        if not value.is_integer():
            raise PreconditionError("shares", value, "not an integer")
        value = int(value)
    elif not isinstance(value, int):
        raise PreconditionError("shares", value, "not an integer")
    if value <= 0:
        raise PreconditionError("shares", value, "must be greater than 0")
    return value


def _session_window(settings) -> Dict[str, object]:
    return {
        "open_time": settings.market_open,
        "close_time": settings.market_close,
        "tz": settings.market_timezone,
    }


def _parse_ticker(value) -> str:
    ticker = (value or "").strip().upper() if isinstance(value, str) else ""
    if not ticker:
        raise PreconditionError("ticker", value, "must be a non-empty symbol")
    return ticker


class Portfolio:
    """Dashboard state plus the operator actions that mutate it."""

    def __init__(
        self,
        accounts: AccountStore,
        positions: Optional[PositionStore] = None,
        watchlist: Optional[WatchlistStore] = None,
        settings_store: Optional[SettingsStore] = None,
        risk_manager: Optional[RiskManager] = None,
        session: Optional[Dict[str, object]] = None,
    ):
        self.accounts = accounts
        self.positions = positions or PositionStore()
        self.watchlist = watchlist or WatchlistStore()
        self.settings_store = settings_store or SettingsStore()
        self.risk_manager = risk_manager or RiskManager()
        self.quotes: Dict[str, Quote] = {}
        self.last_update: Optional[datetime] = None

        self._session = session or _session_window(get_settings())

    @classmethod
    def from_settings(cls, settings=None) -> "Portfolio":
        settings = settings or get_settings()
        return cls(
            accounts=AccountStore.from_balances(settings.account_balances),
            settings_store=SettingsStore(settings.risk_percent),
            risk_manager=RiskManager(RiskConfig.from_settings(settings)),
            session=_session_window(settings),
        )

    # Settings

    @property
    def risk_percent(self) -> float:
        return self.settings_store.risk_percent

    def set_risk_percent(self, risk_percent: float) -> float:
        previous = self.settings_store.risk_percent
        self.settings_store.risk_percent = risk_percent
        create_audit_log("set_risk_percent", "settings", "ok", {"from": previous, "to": risk_percent})
        return self.settings_store.risk_percent

    def set_balance(self, account_id: str, balance) -> float:
        try:
            value = float(balance)
        except (TypeError, ValueError):
            raise PreconditionError("balance", balance, "not a number")
        if not math.isfinite(value) or value < 0:
            raise PreconditionError("balance", balance, "must be 0 or greater")
        self.accounts.set_balance(account_id, value)
        create_audit_log("set_balance", f"account:{account_id}", "ok", {"balance": value})
        return value

    # Sizing and position lifecycle

    def preview_position(self, account_id: str, entry_price) -> SizingResult:
        """Sizing for a new position in this account at the current risk percent."""
        price = _parse_price("entry_price", entry_price)
        account = self.accounts.get(account_id)
        return self.risk_manager.size_position(price, account.balance, self.risk_percent)

    def open_position(self, ticker, account_id: str, entry_price, shares=None) -> Position:
        """
        Open a position sized from the account risk budget.

        Args:
            ticker: Symbol bought
            account_id: Receiving account
            entry_price: Fill price per share
            shares: Explicit share count overriding the calculated one

        Returns:
            Position: The stored position
        """
        symbol = _parse_ticker(ticker)
        sizing = self.preview_position(account_id, entry_price)
        count = _parse_shares(shares) if shares is not None else _parse_shares(sizing.calculated_shares)

        position = self.positions.create(
            ticker=symbol,
            account_id=account_id,
            entry_price=sizing.entry_price,
            shares=count,
            stop=sizing.stop_price,
        )
        create_audit_log(
            "open_position", f"position:{position.id}", "ok",
            {
                "ticker": symbol,
                "account_id": account_id,
                "entry_price": sizing.entry_price,
                "shares": count,
                "manual_shares": shares is not None,
            },
        )
        return position

    def open_from_signal(self, signal_id: str, account_id: str, shares=None) -> Position:
        """Convert a watchlist entry into a position at its current quote price."""
        signal = self.watchlist.get(signal_id)
        quote = self.quotes.get(signal.ticker)
        price = quote.price if quote is not None else None
        return self.open_position(signal.ticker, account_id, price, shares=shares)

    def close_position(self, position_id: str) -> Position:
        position = self.positions.delete(position_id)
        create_audit_log("close_position", f"position:{position_id}", "ok", {"ticker": position.ticker})
        return position

    def set_manual_stop(self, position_id: str, stop) -> Position:
        value = _parse_price("manual_stop", stop)
        position = self.positions.update(position_id, manual_stop=value)
        create_audit_log("set_manual_stop", f"position:{position_id}", "ok", {"manual_stop": value})
        return position

    def clear_manual_stop(self, position_id: str) -> Position:
        position = self.positions.update(position_id, manual_stop=None)
        create_audit_log("clear_manual_stop", f"position:{position_id}", "ok")
        return position

    # Watchlist

    def add_signal(
        self,
        ticker,
        signal_type: SignalType = SignalType.WATCHLIST,
        sector: str = "",
        notes: str = "",
    ) -> Signal:
        signal = Signal(
            ticker=_parse_ticker(ticker),
            signal=SignalType(signal_type),
            sector=sector or "-",
            description=notes or "Manually added to watchlist",
        )
        return self.watchlist.add(signal)

    def remove_signal(self, signal_id: str) -> Signal:
        return self.watchlist.remove(signal_id)

    # Quote refresh

    def tracked_tickers(self) -> Set[str]:
        return {p.ticker for p in self.positions.list()} | {s.ticker for s in self.watchlist.list()}

    def apply_quotes(self, quotes: Mapping[str, Quote]) -> List[Position]:
        """
        Install a fresh quote set and flip breakeven triggers it reaches.

        An empty set keeps the previous quotes. Returns the positions whose
        trigger fired on this refresh.
        """
        if quotes:
            self.quotes = dict(quotes)
        self.last_update = datetime.now()

        fired = []
        for position_id in self.risk_manager.evaluate_triggers(self.positions.list(), self.quotes):
            try:
                position = self.positions.update(position_id, triggered7=True)
            except PositionNotFoundError:
                logger.debug(f"Position {position_id} closed before its trigger was recorded")
                continue
            logger.info(f"Breakeven trigger fired for {position.ticker} ({position_id})")
            fired.append(position)
        return fired

    # Derived views

    def position_metrics(self) -> List[PositionMetrics]:
        return [
            self.risk_manager.position_metrics(p, self.quotes.get(p.ticker))
            for p in self.positions.list()
        ]

    def signal_metrics(self) -> List[SignalMetrics]:
        return [
            self.risk_manager.signal_metrics(s, self.quotes.get(s.ticker))
            for s in self.watchlist.list()
        ]

    def risk_snapshot(self) -> PortfolioRisk:
        return self.risk_manager.portfolio_risk(self.accounts.list(), self.positions.list(), self.quotes)

    def sell_ticket(self, position_id: str, moment: Optional[datetime] = None) -> OrderTicket:
        position = self.positions.get(position_id)
        price = resolve_price(position, self.quotes.get(position.ticker))
        return OrderTicket(
            side="sell",
            ticker=position.ticker,
            shares=position.shares,
            price=price,
            session=classify_session(moment, **self._session),
            order_label=order_label(price, moment, **self._session),
            unrealized_pnl=(price - position.entry_price) * position.shares,
            gain_percent=gain_percent(position.entry_price, price),
        )

    def buy_ticket(self, signal_id: str, account_id: str, moment: Optional[datetime] = None) -> OrderTicket:
        signal = self.watchlist.get(signal_id)
        quote = self.quotes.get(signal.ticker)
        price = quote.price if quote is not None and quote.price else 0.0
        account = self.accounts.get(account_id)
        shares = 0
        if price > 0:
            shares = self.risk_manager.size_position(price, account.balance, self.risk_percent).calculated_shares
        return OrderTicket(
            side="buy",
            ticker=signal.ticker,
            shares=shares,
            price=price,
            session=classify_session(moment, **self._session),
            order_label=order_label(price, moment, **self._session),
        )
