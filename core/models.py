"""
TradeCockpit Domain Models

Accounts, positions, quotes and watchlist signals shared by the stores,
the risk engine and the refresh monitor.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional


class SignalType(str, Enum):
    """Watchlist category tags."""
    ABOVE = "above"
    BELOW = "below"
    WATCHLIST = "watchlist"
    BREAKOUT = "breakout"
    PULLBACK = "pullback"
    EARNINGS = "earnings"


@dataclass
class Account:
    """Brokerage account with an operator-maintained cash balance."""
    id: str
    name: str
    color: str = ""
    balance: float = 0.0


# Fixed account set: (id, display name, color)
DEFAULT_ACCOUNTS = (
    ("ira", "IRA", "#4F8EF7"),
    ("tasty", "Tasty", "#E5A24A"),
    ("inherited", "Inherited IRA", "#6BCB77"),
)


@dataclass
class Position:
    """
    Open long stock position.

    `stop` is the initial stop recorded when the position was opened. The
    stop actually in force is derived by the risk engine from the entry,
    `triggered7` and `manual_stop`.
    """
    id: str
    ticker: str
    account_id: str
    entry_price: float
    shares: int
    stop: float
    triggered7: bool = False
    manual_stop: Optional[float] = None
    created_at: date = field(default_factory=date.today)

    @property
    def has_manual_stop(self) -> bool:
        return self.manual_stop is not None


@dataclass
class Quote:
    """Latest market snapshot for one ticker."""
    ticker: str
    price: float
    sma10: Optional[float] = None
    day_change_percent: float = 0.0
    relative_volume: float = 1.0
    name: Optional[str] = None


@dataclass
class Signal:
    """Watchlist entry. Not risk-bearing until converted to a position."""
    ticker: str
    signal: SignalType = SignalType.WATCHLIST
    days: int = 0
    sector: str = "-"
    eps_growth: str = "-"
    rev_growth: str = "-"
    next_earnings: str = "-"
    description: str = "Manually added to watchlist"
    id: Optional[str] = None

    @property
    def label(self) -> str:
        """Short badge text, e.g. '3d above AVWAP' or 'WATCHING'."""
        if self.days > 0:
            return f"{self.days}d {self.signal.value} AVWAP"
        if self.signal == SignalType.WATCHLIST:
            return "WATCHING"
        return self.signal.value.upper()
