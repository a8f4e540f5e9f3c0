"""
TradeCockpit Risk Manager

Derives protective stops, breakeven triggers, per-position risk metrics,
position sizing and account/portfolio risk roll-ups.

Every method is a pure function of its arguments and the bound RiskConfig.
Missing quotes degrade to the entry price, zero day change and neutral
volume; every division by a balance or risk-per-share is guarded to 0.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional

from config.settings import get_settings
from core.models import Account, Position, Quote, Signal


class StopSource(str, Enum):
    """Which rule produced the stop in force."""
    MANUAL = "manual"
    BREAKEVEN = "breakeven"
    INITIAL = "initial"


class VolumeTier(str, Enum):
    HEAVY = "heavy"
    ELEVATED = "elevated"
    NORMAL = "normal"
    LIGHT = "light"


class ExtensionTier(str, Enum):
    NEUTRAL = "neutral"
    MODERATE = "moderate"
    EXTENDED = "extended"
    OVEREXTENDED = "overextended"


class CushionTier(str, Enum):
    INACTIVE = "inactive"
    SAFE = "safe"
    COMFORTABLE = "comfortable"
    CAUTION = "caution"
    DANGER = "danger"


@dataclass
class RiskConfig:
    """Fixed engine parameters. Risk percent and balances are passed per call."""
    initial_stop_pct: float = 0.10
    breakeven_trigger_pct: float = 7.0
    elevated_risk_threshold: float = 5.0

    @classmethod
    def from_settings(cls, settings=None) -> "RiskConfig":
        settings = settings or get_settings()
        return cls(
            initial_stop_pct=settings.initial_stop_pct,
            breakeven_trigger_pct=settings.breakeven_trigger_pct,
            elevated_risk_threshold=settings.elevated_risk_threshold,
        )


@dataclass
class PositionMetrics:
    """Display-ready figures for one position at the current quote."""
    position_id: str
    ticker: str
    account_id: str
    price: float
    gain_percent: float
    unrealized_pnl: float
    extension_percent: float
    day_change_percent: float
    relative_volume: float
    effective_stop: float
    stop_source: StopSource
    stop_cushion_percent: float
    stop_hit: bool
    dollar_risk: float
    position_value: float
    volume_tier: VolumeTier
    extension_tier: ExtensionTier
    cushion_tier: CushionTier
    has_quote: bool


@dataclass
class SignalMetrics:
    ticker: str
    price: float
    extension_percent: float
    day_change_percent: float
    relative_volume: float
    volume_tier: VolumeTier
    extension_tier: ExtensionTier


@dataclass
class SizingResult:
    """Shares to buy so a stop-out loses at most the account risk budget."""
    entry_price: float
    stop_price: float
    risk_per_share: float
    risk_percent: float
    account_risk_budget: float
    calculated_shares: int

    @property
    def position_value(self) -> float:
        return self.calculated_shares * self.entry_price


@dataclass
class AccountRisk:
    account_id: str
    balance: float
    total_risk: float = 0.0
    risk_percent: float = 0.0
    total_value: float = 0.0
    total_pnl: float = 0.0
    position_count: int = 0
    elevated: bool = False


@dataclass
class PortfolioRisk:
    accounts: Dict[str, AccountRisk] = field(default_factory=dict)
    total_risk: float = 0.0
    total_balance: float = 0.0
    total_value: float = 0.0
    total_pnl: float = 0.0
    risk_percent: float = 0.0
    position_count: int = 0
    elevated: bool = False


def percent_of(numerator: float, denominator: float) -> float:
    """numerator / denominator * 100, or 0 when the denominator is not positive."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator * 100


def gain_percent(entry_price: float, price: float) -> float:
    return (price - entry_price) / entry_price * 100


def extension_percent(price: float, sma10: Optional[float]) -> float:
    """Percent distance of price from its 10-day SMA; 0 when the SMA is unknown."""
    if not sma10:
        return 0.0
    return (price - sma10) / sma10 * 100


def resolve_price(position: Position, quote: Optional[Quote]) -> float:
    if quote is not None and quote.price and quote.price > 0:
        return quote.price
    return position.entry_price


def classify_volume(relative_volume: float) -> VolumeTier:
    if relative_volume >= 2.0:
        return VolumeTier.HEAVY
    if relative_volume >= 1.5:
        return VolumeTier.ELEVATED
    if relative_volume >= 1.0:
        return VolumeTier.NORMAL
    return VolumeTier.LIGHT


def classify_extension(extension: float) -> ExtensionTier:
    distance = abs(extension)
    if distance < 3:
        return ExtensionTier.NEUTRAL
    if distance < 6:
        return ExtensionTier.MODERATE
    if distance < 10:
        return ExtensionTier.EXTENDED
    return ExtensionTier.OVEREXTENDED


def classify_cushion(cushion: float, active: bool) -> CushionTier:
    # The untriggered initial stop is not tracked for urgency
    if not active:
        return CushionTier.INACTIVE
    if cushion > 15:
        return CushionTier.SAFE
    if cushion > 7:
        return CushionTier.COMFORTABLE
    if cushion > 3:
        return CushionTier.CAUTION
    return CushionTier.DANGER


class RiskManager:
    """Stop, trigger, sizing and aggregation rules for long stock positions."""

    def __init__(self, config: Optional[RiskConfig] = None):
        self.config = config or RiskConfig.from_settings()

    def initial_stop(self, entry_price: float) -> float:
        return entry_price * (1 - self.config.initial_stop_pct)

    def stop_source(self, position: Position) -> StopSource:
        if position.has_manual_stop:
            return StopSource.MANUAL
        if position.triggered7:
            return StopSource.BREAKEVEN
        return StopSource.INITIAL

    def effective_stop(self, position: Position) -> float:
        """Manual override, else breakeven once triggered, else the initial stop."""
        source = self.stop_source(position)
        if source == StopSource.MANUAL:
            return position.manual_stop
        if source == StopSource.BREAKEVEN:
            return position.entry_price
        return self.initial_stop(position.entry_price)

    def should_trigger(self, position: Position, quote: Optional[Quote]) -> bool:
        """
        True when an untriggered position's gain has reached the breakeven
        threshold at this quote. Positions without a usable quote never trigger.
        """
        if position.triggered7:
            return False
        if quote is None or not quote.price or quote.price <= 0:
            return False
        # An exact +7% move must trigger despite float error
        gain = round(gain_percent(position.entry_price, quote.price), 9)
        return gain >= self.config.breakeven_trigger_pct

    def evaluate_triggers(
        self,
        positions: Iterable[Position],
        quotes: Mapping[str, Quote],
    ) -> List[str]:
        """Ids of positions whose breakeven trigger fires at these quotes."""
        return [
            p.id for p in positions
            if self.should_trigger(p, quotes.get(p.ticker))
        ]

    def stop_hit(self, position: Position, quote: Optional[Quote]) -> bool:
        return resolve_price(position, quote) <= self.effective_stop(position)

    def position_metrics(self, position: Position, quote: Optional[Quote]) -> PositionMetrics:
        price = resolve_price(position, quote)
        has_quote = quote is not None and bool(quote.price) and quote.price > 0
        day_change = (quote.day_change_percent or 0.0) if quote is not None else 0.0
        rvol = (quote.relative_volume or 1.0) if quote is not None else 1.0
        sma10 = quote.sma10 if quote is not None else None

        source = self.stop_source(position)
        stop = self.effective_stop(position)
        cushion = percent_of(price - stop, price)
        extension = extension_percent(price, sma10)

        return PositionMetrics(
            position_id=position.id,
            ticker=position.ticker,
            account_id=position.account_id,
            price=price,
            gain_percent=gain_percent(position.entry_price, price),
            unrealized_pnl=(price - position.entry_price) * position.shares,
            extension_percent=extension,
            day_change_percent=day_change,
            relative_volume=rvol,
            effective_stop=stop,
            stop_source=source,
            stop_cushion_percent=cushion,
            stop_hit=price <= stop,
            dollar_risk=max(0.0, (price - stop) * position.shares),
            position_value=price * position.shares,
            volume_tier=classify_volume(rvol),
            extension_tier=classify_extension(extension),
            cushion_tier=classify_cushion(cushion, source != StopSource.INITIAL),
            has_quote=has_quote,
        )

    def signal_metrics(self, signal: Signal, quote: Optional[Quote]) -> SignalMetrics:
        price = quote.price if quote is not None and quote.price else 0.0
        sma10 = quote.sma10 if quote is not None else None
        rvol = (quote.relative_volume or 1.0) if quote is not None else 1.0
        extension = extension_percent(price, sma10) if price else 0.0
        return SignalMetrics(
            ticker=signal.ticker,
            price=price,
            extension_percent=extension,
            day_change_percent=(quote.day_change_percent or 0.0) if quote is not None else 0.0,
            relative_volume=rvol,
            volume_tier=classify_volume(rvol),
            extension_tier=classify_extension(extension),
        )

    def size_position(
        self,
        entry_price: float,
        account_balance: float,
        risk_percent: float,
    ) -> SizingResult:
        """
        Size a new position assuming the untriggered initial stop.

        Args:
            entry_price: Planned entry, must already be validated > 0
            account_balance: Balance of the account receiving the position
            risk_percent: Percent of the balance to risk

        Returns:
            SizingResult: Stop, risk per share, budget and share count
        """
        stop_price = self.initial_stop(entry_price)
        risk_per_share = entry_price - stop_price
        budget = account_balance * risk_percent / 100
        shares = math.floor(budget / risk_per_share) if risk_per_share > 0 else 0
        return SizingResult(
            entry_price=entry_price,
            stop_price=stop_price,
            risk_per_share=risk_per_share,
            risk_percent=risk_percent,
            account_risk_budget=budget,
            calculated_shares=max(0, shares),
        )

    def is_elevated(self, risk_percent: float) -> bool:
        return risk_percent > self.config.elevated_risk_threshold

    def account_risk(
        self,
        account: Account,
        positions: Iterable[Position],
        quotes: Mapping[str, Quote],
    ) -> AccountRisk:
        """Roll up the positions held in one account."""
        result = AccountRisk(account_id=account.id, balance=account.balance)
        for position in positions:
            if position.account_id != account.id:
                continue
            metrics = self.position_metrics(position, quotes.get(position.ticker))
            result.total_risk += metrics.dollar_risk
            result.total_value += metrics.position_value
            result.total_pnl += metrics.unrealized_pnl
            result.position_count += 1

        result.risk_percent = percent_of(result.total_risk, account.balance)
        result.elevated = self.is_elevated(result.risk_percent)
        return result

    def portfolio_risk(
        self,
        accounts: Iterable[Account],
        positions: Iterable[Position],
        quotes: Mapping[str, Quote],
    ) -> PortfolioRisk:
        """Per-account roll-ups plus portfolio totals over every account."""
        positions = list(positions)
        portfolio = PortfolioRisk()
        for account in accounts:
            acct = self.account_risk(account, positions, quotes)
            portfolio.accounts[account.id] = acct
            portfolio.total_risk += acct.total_risk
            portfolio.total_balance += acct.balance
            portfolio.total_value += acct.total_value
            portfolio.total_pnl += acct.total_pnl
            portfolio.position_count += acct.position_count

        portfolio.risk_percent = percent_of(portfolio.total_risk, portfolio.total_balance)
        portfolio.elevated = self.is_elevated(portfolio.risk_percent)
        return portfolio
