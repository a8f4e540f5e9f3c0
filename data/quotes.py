"""
TradeCockpit Quote Feed

Quote feed contract plus two implementations: a static in-memory feed and an
HTTP feed reading the dashboard's quote endpoint, which answers
GET ?tickers=A,B with a JSON object of ticker -> {price, sma10, dayChange, rvol}
or the raw closes and volumes those figures are derived from.

Feeds never raise from get_quotes: failures are logged and produce an empty
mapping, and malformed entries are skipped so the rest of the batch survives.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

import aiohttp
import pandas as pd

from config.settings import get_settings
from core.models import Quote
from utils.logger import data_logger as logger


def compute_sma10(closes: Sequence[Optional[float]]) -> Optional[float]:
    """Mean of the last ten non-null daily closes, or None when there are none."""
    series = pd.Series(list(closes), dtype="float64").dropna()
    if series.empty:
        return None
    return float(series.tail(10).mean())


def compute_relative_volume(volume: Optional[float], avg_volume: Optional[float]) -> float:
    """Today's volume over average volume, rounded to 2 places; 1.0 when unknown."""
    if not avg_volume or avg_volume <= 0:
        return 1.0
    return round((volume or 0) / avg_volume, 2)


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def _closes(payload: Mapping[str, Any]) -> Optional[pd.Series]:
    closes = payload.get("closes")
    if not isinstance(closes, (list, tuple)):
        return None
    return pd.Series(list(closes), dtype="float64").dropna()


def parse_quote(ticker: str, payload: Mapping[str, Any]) -> Quote:
    """
    Build a Quote from one endpoint entry.

    Entries may carry precomputed `sma10`/`rvol` or the raw `closes`,
    `volume` and `avgVolume` they are derived from. When `price` is missing
    the last non-null close stands in for it.

    Raises:
        ValueError: payload has no usable numeric price
    """
    closes = _closes(payload)

    price = _optional_float(payload.get("price"))
    if price is None and closes is not None and not closes.empty:
        price = float(closes.iloc[-1])
    if price is None:
        raise ValueError(f"Quote for {ticker} has no price")

    if "sma10" in payload or closes is None:
        sma10 = _optional_float(payload.get("sma10"))
    else:
        sma10 = compute_sma10(closes)

    rvol = _optional_float(payload.get("rvol"))
    if rvol is None and "volume" in payload:
        rvol = compute_relative_volume(
            _optional_float(payload.get("volume")),
            _optional_float(payload.get("avgVolume")),
        )

    return Quote(
        ticker=ticker.upper(),
        price=price,
        sma10=sma10,
        day_change_percent=_optional_float(payload.get("dayChange")) or 0.0,
        relative_volume=rvol if rvol else 1.0,
        name=payload.get("name"),
    )


def parse_quotes(payload: Any) -> Dict[str, Quote]:
    """Parse a whole endpoint response, dropping entries that do not parse."""
    if not isinstance(payload, dict):
        logger.warning(f"Unexpected quote payload type: {type(payload).__name__}")
        return {}

    quotes: Dict[str, Quote] = {}
    for ticker, entry in payload.items():
        if not isinstance(entry, dict):
            logger.warning(f"Skipping malformed quote entry for {ticker}")
            continue
        try:
            quote = parse_quote(ticker, entry)
        except (TypeError, ValueError) as e:
            logger.warning(f"Skipping quote for {ticker}: {e}")
            continue
        quotes[quote.ticker] = quote
    return quotes


def _normalize_tickers(tickers: Iterable[str]) -> list:
    return sorted({t.strip().upper() for t in tickers if t and t.strip()})


class QuoteFeed(ABC):
    """Source of the latest quote per ticker."""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    async def get_quotes(self, tickers: Iterable[str]) -> Dict[str, Quote]:
        """
        Fetch quotes for the given tickers.

        Args:
            tickers: Ticker symbols to fetch

        Returns:
            Dict[str, Quote]: Quotes keyed by ticker. Tickers the source
            could not price are absent; a total failure returns {}.
        """
        ...


class StaticQuoteFeed(QuoteFeed):
    """Serves quotes from memory. Used offline and in tests."""

    def __init__(self, quotes: Optional[Iterable[Quote]] = None):
        super().__init__("static")
        self._quotes: Dict[str, Quote] = {}
        for quote in quotes or []:
            self.set_quote(quote)

    def set_quote(self, quote: Quote) -> None:
        self._quotes[quote.ticker.upper()] = quote

    def remove_quote(self, ticker: str) -> None:
        self._quotes.pop(ticker.upper(), None)

    async def get_quotes(self, tickers: Iterable[str]) -> Dict[str, Quote]:
        return {t: self._quotes[t] for t in _normalize_tickers(tickers) if t in self._quotes}


class HttpQuoteFeed(QuoteFeed):
    """Fetches quotes from the dashboard quote endpoint over HTTP."""

    def __init__(self, url: Optional[str] = None, timeout: Optional[float] = None):
        super().__init__("http")
        settings = get_settings()
        self.url = url or settings.quote_api_url
        self.timeout = timeout or settings.quote_timeout

    async def get_quotes(self, tickers: Iterable[str]) -> Dict[str, Quote]:
        symbols = _normalize_tickers(tickers)
        if not symbols:
            return {}

        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(self.url, params={"tickers": ",".join(symbols)}) as response:
                    if response.status != 200:
                        logger.error(f"Quote API error: {response.status}")
                        return {}
                    payload = await response.json(content_type=None)
        except Exception as e:
            logger.error(f"Failed to fetch quotes: {e}")
            return {}

        quotes = parse_quotes(payload)
        missing = set(symbols) - set(quotes)
        if missing:
            logger.data(f"No quote for {', '.join(sorted(missing))}", data_type="quotes")
        return quotes
