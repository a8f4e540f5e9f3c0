"""
TradeCockpit Market Session

Classifies a wall-clock timestamp as inside or outside the regular US equity
session. Used only to label orders MARKET or LIMIT.
"""

from datetime import datetime, time
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo


class MarketSession(str, Enum):
    REGULAR = "regular"
    OUTSIDE = "outside"


def classify_session(
    moment: Optional[datetime] = None,
    open_time: time = time(9, 30),
    close_time: time = time(16, 0),
    tz: Optional[str] = None,
) -> MarketSession:
    """
    Classify a timestamp against the daily session window.

    Naive timestamps are taken as local wall clock. When `tz` is given, aware
    timestamps are converted to it first. Both window edges are inclusive.
    """
    if moment is None:
        moment = datetime.now(ZoneInfo(tz)) if tz else datetime.now()
    elif tz and moment.tzinfo is not None:
        moment = moment.astimezone(ZoneInfo(tz))

    # Monday=0 .. Sunday=6
    if moment.weekday() >= 5:
        return MarketSession.OUTSIDE

    minutes = moment.hour * 60 + moment.minute
    opens = open_time.hour * 60 + open_time.minute
    closes = close_time.hour * 60 + close_time.minute
    if opens <= minutes <= closes:
        return MarketSession.REGULAR
    return MarketSession.OUTSIDE


def is_market_hours(moment: Optional[datetime] = None, **kwargs) -> bool:
    return classify_session(moment, **kwargs) == MarketSession.REGULAR


def order_label(price: Optional[float], moment: Optional[datetime] = None, **kwargs) -> str:
    """'MARKET' during the session, otherwise 'LIMIT @ $<price>'."""
    if is_market_hours(moment, **kwargs):
        return "MARKET"
    return f"LIMIT @ ${price or 0.0:,.2f}"
