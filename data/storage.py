"""
TradeCockpit Storage

In-memory account, position, watchlist and settings stores. Positions are
mutated under a per-id lock so concurrent stop edits and trigger flips on the
same position are serialized (last writer wins).
"""

import threading
import uuid
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from config.settings import RISK_OPTIONS
from core.errors import (
    PositionNotFoundError,
    PreconditionError,
    SignalNotFoundError,
    UnknownAccountError,
)
from core.models import DEFAULT_ACCOUNTS, Account, Position, Signal
from utils.logger import store_logger as logger

_UNSET = object()


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


class AccountStore:
    """Fixed set of accounts with overwritable balances."""

    def __init__(self, accounts: Iterable[Account]):
        self._accounts: Dict[str, Account] = {a.id: replace(a) for a in accounts}
        self._lock = threading.Lock()

    @classmethod
    def from_balances(cls, balances: Dict[str, float]) -> "AccountStore":
        """Build the default account set, seeding balances by account id."""
        return cls(
            Account(id=account_id, name=name, color=color, balance=float(balances.get(account_id, 0.0)))
            for account_id, name, color in DEFAULT_ACCOUNTS
        )

    def list(self) -> List[Account]:
        with self._lock:
            return [replace(a) for a in self._accounts.values()]

    def get(self, account_id: str) -> Account:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                raise UnknownAccountError(account_id)
            return replace(account)

    def set_balance(self, account_id: str, balance: float) -> Account:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                raise UnknownAccountError(account_id)
            account.balance = balance
            logger.debug(f"Balance for {account_id} set to {balance:,.2f}")
            return replace(account)


class PositionStore:
    """Open positions keyed by id. Only the manual stop and trigger flag are mutable."""

    def __init__(self):
        self._positions: Dict[str, Position] = {}
        self._lock = threading.Lock()
        self._position_locks: Dict[str, threading.Lock] = {}

    def _lock_for(self, position_id: str) -> threading.Lock:
        with self._lock:
            lock = self._position_locks.get(position_id)
        if lock is None:
            raise PositionNotFoundError(position_id)
        return lock

    def create(
        self,
        ticker: str,
        account_id: str,
        entry_price: float,
        shares: int,
        stop: float,
        triggered7: bool = False,
    ) -> Position:
        position = Position(
            id=_new_id(),
            ticker=ticker,
            account_id=account_id,
            entry_price=entry_price,
            shares=shares,
            stop=stop,
            triggered7=triggered7,
        )
        with self._lock:
            self._positions[position.id] = position
            self._position_locks[position.id] = threading.Lock()
        logger.debug(f"Created position {position.id} ({ticker} x{shares})")
        return replace(position)

    def get(self, position_id: str) -> Position:
        with self._lock:
            position = self._positions.get(position_id)
            if position is None:
                raise PositionNotFoundError(position_id)
            return replace(position)

    def list(self) -> List[Position]:
        with self._lock:
            return [replace(p) for p in self._positions.values()]

    def update(self, position_id: str, manual_stop=_UNSET, triggered7=_UNSET) -> Position:
        """
        Apply a partial update.

        Args:
            position_id: Position to update
            manual_stop: New manual stop, or None to clear it
            triggered7: Only True is accepted; the flag never resets

        Returns:
            Position: Copy of the updated position
        """
        with self._lock_for(position_id):
            with self._lock:
                position = self._positions.get(position_id)
            if position is None:
                raise PositionNotFoundError(position_id)

            if triggered7 is not _UNSET:
                if not triggered7 and position.triggered7:
                    raise PreconditionError("triggered7", triggered7, "breakeven trigger cannot be reset")
                position.triggered7 = bool(triggered7) or position.triggered7
            if manual_stop is not _UNSET:
                position.manual_stop = manual_stop

            return replace(position)

    def delete(self, position_id: str) -> Position:
        with self._lock_for(position_id):
            with self._lock:
                position = self._positions.pop(position_id, None)
                self._position_locks.pop(position_id, None)
        if position is None:
            raise PositionNotFoundError(position_id)
        logger.debug(f"Deleted position {position_id}")
        return position


class WatchlistStore:
    """Manually added watchlist signals."""

    def __init__(self, signals: Optional[Iterable[Signal]] = None):
        self._signals: Dict[str, Signal] = {}
        self._lock = threading.Lock()
        for signal in signals or []:
            self.add(signal)

    def add(self, signal: Signal) -> Signal:
        stored = replace(signal, id=signal.id or _new_id())
        with self._lock:
            self._signals[stored.id] = stored
        return replace(stored)

    def get(self, signal_id: str) -> Signal:
        with self._lock:
            signal = self._signals.get(signal_id)
        if signal is None:
            raise SignalNotFoundError(signal_id)
        return replace(signal)

    def remove(self, signal_id: str) -> Signal:
        with self._lock:
            signal = self._signals.pop(signal_id, None)
        if signal is None:
            raise SignalNotFoundError(signal_id)
        return signal

    def list(self) -> List[Signal]:
        with self._lock:
            return [replace(s) for s in self._signals.values()]


class SettingsStore:
    """Single mutable risk percent applied to new sizing calculations."""

    def __init__(self, risk_percent: float = 1.0):
        self._risk_percent = self._validate(risk_percent)

    @staticmethod
    def _validate(risk_percent: float) -> float:
        if isinstance(risk_percent, bool) or risk_percent not in RISK_OPTIONS:
            raise PreconditionError("risk_percent", risk_percent, f"must be one of {RISK_OPTIONS}")
        return float(risk_percent)

    @property
    def risk_percent(self) -> float:
        return self._risk_percent

    @risk_percent.setter
    def risk_percent(self, value: float) -> None:
        self._risk_percent = self._validate(value)
