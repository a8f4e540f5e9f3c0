"""
TradeCockpit Errors

Exceptions raised at the call boundary before any risk math runs.
"""


class PreconditionError(ValueError):
    """Input rejected before it reaches the risk engine."""

    def __init__(self, field: str, value, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field} ({value!r}): {reason}")


class UnknownAccountError(PreconditionError):
    """Account id does not reference a configured account."""

    def __init__(self, account_id: str):
        super().__init__("account_id", account_id, "unknown account")


class PositionNotFoundError(KeyError):
    """No open position with the given id."""

    def __init__(self, position_id: str):
        self.position_id = position_id
        super().__init__(position_id)

    def __str__(self) -> str:
        return f"Position not found: {self.position_id}"


class SignalNotFoundError(KeyError):
    """No watchlist entry with the given id."""

    def __init__(self, signal_id: str):
        self.signal_id = signal_id
        super().__init__(signal_id)

    def __str__(self) -> str:
        return f"Signal not found: {self.signal_id}"
