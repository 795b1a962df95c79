"""Error taxonomy shared by feeds, the exchange gateway and the position ledger."""

from __future__ import annotations


class FeedError(Exception):
    """Signal or grade feed could not be read."""


class ExchangeError(Exception):
    """Base for every failure reported by the exchange gateway."""

    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.code = code


class InsufficientFundsError(ExchangeError):
    pass


class InvalidOrderError(ExchangeError):
    pass


class UnsupportedMarketError(InvalidOrderError):
    """Symbol is not an active market of the requested type."""


class AuthenticationError(ExchangeError):
    pass


class ExchangeUnavailableError(ExchangeError):
    """Network failure, maintenance or rate limit."""


class StoreError(Exception):
    """Position ledger could not be read or written."""


class PositionStateError(StoreError):
    """Illegal lifecycle transition (only OPEN -> COMPLETED is allowed)."""
