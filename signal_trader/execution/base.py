"""Abstract exchange interface: catalog metadata, balances and market orders."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Optional

from signal_trader.core.types import Credentials, MarketType, OrderResult, OrderSide


class ExchangeGateway(ABC):
    """
    Everything the engine needs from an exchange. Implementations raise the
    `signal_trader.core.errors.ExchangeError` family, never library-specific errors.
    """

    @abstractmethod
    def load_catalog(self) -> dict:
        """Return {"spot": exchange_info, "derivatives": exchange_info} (public data, no keys)."""
        pass

    @abstractmethod
    def fetch_balance(self, credentials: Credentials, market_type: MarketType) -> float:
        """Total quote-asset balance of the account for the given market type."""
        pass

    @abstractmethod
    def place_market_order(
        self,
        credentials: Credentials,
        symbol: str,
        side: OrderSide,
        quantity: float,
        market_type: MarketType,
        params: Optional[dict[str, Any]] = None,
    ) -> OrderResult:
        """
        Place a market order and return its execution report.
        `quantity` is base-asset quantity. A spot BUY may instead be sized in quote
        currency by passing params={"quoteOrderQty": cost}.
        """
        pass
