"""Market catalog."""

from signal_trader.market.catalog import MarketCatalog

__all__ = ["MarketCatalog"]
