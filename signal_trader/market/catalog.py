"""
Market catalog: active USDC-quoted spot pairs and linear perpetual futures,
with precision and limits, refreshed from exchange metadata.
"""

from __future__ import annotations
import logging
import threading
from typing import Optional

from signal_trader.core.errors import ExchangeError, UnsupportedMarketError
from signal_trader.core.types import MarketInfo, MarketType
from signal_trader.execution.base import ExchangeGateway
from signal_trader.utils.exchange_filters import parse_limits, parse_precision

logger = logging.getLogger("signal_trader.market.catalog")


def is_active_spot(s: dict, quote_asset: str) -> bool:
    return (
        s.get("status") == "TRADING"
        and s.get("quoteAsset") == quote_asset
        and s.get("isSpotTradingAllowed", True)
    )


def is_active_linear_perpetual(s: dict, quote_asset: str) -> bool:
    # Linear: quoted and margined in the same stablecoin
    return (
        s.get("status") == "TRADING"
        and s.get("contractType") == "PERPETUAL"
        and s.get("quoteAsset") == quote_asset
        and s.get("marginAsset", quote_asset) == quote_asset
    )


def build_market_info(s: dict, market_type: MarketType) -> MarketInfo:
    return MarketInfo(
        symbol=s["symbol"],
        market_type=market_type,
        base_asset=s.get("baseAsset", ""),
        quote_asset=s.get("quoteAsset", ""),
        precision=parse_precision(s),
        limits=parse_limits(s),
        contract_size=float(s["contractSize"]) if s.get("contractSize") else None,
    )


class MarketCatalog:
    """Symbol -> MarketInfo maps for spot and derivatives. Pulled by consumers on demand."""

    def __init__(self, gateway: ExchangeGateway, quote_asset: str = "USDC"):
        self._gateway = gateway
        self.quote_asset = quote_asset
        self._spot: dict[str, MarketInfo] = {}
        self._derivatives: dict[str, MarketInfo] = {}
        self._lock = threading.Lock()

    def market_symbol(self, asset: str) -> str:
        """Exchange symbol for an asset against the quote currency: BTC -> BTCUSDC."""
        return f"{asset.upper()}{self.quote_asset}"

    def refresh(self) -> None:
        """Rebuild both maps. On failure the previous maps are kept and ExchangeError is raised."""
        try:
            raw = self._gateway.load_catalog()
        except ExchangeError as e:
            logger.error("Failed to load exchange markets: %s", e)
            raise
        spot: dict[str, MarketInfo] = {}
        derivatives: dict[str, MarketInfo] = {}
        for s in (raw.get("spot") or {}).get("symbols", []):
            if is_active_spot(s, self.quote_asset):
                spot[s["symbol"]] = build_market_info(s, MarketType.SPOT)
        for s in (raw.get("derivatives") or {}).get("symbols", []):
            if is_active_linear_perpetual(s, self.quote_asset):
                derivatives[s["symbol"]] = build_market_info(s, MarketType.DERIVATIVES)
        with self._lock:
            self._spot = spot
            self._derivatives = derivatives
        logger.info(
            "Catalog refreshed: %d active %s spot pairs, %d linear perpetual futures",
            len(spot), self.quote_asset, len(derivatives),
        )

    def spot_markets(self) -> dict[str, MarketInfo]:
        with self._lock:
            return dict(self._spot)

    def derivatives_markets(self) -> dict[str, MarketInfo]:
        with self._lock:
            return dict(self._derivatives)

    def get(self, symbol: str) -> Optional[MarketInfo]:
        """Spot market first, then derivatives."""
        with self._lock:
            return self._spot.get(symbol) or self._derivatives.get(symbol)

    def lookup(self, symbol: str, market_type: MarketType) -> Optional[MarketInfo]:
        with self._lock:
            if market_type == MarketType.SPOT:
                return self._spot.get(symbol)
            return self._derivatives.get(symbol)

    def is_spot_eligible(self, symbol: str) -> bool:
        with self._lock:
            return symbol in self._spot

    def is_derivatives_eligible(self, symbol: str) -> bool:
        with self._lock:
            return symbol in self._derivatives

    def is_eligible(self, symbol: str, market_type: MarketType) -> bool:
        if market_type == MarketType.SPOT:
            return self.is_spot_eligible(symbol)
        return self.is_derivatives_eligible(symbol)

    def require(self, symbol: str, market_type: MarketType) -> MarketInfo:
        """Return the market or raise UnsupportedMarketError before an order is attempted."""
        info = self.lookup(symbol, market_type)
        if info is None:
            raise UnsupportedMarketError(f"Market {symbol} ({market_type.value}) not found, loaded, or is inactive")
        return info
