"""Shared fakes for the unit tests."""

import pytest

from signal_trader.core.types import MarketType, OrderResult
from signal_trader.execution.base import ExchangeGateway
from signal_trader.market.catalog import MarketCatalog


def spot_symbol(base, quote="USDC", status="TRADING"):
    return {
        "symbol": f"{base}{quote}",
        "status": status,
        "baseAsset": base,
        "quoteAsset": quote,
        "isSpotTradingAllowed": True,
        "quoteAssetPrecision": 8,
        "filters": [
            {"filterType": "PRICE_FILTER", "minPrice": "0.01", "maxPrice": "1000000.00", "tickSize": "0.01"},
            {"filterType": "LOT_SIZE", "minQty": "0.00001", "maxQty": "9000.00000", "stepSize": "0.00001"},
            {"filterType": "NOTIONAL", "minNotional": "5.00000000", "maxNotional": "9000000.00000000"},
        ],
    }


def perp_symbol(base, quote="USDC", status="TRADING", contract_type="PERPETUAL"):
    return {
        "symbol": f"{base}{quote}",
        "status": status,
        "contractType": contract_type,
        "baseAsset": base,
        "quoteAsset": quote,
        "marginAsset": quote,
        "pricePrecision": 1,
        "quantityPrecision": 3,
        "filters": [
            {"filterType": "PRICE_FILTER", "minPrice": "0.10", "maxPrice": "4529764", "tickSize": "0.10"},
            {"filterType": "LOT_SIZE", "minQty": "0.001", "maxQty": "1000", "stepSize": "0.001"},
            {"filterType": "MARKET_LOT_SIZE", "minQty": "0.001", "maxQty": "120", "stepSize": "0.001"},
            {"filterType": "MIN_NOTIONAL", "notional": "5"},
        ],
    }


class FakeGateway(ExchangeGateway):
    """Records orders; returns canned fills or raises queued errors."""

    def __init__(self, spot=(), derivatives=(), fills=None):
        self.spot = list(spot)
        self.derivatives = list(derivatives)
        self.fills = list(fills or [])
        self.orders = []
        self.catalog_error = None

    def load_catalog(self):
        if self.catalog_error is not None:
            raise self.catalog_error
        return {"spot": {"symbols": self.spot}, "derivatives": {"symbols": self.derivatives}}

    def fetch_balance(self, credentials, market_type):
        return 0.0

    def place_market_order(self, credentials, symbol, side, quantity, market_type, params=None):
        self.orders.append({
            "credentials": credentials,
            "symbol": symbol,
            "side": side,
            "quantity": quantity,
            "market_type": market_type,
            "params": params,
        })
        fill = self.fills.pop(0) if self.fills else {}
        if isinstance(fill, Exception):
            raise fill
        return OrderResult(
            order_id=fill.get("order_id", f"close-{len(self.orders)}"),
            symbol=symbol,
            side=side,
            market_type=market_type,
            timestamp=fill.get("timestamp"),
            average_price=fill.get("average_price"),
            cost=fill.get("cost"),
            filled_quantity=quantity,
        )


@pytest.fixture
def make_catalog():
    def _make(spot=(), derivatives=()):
        gw = FakeGateway(
            spot=[spot_symbol(b) for b in spot],
            derivatives=[perp_symbol(b) for b in derivatives],
        )
        catalog = MarketCatalog(gw, quote_asset="USDC")
        catalog.refresh()
        return catalog
    return _make
