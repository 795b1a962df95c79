"""Precision and limit helpers built from Binance symbol filters."""

from __future__ import annotations
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Optional

from signal_trader.core.types import MarketLimits, MarketPrecision, MinMax


def _num(value) -> Optional[float]:
    """Exchange numbers arrive as strings; zero means "no limit"."""
    if value is None:
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    return f if f > 0 else None


def decimals_from_step(step) -> Optional[int]:
    """'0.00100000' -> 3, '1' -> 0. None for missing or non-positive steps."""
    if step is None:
        return None
    try:
        d = Decimal(str(step)).normalize()
    except InvalidOperation:
        return None
    if d <= 0:
        return None
    exponent = d.as_tuple().exponent
    return max(0, -exponent)


def index_filters(symbol_info: Optional[dict]) -> dict[str, dict]:
    """Map filterType -> filter dict."""
    if not symbol_info:
        return {}
    return {f.get("filterType"): f for f in symbol_info.get("filters", []) if f.get("filterType")}


def parse_precision(symbol_info: Optional[dict]) -> MarketPrecision:
    """Amount/price decimals from LOT_SIZE and PRICE_FILTER; cost from the quote precision."""
    filters = index_filters(symbol_info)
    lot = filters.get("LOT_SIZE", {})
    price = filters.get("PRICE_FILTER", {})
    amount_dp = decimals_from_step(lot.get("stepSize"))
    price_dp = decimals_from_step(price.get("tickSize"))
    info = symbol_info or {}
    if amount_dp is None and "quantityPrecision" in info:
        amount_dp = int(info["quantityPrecision"])
    if price_dp is None and "pricePrecision" in info:
        price_dp = int(info["pricePrecision"])
    cost_dp = info.get("quoteAssetPrecision", info.get("quotePrecision"))
    return MarketPrecision(
        amount=amount_dp,
        price=price_dp,
        cost=int(cost_dp) if cost_dp is not None else None,
    )


def parse_limits(symbol_info: Optional[dict]) -> MarketLimits:
    """
    Min/max for amount (LOT_SIZE), price (PRICE_FILTER), cost (NOTIONAL or MIN_NOTIONAL)
    and market orders (MARKET_LOT_SIZE). Filters that are absent give None.
    """
    filters = index_filters(symbol_info)

    def minmax(name: str, lo: str, hi: str) -> Optional[MinMax]:
        f = filters.get(name)
        if f is None:
            return None
        return MinMax(min=_num(f.get(lo)), max=_num(f.get(hi)))

    cost = minmax("NOTIONAL", "minNotional", "maxNotional")
    if cost is None and "MIN_NOTIONAL" in filters:
        f = filters["MIN_NOTIONAL"]
        # spot uses minNotional, USDⓈ-M futures uses notional
        cost = MinMax(min=_num(f.get("minNotional", f.get("notional"))), max=None)

    return MarketLimits(
        amount=minmax("LOT_SIZE", "minQty", "maxQty"),
        price=minmax("PRICE_FILTER", "minPrice", "maxPrice"),
        cost=cost,
        market=minmax("MARKET_LOT_SIZE", "minQty", "maxQty"),
    )


def format_quantity(qty: float, decimals: Optional[int] = None) -> str:
    """Render a quantity without float artefacts or exponent notation, truncating to decimals."""
    d = Decimal(str(qty))
    if decimals is not None:
        d = d.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_DOWN)
    return format(d.normalize(), "f")
