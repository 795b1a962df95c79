"""
Binance spot + USDⓈ-M futures gateway with retry and error mapping.
"""

from __future__ import annotations
import logging
import threading
from typing import TYPE_CHECKING, Any, Callable, Optional

import requests
from binance.client import Client
from binance.exceptions import BinanceAPIException, BinanceOrderException, BinanceRequestException

from signal_trader.core.errors import (
    AuthenticationError,
    ExchangeError,
    ExchangeUnavailableError,
    InsufficientFundsError,
    InvalidOrderError,
)
from signal_trader.core.types import Credentials, MarketType, OrderResult, OrderSide
from signal_trader.execution.base import ExchangeGateway
from signal_trader.utils.exchange_filters import format_quantity
from signal_trader.utils.retry import retry_on_rate_limit

if TYPE_CHECKING:
    from signal_trader.market.catalog import MarketCatalog

logger = logging.getLogger("signal_trader.execution.binance")

# Binance error codes, see https://developers.binance.com/docs/binance-spot-api-docs/errors
INSUFFICIENT_FUNDS_CODES = {-2018, -2019}
INVALID_ORDER_CODES = {-1013, -1100, -1101, -1102, -1104, -1106, -1111, -1121, -2022, -4003, -4164}
AUTH_CODES = {-1022, -2014, -2015}
UNAVAILABLE_CODES = {-1000, -1001, -1003, -1007, -1008, -1015}


def map_binance_error(e: Exception) -> ExchangeError:
    """Translate python-binance / requests failures into the engine's error taxonomy."""
    if isinstance(e, BinanceAPIException):
        code, message = e.code, e.message
        if code in INSUFFICIENT_FUNDS_CODES or (code == -2010 and "insufficient" in str(message).lower()):
            return InsufficientFundsError(message, code)
        if code in AUTH_CODES or e.status_code == 401:
            return AuthenticationError(message, code)
        if code in UNAVAILABLE_CODES or e.status_code in (418, 429) or e.status_code >= 500:
            return ExchangeUnavailableError(message, code)
        if code in INVALID_ORDER_CODES or code == -2010:
            return InvalidOrderError(message, code)
        return ExchangeError(message, code)
    if isinstance(e, BinanceOrderException):
        return InvalidOrderError(e.message, e.code)
    if isinstance(e, (BinanceRequestException, requests.RequestException)):
        return ExchangeUnavailableError(str(e))
    return ExchangeError(str(e))


def _float(value) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _param(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def parse_spot_order(res: dict, symbol: str, side: OrderSide) -> OrderResult:
    """Spot FULL response: executedQty / cummulativeQuoteQty / fills."""
    filled = _float(res.get("executedQty"))
    cost = _float(res.get("cummulativeQuoteQty"))
    avg = cost / filled if cost is not None and filled else None
    fills = res.get("fills") or []
    fee_assets = {f.get("commissionAsset") for f in fills}
    fee_cost = fee_currency = None
    if len(fee_assets) == 1:
        fee_currency = fee_assets.pop()
        fee_cost = sum(float(f.get("commission", 0)) for f in fills)
    return OrderResult(
        order_id=str(res.get("orderId")),
        symbol=symbol,
        side=side,
        market_type=MarketType.SPOT,
        timestamp=res.get("transactTime"),
        average_price=avg,
        cost=cost,
        filled_quantity=filled,
        order_type=str(res.get("type", "MARKET")).lower(),
        fee_cost=fee_cost,
        fee_currency=fee_currency,
        raw=res,
    )


def parse_futures_order(res: dict, symbol: str, side: OrderSide) -> OrderResult:
    """USDⓈ-M RESULT response: executedQty / cumQuote / avgPrice."""
    avg = _float(res.get("avgPrice"))
    return OrderResult(
        order_id=str(res.get("orderId")),
        symbol=symbol,
        side=side,
        market_type=MarketType.DERIVATIVES,
        timestamp=res.get("updateTime"),
        average_price=avg if avg else None,
        cost=_float(res.get("cumQuote")),
        filled_quantity=_float(res.get("executedQty")),
        order_type=str(res.get("type", "MARKET")).lower(),
        raw=res,
    )


class BinanceGateway(ExchangeGateway):
    """Binance via python-binance. One REST client per API key, created lazily."""

    def __init__(
        self,
        testnet: bool = True,
        quote_asset: str = "USDC",
        client_factory: Callable[..., Client] = Client,
    ):
        self.testnet = testnet
        self.quote_asset = quote_asset
        self._client_factory = client_factory
        self._clients: dict[str, Client] = {}
        self._clients_lock = threading.Lock()
        self._catalog: Optional["MarketCatalog"] = None
        logger.info("Binance gateway: using %s", "TESTNET" if testnet else "LIVE")

    def attach_catalog(self, catalog: "MarketCatalog") -> None:
        """Reject orders for symbols the catalog does not list."""
        self._catalog = catalog

    def _client(self, credentials: Optional[Credentials] = None) -> Client:
        key = credentials.api_key if credentials else ""
        with self._clients_lock:
            client = self._clients.get(key)
            if client is None:
                if credentials:
                    client = self._client_factory(credentials.api_key, credentials.api_secret, testnet=self.testnet)
                else:
                    client = self._client_factory(None, None, testnet=self.testnet)
                self._clients[key] = client
            return client

    @retry_on_rate_limit(max_retries=3, base_delay=1.0, exceptions=(BinanceAPIException,))
    def _exchange_info(self) -> dict:
        client = self._client()
        return {
            "spot": client.get_exchange_info(),
            "derivatives": client.futures_exchange_info(),
        }

    def load_catalog(self) -> dict:
        try:
            return self._exchange_info()
        except Exception as e:
            raise map_binance_error(e) from e

    @retry_on_rate_limit(max_retries=2, exceptions=(BinanceAPIException,))
    def _balance(self, credentials: Credentials, market_type: MarketType) -> float:
        client = self._client(credentials)
        if market_type == MarketType.SPOT:
            bal = client.get_asset_balance(asset=self.quote_asset) or {}
            return float(bal.get("free", 0)) + float(bal.get("locked", 0))
        for b in client.futures_account_balance():
            if b.get("asset") == self.quote_asset:
                return float(b.get("balance", 0))
        return 0.0

    def fetch_balance(self, credentials: Credentials, market_type: MarketType) -> float:
        try:
            return self._balance(credentials, market_type)
        except Exception as e:
            raise map_binance_error(e) from e

    @retry_on_rate_limit(max_retries=2, exceptions=(BinanceAPIException,))
    def _create_order(self, client: Client, market_type: MarketType, kwargs: dict) -> dict:
        if market_type == MarketType.DERIVATIVES:
            return client.futures_create_order(**kwargs)
        return client.create_order(**kwargs)

    def place_market_order(
        self,
        credentials: Credentials,
        symbol: str,
        side: OrderSide,
        quantity: float,
        market_type: MarketType,
        params: Optional[dict[str, Any]] = None,
    ) -> OrderResult:
        if self._catalog is not None:
            self._catalog.require(symbol, market_type)
        extra = {k: _param(v) for k, v in (params or {}).items()}
        kwargs: dict[str, Any] = {"symbol": symbol, "side": side.value.upper(), "type": "MARKET"}
        if market_type == MarketType.SPOT and side == OrderSide.BUY and "quoteOrderQty" in extra:
            kwargs["quoteOrderQty"] = format_quantity(float(extra.pop("quoteOrderQty")))
        else:
            extra.pop("quoteOrderQty", None)
            kwargs["quantity"] = format_quantity(quantity, self._amount_decimals(symbol, market_type))
        kwargs["newOrderRespType"] = "RESULT" if market_type == MarketType.DERIVATIVES else "FULL"
        kwargs.update(extra)
        logger.info(
            "Placing %s market %s %s qty=%s params=%s",
            market_type.value, side.value, symbol, kwargs.get("quantity", kwargs.get("quoteOrderQty")), extra,
        )
        try:
            res = self._create_order(self._client(credentials), market_type, kwargs)
        except Exception as e:
            raise map_binance_error(e) from e
        if market_type == MarketType.DERIVATIVES:
            order = parse_futures_order(res, symbol, side)
        else:
            order = parse_spot_order(res, symbol, side)
        logger.info("Order %s filled qty=%s avg=%s cost=%s", order.order_id, order.filled_quantity,
                    order.average_price, order.cost)
        return order

    def _amount_decimals(self, symbol: str, market_type: MarketType) -> Optional[int]:
        if self._catalog is None:
            return None
        info = self._catalog.lookup(symbol, market_type)
        return info.precision.amount if info else None
