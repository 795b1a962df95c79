"""Execution: exchange abstraction and Binance implementation."""

from signal_trader.execution.base import ExchangeGateway
from signal_trader.execution.binance_gateway import BinanceGateway

__all__ = ["ExchangeGateway", "BinanceGateway"]
