"""Core: config, types, errors, logging."""

from signal_trader.core.config import load_config, Config
from signal_trader.core.types import (
    ClosureUpdate,
    Credentials,
    MarketInfo,
    MarketType,
    OrderResult,
    OrderSide,
    Position,
    PositionState,
    Suggestion,
    TraderGrade,
    TradingAction,
    TradingSignal,
)
from signal_trader.core.logger import setup_logging

__all__ = [
    "load_config",
    "Config",
    "ClosureUpdate",
    "Credentials",
    "MarketInfo",
    "MarketType",
    "OrderResult",
    "OrderSide",
    "Position",
    "PositionState",
    "Suggestion",
    "TraderGrade",
    "TradingAction",
    "TradingSignal",
    "setup_logging",
]
