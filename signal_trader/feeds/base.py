"""Abstract feed interfaces: directional signals and multi-factor grades."""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from signal_trader.core.types import TraderGrade, TradingSignal

logger = logging.getLogger("signal_trader.feeds")

SIGNAL_VALUES = (-1, 0, 1)


class TradingSignalSource(ABC):
    @abstractmethod
    def get_signals(self) -> List[TradingSignal]:
        """Current signal value for every tracked asset. Raises FeedError on I/O failure."""
        pass


class GradeSource(ABC):
    @abstractmethod
    def get_grades(self, assets: Optional[List[str]] = None) -> List[TraderGrade]:
        """TA / quant / trader grades (0-100) for the given assets. Raises FeedError on I/O failure."""
        pass


class FeedClient(TradingSignalSource, GradeSource, ABC):
    """One provider serving both feeds."""


def signal_from_row(row: dict) -> TradingSignal:
    return TradingSignal(
        asset=str(row.get("TOKEN_SYMBOL", "")).upper(),
        value=int(row.get("TRADING_SIGNAL", 0)),
        date=str(row.get("DATE", "")),
    )


def grade_from_row(row: dict) -> TraderGrade:
    return TraderGrade(
        asset=str(row.get("TOKEN_SYMBOL", "")).upper(),
        name=str(row.get("TOKEN_NAME", "")),
        ta_grade=row.get("TA_GRADE"),
        quant_grade=row.get("QUANT_GRADE"),
        tm_grade=row.get("TM_TRADER_GRADE"),
        date=str(row.get("DATE", "")),
    )


def unwrap_rows(payload) -> list:
    """Responses are either a bare list or {"data": [...]}."""
    rows = payload if isinstance(payload, list) else (payload or {}).get("data")
    return rows if isinstance(rows, list) else []


def signals_from_rows(rows: list) -> List[TradingSignal]:
    """Parse signal rows, skipping rows without a symbol or with a value outside -1/0/1."""
    signals: List[TradingSignal] = []
    for row in rows:
        try:
            signal = signal_from_row(row)
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning("Skipping malformed signal row %r: %s", row, e)
            continue
        if not signal.asset or signal.value not in SIGNAL_VALUES:
            logger.warning("Skipping malformed signal row %r", row)
            continue
        signals.append(signal)
    return signals
