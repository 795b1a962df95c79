"""File-backed feed client for development and tests: reads recorded JSON responses."""

from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import List, Optional

from signal_trader.core.errors import FeedError
from signal_trader.core.types import TraderGrade, TradingSignal
from signal_trader.feeds.base import FeedClient, grade_from_row, signals_from_rows, unwrap_rows

logger = logging.getLogger("signal_trader.feeds.static")

GRADES_FILE = "trader_grades_response.json"
SIGNALS_FILE = "trading_signals_response.json"


class StaticFeedClient(FeedClient):
    """Serves trader grades and trading signals from `data_dir`. Files are re-read on every call."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    def _rows(self, filename: str) -> list:
        path = self.data_dir / filename
        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except FileNotFoundError as e:
            raise FeedError(f"Static feed file not found: {path}") from e
        except (OSError, json.JSONDecodeError) as e:
            raise FeedError(f"Static feed file unreadable: {path}: {e}") from e
        rows = unwrap_rows(payload)
        if not rows:
            logger.warning("Static feed file %s holds no rows", path)
        return rows

    def get_grades(self, assets: Optional[List[str]] = None) -> List[TraderGrade]:
        grades = [grade_from_row(row) for row in self._rows(GRADES_FILE)]
        if assets:
            wanted = {a.upper() for a in assets}
            grades = [g for g in grades if g.asset in wanted]
        return grades

    def get_signals(self) -> List[TradingSignal]:
        return signals_from_rows(self._rows(SIGNALS_FILE))
