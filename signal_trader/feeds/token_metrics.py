"""
Token Metrics REST client: trader grades and trading signals.
"""

from __future__ import annotations
import logging
from typing import List, Optional

import requests

from signal_trader.core.errors import FeedError
from signal_trader.core.types import TraderGrade, TradingSignal
from signal_trader.feeds.base import FeedClient, grade_from_row, signals_from_rows, unwrap_rows
from signal_trader.utils.retry import retry_on_rate_limit

logger = logging.getLogger("signal_trader.feeds.token_metrics")

# Universe filter shared by both endpoints
BASE_PARAMS = {
    "exchange": "binance",
    "limit": 1000,
    "marketcap": 500000,
    "volume": 20000,
    "page": 0,
}


class TokenMetricsClient(FeedClient):
    """Live client. Raises FeedError on transport or HTTP failure."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.tokenmetrics.com/v2",
        timeout_s: float = 15.0,
        session: Optional[requests.Session] = None,
    ):
        if not api_key or api_key == "your_api_key_here" or len(api_key) < 10:
            raise ValueError("Invalid Token Metrics API key")
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._session = session or requests.Session()
        self._session.headers.update({"api_key": api_key, "accept": "application/json"})

    @retry_on_rate_limit(max_retries=3, base_delay=2.0, exceptions=(requests.HTTPError,))
    def _get_json(self, path: str, params: dict):
        r = self._session.get(f"{self.base_url}/{path}", params=params, timeout=self.timeout_s)
        r.raise_for_status()
        return r.json()

    def _fetch(self, path: str, params: dict) -> list:
        try:
            payload = self._get_json(path, params)
        except (requests.RequestException, ValueError) as e:
            raise FeedError(f"Token Metrics {path} request failed: {e}") from e
        rows = unwrap_rows(payload)
        if not rows:
            logger.warning("Unexpected or empty %s response", path)
        return rows

    def get_grades(self, assets: Optional[List[str]] = None) -> List[TraderGrade]:
        params = dict(BASE_PARAMS, traderGrade=0)
        if assets:
            params["symbol"] = ",".join(assets)
        return [grade_from_row(row) for row in self._fetch("trader-grades", params)]

    def get_signals(self) -> List[TradingSignal]:
        return signals_from_rows(self._fetch("trading-signals", dict(BASE_PARAMS)))
