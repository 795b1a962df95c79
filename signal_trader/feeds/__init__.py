"""Feeds: trading signals and trader grades."""

from signal_trader.feeds.base import FeedClient, GradeSource, TradingSignalSource
from signal_trader.feeds.factory import create_feed_client
from signal_trader.feeds.static import StaticFeedClient
from signal_trader.feeds.token_metrics import TokenMetricsClient

__all__ = [
    "FeedClient",
    "GradeSource",
    "TradingSignalSource",
    "create_feed_client",
    "StaticFeedClient",
    "TokenMetricsClient",
]
