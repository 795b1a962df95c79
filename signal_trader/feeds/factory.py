"""Pick the live or the file-backed feed client from configuration."""

from __future__ import annotations
import logging

from signal_trader.core.config import Config
from signal_trader.feeds.base import FeedClient
from signal_trader.feeds.static import StaticFeedClient
from signal_trader.feeds.token_metrics import TokenMetricsClient

logger = logging.getLogger("signal_trader.feeds")


def create_feed_client(config: Config) -> FeedClient:
    if config.use_mock_feeds:
        logger.info("Mock feeds enabled: reading recorded responses from %s", config.static_data_dir)
        return StaticFeedClient(config.static_data_dir)
    if not config.token_metrics_api_key:
        raise ValueError("TOKEN_METRICS_API_KEY is not set; set it or enable USE_MOCK_FEEDS")
    logger.info("Using live Token Metrics feeds at %s", config.token_metrics_base_url)
    return TokenMetricsClient(
        config.token_metrics_api_key,
        base_url=config.token_metrics_base_url,
        timeout_s=config.feed_timeout_s,
    )
