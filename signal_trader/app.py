"""
Composition root: build the collaborators from Config, wire signal events into the
position reconciler and drive the two periodic loops.
"""

from __future__ import annotations
import logging
from typing import Callable, List, Optional

from signal_trader.core.config import Config
from signal_trader.core.types import OrderSide, Position, Suggestion, TradingSignal
from signal_trader.execution.base import ExchangeGateway
from signal_trader.execution.binance_gateway import BinanceGateway
from signal_trader.feeds.base import FeedClient
from signal_trader.feeds.factory import create_feed_client
from signal_trader.market.catalog import MarketCatalog
from signal_trader.positions.credentials import CredentialStore, credentials_from_config
from signal_trader.positions.reconciler import PositionReconciler
from signal_trader.positions.store import JsonFilePositionStore, PositionStore
from signal_trader.signals.poller import SignalListener, SignalPoller
from signal_trader.suggestions.classifier import SuggestionGenerator
from signal_trader.suggestions.service import SuggestionService
from signal_trader.suggestions.storage import create_suggestion_storage
from signal_trader.utils.telegram import send_telegram

logger = logging.getLogger("signal_trader.app")


def format_closure(p: Position) -> str:
    profit = f"{p.profit:+.4f}" if p.profit is not None else "n/a"
    return (f"Closed {p.market_type.value} {p.side.value} {p.symbol} #{p.position_id} "
            f"qty={p.filled} close={p.close_price} profit={profit}")


class ReconcilingListener(SignalListener):
    """Forwards buy/sell events to the reconciler for the asset's market symbol."""

    def __init__(
        self,
        reconciler: PositionReconciler,
        catalog: MarketCatalog,
        notify: Optional[Callable[[str], None]] = None,
    ):
        self._reconciler = reconciler
        self._catalog = catalog
        self._notify = notify

    def on_buy(self, asset: str, signal: TradingSignal) -> None:
        self._handle(OrderSide.BUY, asset, signal)

    def on_sell(self, asset: str, signal: TradingSignal) -> None:
        self._handle(OrderSide.SELL, asset, signal)

    def on_error(self, error: Exception) -> None:
        logger.error("Signal poll failed: %s", error)
        if self._notify:
            self._notify(f"Signal poll failed: {error}")

    def _handle(self, side: OrderSide, asset: str, signal: TradingSignal) -> None:
        # spot and USDⓈ-M futures share the same symbol, so one pass covers both markets
        symbol = self._catalog.market_symbol(asset)
        logger.info("Received %s signal for %s (%s)", side.value.upper(), asset, symbol)
        closed = self._reconciler.reconcile(side, symbol, signal)
        if closed and self._notify:
            self._notify("\n".join(format_closure(p) for p in closed))


class TradingApp:
    """Owns every long-lived service. Collaborators can be injected for tests."""

    def __init__(
        self,
        config: Config,
        gateway: Optional[ExchangeGateway] = None,
        feed: Optional[FeedClient] = None,
        store: Optional[PositionStore] = None,
        credentials: Optional[CredentialStore] = None,
    ):
        self.config = config
        self.gateway = gateway or BinanceGateway(testnet=config.use_testnet, quote_asset=config.quote_asset)
        self.catalog = MarketCatalog(self.gateway, quote_asset=config.quote_asset)
        if isinstance(self.gateway, BinanceGateway):
            self.gateway.attach_catalog(self.catalog)
        self.feed = feed or create_feed_client(config)
        self.store = store or JsonFilePositionStore(config.positions_file)
        self.credentials = credentials or credentials_from_config(config)

        self.reconciler = PositionReconciler(self.store, self.credentials, self.gateway)
        self.poller = SignalPoller(self.feed, config.signal_interval_minutes)
        self.poller.subscribe(ReconcilingListener(self.reconciler, self.catalog, notify=self.notify))
        self.generator = SuggestionGenerator(self.feed, self.catalog, config.target_assets)
        self.suggestion_storage = create_suggestion_storage(config)
        self.suggestions = SuggestionService(
            self.generator, self.suggestion_storage, refresh_markets=self.catalog.refresh,
        )

    def notify(self, text: str) -> None:
        send_telegram(text, self.config.telegram_bot_token, self.config.telegram_chat_id)

    def generate_suggestions(self) -> List[Suggestion]:
        return self.generator.generate_suggestions()

    def start(self) -> None:
        """Load markets, then start the suggestion loop and the signal poller."""
        self.catalog.refresh()
        self.suggestions.start(self.config.suggestion_interval_hours, run_immediately=True)
        self.poller.start()
        self.notify(f"Signal trader started | testnet={self.config.use_testnet} | "
                    f"every {self.poller.interval_minutes} min")

    def stop(self) -> None:
        self.poller.stop()
        self.suggestions.stop()
        self.notify("Signal trader stopped.")
