"""
Signal poller: polls the trading-signal feed and emits edge-triggered buy/sell events.

A buy fires when an asset moves into 1 from -1, 0 or no previous value; a sell fires
when it moves into -1 from 1, 0 or no previous value. Steady states never fire.
"""

from __future__ import annotations
import logging
import threading
from datetime import datetime, timezone
from typing import Callable, List, Optional

from signal_trader.core.config import DEFAULT_SIGNAL_INTERVAL_MINUTES
from signal_trader.core.types import TradingSignal
from signal_trader.feeds.base import TradingSignalSource
from signal_trader.utils.scheduler import RepeatingTask

logger = logging.getLogger("signal_trader.signals.poller")

BUY, NEUTRAL, SELL = 1, 0, -1


class SignalListener:
    """Observer for poller events. Override the events you care about."""

    def on_buy(self, asset: str, signal: TradingSignal) -> None:
        pass

    def on_sell(self, asset: str, signal: TradingSignal) -> None:
        pass

    def on_error(self, error: Exception) -> None:
        pass


def detect_transition(previous: Optional[int], current: int) -> Optional[str]:
    """Return "buy", "sell" or None for a previous -> current signal change."""
    if previous is None:
        previous = NEUTRAL
    if current == BUY and previous in (SELL, NEUTRAL):
        return "buy"
    if current == SELL and previous in (BUY, NEUTRAL):
        return "sell"
    return None


class SignalPoller:
    """Periodic, non-overlapping signal check with synchronous event delivery."""

    def __init__(
        self,
        source: TradingSignalSource,
        interval_minutes: int = DEFAULT_SIGNAL_INTERVAL_MINUTES,
        task_factory: Callable[..., RepeatingTask] = RepeatingTask,
    ):
        self._source = source
        if interval_minutes is None or interval_minutes <= 0:
            logger.warning(
                "Signal check interval must be positive (got %s). Defaulting to %d minutes.",
                interval_minutes, DEFAULT_SIGNAL_INTERVAL_MINUTES,
            )
            interval_minutes = DEFAULT_SIGNAL_INTERVAL_MINUTES
        self.interval_minutes = interval_minutes
        self._task_factory = task_factory
        self._task: Optional[RepeatingTask] = None
        self._listeners: List[SignalListener] = []
        self._last_signals: dict[str, int] = {}
        self._in_flight = False
        self._guard = threading.Lock()
        self._lifecycle = threading.Lock()

    @property
    def running(self) -> bool:
        return self._task is not None

    def subscribe(self, listener: SignalListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: SignalListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def unsubscribe_all(self) -> None:
        self._listeners.clear()

    def current_signals(self) -> dict[str, int]:
        """Copy of the last observed value per asset."""
        return dict(self._last_signals)

    def start(self) -> None:
        """Run one check now, then every interval. No-op with a warning if already running."""
        with self._lifecycle:
            if self._task is not None:
                logger.warning("Signal poller is already running.")
                return
            task = self._task_factory("signal-poller", self.check_signals, self.interval_minutes * 60)
            self._task = task
        logger.info("Starting signal poller. Checking signals every %d minutes.", self.interval_minutes)
        self.check_signals()
        with self._lifecycle:
            if self._task is task:
                task.start()

    def stop(self) -> None:
        """Cancel future checks. An in-flight check runs to completion."""
        with self._lifecycle:
            if self._task is None:
                logger.info("Signal poller is not running.")
                return
            self._task.stop()
            self._task = None
        logger.info("Signal poller stopped.")

    def check_signals(self) -> bool:
        """One poll cycle. Returns False when skipped because a cycle is already in flight."""
        with self._guard:
            if self._in_flight:
                logger.info("Signal check already in progress, skipping this interval.")
                return False
            self._in_flight = True
        logger.info("[%s] Checking for new trading signals...", datetime.now(timezone.utc).isoformat())
        try:
            signals = self._source.get_signals()
            if not signals:
                logger.info("No trading signals received from feed.")
                return True
            logger.info("Received %d signals.", len(signals))
            for signal in signals:
                self._evaluate(signal)
            logger.info("Signal check complete.")
        except Exception as e:
            logger.error("Error during signal check: %s", e)
            self._emit_error(e)
        finally:
            with self._guard:
                self._in_flight = False
        return True

    def _evaluate(self, signal: TradingSignal) -> None:
        asset = signal.asset
        previous = self._last_signals.get(asset)
        event = detect_transition(previous, signal.value)
        if event is not None:
            logger.info(
                "%s SIGNAL detected for %s: %s -> %s",
                event.upper(), asset, "N/A" if previous is None else previous, signal.value,
            )
            self._emit(event, asset, signal)
        # recorded whether or not an event fired
        self._last_signals[asset] = signal.value

    def _emit(self, event: str, asset: str, signal: TradingSignal) -> None:
        for listener in list(self._listeners):
            try:
                if event == "buy":
                    listener.on_buy(asset, signal)
                else:
                    listener.on_sell(asset, signal)
            except Exception as e:
                logger.exception("Listener %r failed on %s %s: %s", listener, event, asset, e)

    def _emit_error(self, error: Exception) -> None:
        for listener in list(self._listeners):
            try:
                listener.on_error(error)
            except Exception as e:
                logger.exception("Listener %r failed on error event: %s", listener, e)
