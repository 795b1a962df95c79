"""Signals: edge-triggered polling of the trading-signal feed."""

from signal_trader.signals.poller import SignalListener, SignalPoller, detect_transition

__all__ = ["SignalListener", "SignalPoller", "detect_transition"]
