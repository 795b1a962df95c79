"""Positions: ledger, owner credentials and signal-driven closure."""

from signal_trader.positions.credentials import CredentialStore, StaticCredentialStore, credentials_from_config
from signal_trader.positions.reconciler import PositionReconciler, compute_profit
from signal_trader.positions.store import InMemoryPositionStore, JsonFilePositionStore, PositionStore

__all__ = [
    "CredentialStore",
    "StaticCredentialStore",
    "credentials_from_config",
    "PositionReconciler",
    "compute_profit",
    "InMemoryPositionStore",
    "JsonFilePositionStore",
    "PositionStore",
]
