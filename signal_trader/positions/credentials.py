"""Owner -> exchange credentials lookup."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Mapping, Optional

from signal_trader.core.config import Config
from signal_trader.core.types import Credentials


class CredentialStore(ABC):
    @abstractmethod
    def find_credentials_by_owner(self, owner_id: str) -> Optional[Credentials]:
        """None when the owner is unknown. A known owner may come back with empty keys."""
        pass


class StaticCredentialStore(CredentialStore):
    def __init__(self, credentials: Optional[Mapping[str, Credentials]] = None):
        self._credentials = dict(credentials or {})

    def find_credentials_by_owner(self, owner_id: str) -> Optional[Credentials]:
        return self._credentials.get(owner_id)


def credentials_from_config(config: Config) -> StaticCredentialStore:
    """Single-owner store holding the Binance keys from the environment."""
    if not config.binance_api_key or not config.binance_api_secret:
        return StaticCredentialStore()
    return StaticCredentialStore({
        config.owner_id: Credentials(config.binance_api_key, config.binance_api_secret),
    })
