"""Where the latest suggestions are kept for the query layer."""

from __future__ import annotations
import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from signal_trader.core.config import Config
from signal_trader.core.types import Suggestion

logger = logging.getLogger("signal_trader.suggestions.storage")


class SuggestionStorage(ABC):
    @abstractmethod
    def save_suggestions(self, suggestions: List[Suggestion]) -> None:
        pass

    @abstractmethod
    def get_suggestions(self) -> List[dict]:
        """Latest suggestions as plain dicts."""
        pass


class MemorySuggestionStorage(SuggestionStorage):
    def __init__(self):
        self._items: List[dict] = []
        self._lock = threading.Lock()

    def save_suggestions(self, suggestions: List[Suggestion]) -> None:
        with self._lock:
            self._items = [s.to_dict() for s in suggestions]

    def get_suggestions(self) -> List[dict]:
        with self._lock:
            return list(self._items)


class FileSuggestionStorage(SuggestionStorage):
    """JSON file, replaced atomically on every save."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def save_suggestions(self, suggestions: List[Suggestion]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump([s.to_dict() for s in suggestions], f, indent=2)
        os.replace(tmp, self.path)

    def get_suggestions(self) -> List[dict]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return []
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Error reading suggestions file %s: %s", self.path, e)
            return []
        return data if isinstance(data, list) else []


def create_suggestion_storage(config: Config) -> SuggestionStorage:
    if config.storage_type == "file":
        return FileSuggestionStorage(config.suggestions_file)
    return MemorySuggestionStorage()
