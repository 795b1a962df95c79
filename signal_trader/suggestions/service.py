"""Periodic suggestion regeneration with its own skip-if-running guard."""

from __future__ import annotations
import logging
import threading
from typing import Callable, Optional

from signal_trader.suggestions.classifier import SuggestionGenerator
from signal_trader.suggestions.storage import SuggestionStorage
from signal_trader.utils.scheduler import RepeatingTask

logger = logging.getLogger("signal_trader.suggestions.service")


class SuggestionService:
    def __init__(
        self,
        generator: SuggestionGenerator,
        storage: SuggestionStorage,
        task_factory: Callable[..., RepeatingTask] = RepeatingTask,
        refresh_markets: Optional[Callable[[], None]] = None,
    ):
        self._generator = generator
        self._storage = storage
        self._refresh_markets = refresh_markets
        self._task_factory = task_factory
        self._task: Optional[RepeatingTask] = None
        self._updating = False
        self._guard = threading.Lock()

    @property
    def running(self) -> bool:
        return self._task is not None

    def update_and_store(self) -> bool:
        """Generate and save once. Returns False if skipped or failed."""
        with self._guard:
            if self._updating:
                logger.warning("Suggestion update already in progress, skipping this run.")
                return False
            self._updating = True
        logger.info("Starting suggestion generation and storage...")
        try:
            if self._refresh_markets is not None:
                try:
                    self._refresh_markets()
                except Exception as e:
                    logger.warning("Market refresh failed, using previous catalog: %s", e)
            suggestions = self._generator.generate_suggestions()
            self._storage.save_suggestions(suggestions)
            logger.info("Successfully generated and saved %d suggestions.", len(suggestions))
            return True
        except Exception as e:
            logger.exception("Failed to update suggestions: %s", e)
            return False
        finally:
            with self._guard:
                self._updating = False

    def start(self, interval_hours: float, run_immediately: bool = True) -> None:
        if self._task is not None:
            logger.warning("Periodic suggestion updates are already running.")
            return
        logger.info("Starting periodic suggestion updates every %.2f hours.", interval_hours)
        self._task = self._task_factory("suggestions", self.update_and_store, interval_hours * 3600)
        if run_immediately:
            self.update_and_store()
        self._task.start()

    def stop(self) -> None:
        if self._task is None:
            logger.info("Periodic suggestion updates were not running.")
            return
        self._task.stop()
        self._task = None
        logger.info("Stopped periodic suggestion updates.")
