"""
Repeating task on a background thread.

Each tick is dispatched on its own worker thread so a slow tick never delays the
clock. The task itself does not queue or serialize ticks; the callable owns the
skip-if-already-running guard.
"""

from __future__ import annotations
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger("signal_trader.utils.scheduler")


class RepeatingTask:
    """Call `fn` every `interval_s` seconds until stopped."""

    def __init__(self, name: str, fn: Callable[[], None], interval_s: float):
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self.name = name
        self._fn = fn
        self.interval_s = interval_s
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None

    def start(self) -> bool:
        """Begin scheduling. Returns False if already running."""
        with self._lock:
            if self._thread is not None:
                return False
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._loop, args=(self._stop_event,), name=f"{self.name}-timer", daemon=True
            )
            self._thread.start()
            return True

    def stop(self) -> bool:
        """Cancel future ticks; an in-flight tick runs to completion. Returns False if not running."""
        with self._lock:
            if self._thread is None:
                return False
            self._stop_event.set()
            self._thread = None
            return True

    def _loop(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.interval_s):
            worker = threading.Thread(target=self._run_once, name=f"{self.name}-tick", daemon=True)
            worker.start()

    def _run_once(self) -> None:
        try:
            self._fn()
        except Exception as e:
            logger.exception("%s tick failed: %s", self.name, e)
