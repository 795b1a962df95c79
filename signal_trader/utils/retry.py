"""Retry with exponential backoff for rate-limited calls (HTTP 429 / 418)."""

from __future__ import annotations
import functools
import logging
import time
from typing import Callable, Optional, Tuple, Type

logger = logging.getLogger("signal_trader.utils.retry")

RATE_LIMIT_STATUSES = (429, 418)


def _status_of(exc: BaseException) -> Optional[int]:
    status = getattr(exc, "status_code", None)
    if status is None:
        response = getattr(exc, "response", None)
        status = getattr(response, "status_code", None)
    return status


def retry_on_rate_limit(
    max_retries: int = 3,
    base_delay: float = 1.0,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
):
    """Decorator: retry when one of `exceptions` carries a rate-limit status."""
    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            for attempt in range(max_retries):
                try:
                    return f(*args, **kwargs)
                except exceptions as e:
                    if _status_of(e) in RATE_LIMIT_STATUSES and attempt < max_retries - 1:
                        delay = base_delay * (2 ** attempt)
                        logger.warning("%s rate limited, retry in %.1fs (attempt %d)", f.__name__, delay, attempt + 1)
                        sleep(delay)
                    else:
                        raise
        return wrapped
    return decorator
