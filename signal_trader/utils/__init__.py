"""Utils: Telegram, exchange filters, retry, scheduling."""

from signal_trader.utils.telegram import send_telegram
from signal_trader.utils.retry import retry_on_rate_limit
from signal_trader.utils.scheduler import RepeatingTask

__all__ = ["send_telegram", "retry_on_rate_limit", "RepeatingTask"]
