"""
Load configuration from config.yaml and .env. API keys only from env.
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Any, List, Optional

import yaml
from dotenv import load_dotenv

DEFAULT_TARGET_ASSETS = [
    "BTC", "ETH", "BNB", "SOL", "XRP", "ADA", "AVAX", "DOT",
    "LINK", "MATIC", "UNI", "AAVE", "LTC", "ATOM", "ALGO",
]
DEFAULT_SIGNAL_INTERVAL_MINUTES = 60


def _env_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path(__file__).resolve().parents[2]
    return root / ".env"


def _under_root(value, root: Path) -> Path:
    """Relative paths are taken from the project root, not the working directory."""
    path = Path(value)
    return path if path.is_absolute() else root / path


def load_dotenv_if_exists(project_root: Optional[Path] = None) -> None:
    """Load .env from project root if present."""
    path = _env_path(project_root)
    if path.exists():
        load_dotenv(path)


def load_config(config_path: Optional[Path] = None, project_root: Optional[Path] = None) -> "Config":
    """Load config.yaml and overlay with env. Returns Config."""
    load_dotenv_if_exists(project_root)
    root = project_root or Path(__file__).resolve().parents[2]
    path = config_path or root / "config.yaml"
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    def env(key: str, default: str = "") -> str:
        return os.getenv(key, default).strip()

    def env_bool(key: str, default: bool = False) -> bool:
        return os.getenv(key, str(default)).lower() in ("true", "1", "yes")

    def env_int(key: str, default: int = 0) -> int:
        try:
            return int(os.getenv(key, str(default)))
        except ValueError:
            return default

    def env_float(key: str, default: float = 0.0) -> float:
        try:
            return float(os.getenv(key, str(default)))
        except ValueError:
            return default

    api = data.get("api", {})
    feeds = data.get("feeds", {})
    signals = data.get("signals", {})
    suggestions = data.get("suggestions", {})
    storage = data.get("storage", {})
    telegram = data.get("telegram", {})

    use_testnet = env_bool("USE_TESTNET", api.get("use_testnet", True))
    # Prefer dedicated testnet/mainnet keys so both can live in .env and USE_TESTNET switches
    if use_testnet:
        binance_api_key = env("BINANCE_TESTNET_API_KEY") or env("BINANCE_API_KEY")
        binance_api_secret = env("BINANCE_TESTNET_API_SECRET") or env("BINANCE_API_SECRET")
    else:
        binance_api_key = env("BINANCE_MAINNET_API_KEY") or env("BINANCE_API_KEY")
        binance_api_secret = env("BINANCE_MAINNET_API_SECRET") or env("BINANCE_API_SECRET")

    assets_env = env("TARGET_ASSETS")
    if assets_env:
        target_assets = [a.strip().upper() for a in assets_env.split(",") if a.strip()]
    else:
        target_assets = [str(a).upper() for a in suggestions.get("target_assets", DEFAULT_TARGET_ASSETS)]

    return Config(
        # API (env only; never put keys in config.yaml)
        binance_api_key=binance_api_key,
        binance_api_secret=binance_api_secret,
        use_testnet=use_testnet,
        owner_id=env("OWNER_ID", str(api.get("owner_id", "default"))),
        quote_asset=env("QUOTE_ASSET", api.get("quote_asset", "USDC")).upper(),
        # Feeds
        token_metrics_api_key=env("TOKEN_METRICS_API_KEY"),
        token_metrics_base_url=env("TOKEN_METRICS_BASE_URL", feeds.get("base_url", "https://api.tokenmetrics.com/v2")),
        use_mock_feeds=env_bool("USE_MOCK_FEEDS", feeds.get("use_mock", False)),
        static_data_dir=_under_root(env("STATIC_DATA_DIR", str(feeds.get("static_data_dir", "static_data"))), root),
        feed_timeout_s=env_float("FEED_TIMEOUT_S", feeds.get("timeout_s", 15.0)),
        # Loops
        signal_interval_minutes=env_int(
            "SIGNAL_CHECK_INTERVAL_MINUTES", signals.get("interval_minutes", DEFAULT_SIGNAL_INTERVAL_MINUTES)
        ),
        suggestion_interval_hours=env_float("SUGGESTION_INTERVAL_HOURS", suggestions.get("interval_hours", 24.0)),
        target_assets=target_assets,
        # Storage
        storage_type=env("STORAGE_TYPE", storage.get("type", "memory")).lower(),
        suggestions_file=_under_root(
            env("STORAGE_FILE_PATH", storage.get("suggestions_file", "data/suggestions.json")), root
        ),
        positions_file=_under_root(
            env("POSITIONS_FILE", storage.get("positions_file", "data/positions.json")), root
        ),
        # Telegram
        telegram_bot_token=env("TELEGRAM_BOT_TOKEN", telegram.get("bot_token", "")),
        telegram_chat_id=env("TELEGRAM_CHAT_ID", telegram.get("chat_id", "")),
        # Logging
        log_level=data.get("logging", {}).get("level", "INFO"),
        log_dir=_under_root(data.get("logging", {}).get("log_dir", "logs"), root),
        log_file=data.get("logging", {}).get("log_file", "signal_trader.log"),
    )


class Config:
    """Unified configuration. Immutable after load."""

    __slots__ = (
        "binance_api_key", "binance_api_secret", "use_testnet", "owner_id", "quote_asset",
        "token_metrics_api_key", "token_metrics_base_url", "use_mock_feeds", "static_data_dir",
        "feed_timeout_s",
        "signal_interval_minutes", "suggestion_interval_hours", "target_assets",
        "storage_type", "suggestions_file", "positions_file",
        "telegram_bot_token", "telegram_chat_id",
        "log_level", "log_dir", "log_file",
    )

    def __init__(
        self,
        binance_api_key: str = "",
        binance_api_secret: str = "",
        use_testnet: bool = True,
        owner_id: str = "default",
        quote_asset: str = "USDC",
        token_metrics_api_key: str = "",
        token_metrics_base_url: str = "https://api.tokenmetrics.com/v2",
        use_mock_feeds: bool = False,
        static_data_dir: Path = None,
        feed_timeout_s: float = 15.0,
        signal_interval_minutes: int = DEFAULT_SIGNAL_INTERVAL_MINUTES,
        suggestion_interval_hours: float = 24.0,
        target_assets: Optional[List[str]] = None,
        storage_type: str = "memory",
        suggestions_file: Path = None,
        positions_file: Path = None,
        telegram_bot_token: str = "",
        telegram_chat_id: str = "",
        log_level: str = "INFO",
        log_dir: Path = None,
        log_file: str = "signal_trader.log",
    ):
        self.binance_api_key = binance_api_key
        self.binance_api_secret = binance_api_secret
        self.use_testnet = use_testnet
        self.owner_id = owner_id
        self.quote_asset = quote_asset
        self.token_metrics_api_key = token_metrics_api_key
        self.token_metrics_base_url = token_metrics_base_url.rstrip("/")
        self.use_mock_feeds = use_mock_feeds
        self.static_data_dir = Path(static_data_dir) if static_data_dir else Path("static_data")
        self.feed_timeout_s = feed_timeout_s
        self.signal_interval_minutes = signal_interval_minutes
        self.suggestion_interval_hours = suggestion_interval_hours
        self.target_assets = list(target_assets) if target_assets else list(DEFAULT_TARGET_ASSETS)
        self.storage_type = storage_type
        self.suggestions_file = Path(suggestions_file) if suggestions_file else Path("data/suggestions.json")
        self.positions_file = Path(positions_file) if positions_file else Path("data/positions.json")
        self.telegram_bot_token = telegram_bot_token
        self.telegram_chat_id = telegram_chat_id
        self.log_level = log_level
        self.log_dir = Path(log_dir) if log_dir else Path("logs")
        self.log_file = log_file
