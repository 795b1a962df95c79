#!/usr/bin/env python3
"""
Signal trader CLI: run | suggest | catalog | signals
Usage:
  python main.py run [--config config.yaml]
  python main.py suggest [--config config.yaml]
  python main.py catalog [--config config.yaml]
  python main.py signals [--config config.yaml]
"""

from __future__ import annotations
import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional

# Project root
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from signal_trader.app import TradingApp
from signal_trader.core.config import Config, load_config
from signal_trader.core.errors import ExchangeError, StoreError
from signal_trader.core.logger import setup_logging
from signal_trader.core.types import TradingSignal
from signal_trader.execution.binance_gateway import BinanceGateway
from signal_trader.market.catalog import MarketCatalog
from signal_trader.signals.poller import SignalListener

logger = logging.getLogger("signal_trader")


def _config(config_path: Path | None) -> Config:
    config = load_config(config_path, ROOT)
    setup_logging(config.log_level, config.log_dir, config.log_file)
    return config


def _build(config_path: Path | None) -> Optional[TradingApp]:
    config = _config(config_path)
    try:
        return TradingApp(config)
    except (ValueError, StoreError) as e:
        logger.error("Configuration error: %s", e)
        return None


def run_service(config_path: Path | None) -> int:
    """Run the signal poller and suggestion loop until interrupted."""
    app = _build(config_path)
    if app is None:
        return 1
    if not app.config.binance_api_key or not app.config.binance_api_secret:
        logger.warning("No Binance keys in .env: positions cannot be closed until BINANCE_API_KEY is set")
    try:
        app.start()
    except ExchangeError as e:
        logger.error("Startup failed, could not load markets: %s", e)
        return 1
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Shutdown by user")
    finally:
        app.stop()
    return 0


def run_suggest(config_path: Path | None) -> int:
    """Generate suggestions once, store them and print them."""
    app = _build(config_path)
    if app is None:
        return 1
    try:
        app.catalog.refresh()
    except ExchangeError as e:
        logger.error("Could not load markets: %s", e)
        return 1
    if not app.suggestions.update_and_store():
        return 1
    rows = app.suggestion_storage.get_suggestions()
    print("\n--- Suggestions ---")
    for s in rows:
        markets = "/".join(m for m in (s["spot_market"] and "spot", s["derivatives_market"] and "perp") if m)
        print(f"{s['asset_id']:<6} {s['action']:<4} conf={s['confidence']:.2f} markets={markets}")
    print(f"{len(rows)} suggestions")
    return 0


def run_catalog(config_path: Path | None) -> int:
    """Load markets and print the eligible symbols. Needs no feed or account keys."""
    config = _config(config_path)
    catalog = MarketCatalog(BinanceGateway(testnet=config.use_testnet, quote_asset=config.quote_asset),
                            quote_asset=config.quote_asset)
    try:
        catalog.refresh()
    except ExchangeError as e:
        logger.error("Could not load markets: %s", e)
        return 1
    spot = catalog.spot_markets()
    perps = catalog.derivatives_markets()
    print(f"\n--- {config.quote_asset} spot pairs ({len(spot)}) ---")
    print(", ".join(sorted(spot)))
    print(f"\n--- {config.quote_asset} linear perpetuals ({len(perps)}) ---")
    print(", ".join(sorted(perps)))
    return 0


class _PrintingListener(SignalListener):
    def on_buy(self, asset: str, signal: TradingSignal) -> None:
        print(f"BUY  {asset} ({signal.date})")

    def on_sell(self, asset: str, signal: TradingSignal) -> None:
        print(f"SELL {asset} ({signal.date})")

    def on_error(self, error: Exception) -> None:
        print(f"ERROR {error}")


def run_signals(config_path: Path | None) -> int:
    """Poll the signal feed once and print the transitions a fresh poller would emit."""
    app = _build(config_path)
    if app is None:
        return 1
    app.poller.unsubscribe_all()
    app.poller.subscribe(_PrintingListener())
    app.poller.check_signals()
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Signal trader CLI")
    parser.add_argument("mode", choices=["run", "suggest", "catalog", "signals"], help="What to run")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    args = parser.parse_args()
    if args.mode == "suggest":
        return run_suggest(args.config)
    if args.mode == "catalog":
        return run_catalog(args.config)
    if args.mode == "signals":
        return run_signals(args.config)
    return run_service(args.config)


if __name__ == "__main__":
    exit(main())
