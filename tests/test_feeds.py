"""Unit tests for feeds (static files and the Token Metrics client with a fake session)."""

import json

import pytest
import requests

from signal_trader.core.config import Config
from signal_trader.core.errors import FeedError
from signal_trader.feeds.factory import create_feed_client
from signal_trader.feeds.static import GRADES_FILE, SIGNALS_FILE, StaticFeedClient
from signal_trader.feeds.token_metrics import TokenMetricsClient


def write(path, payload):
    path.write_text(json.dumps(payload), encoding="utf-8")


def test_static_signals_and_grades(tmp_path):
    write(tmp_path / SIGNALS_FILE, {"data": [
        {"TOKEN_SYMBOL": "btc", "TRADING_SIGNAL": 1, "DATE": "2025-05-20"},
        {"TOKEN_SYMBOL": "ETH", "TRADING_SIGNAL": -1, "DATE": "2025-05-20"},
    ]})
    write(tmp_path / GRADES_FILE, [
        {"TOKEN_SYMBOL": "BTC", "TOKEN_NAME": "Bitcoin", "TA_GRADE": 80, "QUANT_GRADE": 70, "TM_TRADER_GRADE": 90},
        {"TOKEN_SYMBOL": "ETH", "TOKEN_NAME": "Ethereum", "TA_GRADE": 20, "QUANT_GRADE": None, "TM_TRADER_GRADE": 10},
    ])
    client = StaticFeedClient(tmp_path)
    signals = client.get_signals()
    assert [(s.asset, s.value) for s in signals] == [("BTC", 1), ("ETH", -1)]
    grades = client.get_grades(["eth"])
    assert [g.asset for g in grades] == ["ETH"]
    assert grades[0].quant_grade is None
    assert len(client.get_grades()) == 2


def test_static_missing_file_raises(tmp_path):
    with pytest.raises(FeedError):
        StaticFeedClient(tmp_path).get_signals()


def test_static_corrupt_file_raises(tmp_path):
    (tmp_path / SIGNALS_FILE).write_text("[{", encoding="utf-8")
    with pytest.raises(FeedError):
        StaticFeedClient(tmp_path).get_signals()


def test_bundled_sample_data_loads():
    from pathlib import Path
    client = StaticFeedClient(Path(__file__).resolve().parents[1] / "static_data")
    assert client.get_signals()
    assert client.get_grades(["BTC"])


class FakeResponse:
    def __init__(self, status, payload):
        self.status_code = status
        self._payload = payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, *responses):
        self.headers = {}
        self.responses = list(responses)
        self.requests = []

    def get(self, url, params=None, timeout=None):
        self.requests.append((url, params, timeout))
        r = self.responses.pop(0)
        if isinstance(r, Exception):
            raise r
        return r


KEY = "tm-test-key-0123456789"


def test_token_metrics_grades_request():
    session = FakeSession(FakeResponse(200, {"success": True, "data": [
        {"TOKEN_SYMBOL": "BTC", "TOKEN_NAME": "Bitcoin", "TA_GRADE": 80, "QUANT_GRADE": 70, "TM_TRADER_GRADE": 90},
    ]}))
    client = TokenMetricsClient(KEY, base_url="https://tm.example/v2/", timeout_s=5, session=session)
    grades = client.get_grades(["BTC", "ETH"])
    assert grades[0].tm_grade == 90
    url, params, timeout = session.requests[0]
    assert url == "https://tm.example/v2/trader-grades"
    assert params["symbol"] == "BTC,ETH"
    assert params["exchange"] == "binance"
    assert timeout == 5
    assert session.headers["api_key"] == KEY


def test_token_metrics_http_error_becomes_feed_error():
    session = FakeSession(FakeResponse(500, {}))
    client = TokenMetricsClient(KEY, session=session)
    with pytest.raises(FeedError):
        client.get_signals()


def test_token_metrics_network_error_becomes_feed_error():
    session = FakeSession(requests.ConnectionError("dns"))
    client = TokenMetricsClient(KEY, session=session)
    with pytest.raises(FeedError):
        client.get_signals()


def test_token_metrics_unexpected_payload_is_empty():
    session = FakeSession(FakeResponse(200, {"success": False, "message": "no data"}))
    assert TokenMetricsClient(KEY, session=session).get_signals() == []


@pytest.mark.parametrize("key", ["", "your_api_key_here", "short"])
def test_token_metrics_rejects_bad_key(key):
    with pytest.raises(ValueError):
        TokenMetricsClient(key, session=FakeSession())


def test_factory_picks_static_client(tmp_path):
    client = create_feed_client(Config(use_mock_feeds=True, static_data_dir=tmp_path))
    assert isinstance(client, StaticFeedClient)


def test_factory_requires_key_for_live_feeds():
    with pytest.raises(ValueError):
        create_feed_client(Config(use_mock_feeds=False, token_metrics_api_key=""))


def test_malformed_signal_rows_are_skipped(tmp_path):
    write(tmp_path / SIGNALS_FILE, {"data": [
        {"TOKEN_SYMBOL": "BTC", "TRADING_SIGNAL": None},
        {"TOKEN_SYMBOL": "ETH", "TRADING_SIGNAL": "up"},
        {"TOKEN_SYMBOL": "XRP", "TRADING_SIGNAL": 7},
        {"TRADING_SIGNAL": 1},
        {"TOKEN_SYMBOL": "SOL", "TRADING_SIGNAL": -1},
    ]})
    signals = StaticFeedClient(tmp_path).get_signals()
    assert [(s.asset, s.value) for s in signals] == [("SOL", -1)]


def test_poller_still_sees_good_rows_next_to_bad_ones(tmp_path):
    from signal_trader.signals.poller import SignalListener, SignalPoller

    class Recorder(SignalListener):
        def __init__(self):
            self.events = []

        def on_buy(self, asset, signal):
            self.events.append(("buy", asset))

        def on_error(self, error):
            self.events.append(("error", str(error)))

    write(tmp_path / SIGNALS_FILE, [
        {"TOKEN_SYMBOL": "BTC", "TRADING_SIGNAL": None},
        {"TOKEN_SYMBOL": "ETH", "TRADING_SIGNAL": 1},
    ])
    poller = SignalPoller(StaticFeedClient(tmp_path), 60)
    rec = Recorder()
    poller.subscribe(rec)
    poller.check_signals()
    assert rec.events == [("buy", "ETH")]


def test_token_metrics_skips_null_signal():
    session = FakeSession(FakeResponse(200, {"data": [
        {"TOKEN_SYMBOL": "BTC", "TRADING_SIGNAL": None},
        {"TOKEN_SYMBOL": "ETH", "TRADING_SIGNAL": 1},
    ]}))
    signals = TokenMetricsClient(KEY, session=session).get_signals()
    assert [s.asset for s in signals] == ["ETH"]
