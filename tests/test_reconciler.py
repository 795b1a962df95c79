"""Unit tests for positions.reconciler."""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from conftest import FakeGateway
from signal_trader.core.errors import (
    AuthenticationError,
    ExchangeUnavailableError,
    InsufficientFundsError,
    StoreError,
)
from signal_trader.core.types import Credentials, MarketType, OrderSide, Position, PositionState
from signal_trader.positions.credentials import StaticCredentialStore
from signal_trader.positions.reconciler import PositionReconciler, closing_params, compute_profit
from signal_trader.positions.store import InMemoryPositionStore

OPENED = datetime(2025, 5, 20, 12, 0, tzinfo=timezone.utc)
OPENED_MS = int(OPENED.timestamp() * 1000)


def position(side, market_type=MarketType.SPOT, symbol="BTCUSDC", owner="alice", order_id=None,
             filled=0.01, cost=1000.0):
    return Position(
        owner_id=owner,
        order_id=order_id or f"{side.value}-{market_type.value}-{owner}",
        opened_at=OPENED,
        symbol=symbol,
        market_type=market_type,
        side=side,
        quantity=filled or 0.0,
        price=cost / filled if cost and filled else None,
        filled=filled,
        cost=cost,
    )


def creds(**owners):
    return StaticCredentialStore({o: Credentials(*keys) for o, keys in owners.items()})


class CountingStore(InMemoryPositionStore):
    def __init__(self):
        super().__init__()
        self.updates = 0

    def update_closure(self, position_id, closure):
        self.updates += 1
        return super().update_closure(position_id, closure)


def test_compute_profit():
    assert compute_profit(OrderSide.BUY, 1000.0, 1010.0) == pytest.approx(10.0)
    assert compute_profit(OrderSide.SELL, 3000.0, 2980.0) == pytest.approx(20.0)
    assert compute_profit(OrderSide.BUY, None, 1010.0) is None
    assert compute_profit(OrderSide.SELL, 1000.0, None) is None


def test_closing_params():
    assert closing_params(MarketType.DERIVATIVES) == {"reduceOnly": True}
    assert closing_params(MarketType.SPOT) == {}


def test_no_open_positions_means_no_orders():
    store = CountingStore()
    gw = FakeGateway()
    rec = PositionReconciler(store, creds(alice=("k", "s")), gw)
    assert rec.reconcile(OrderSide.BUY, "BTCUSDC") == []
    assert gw.orders == []
    assert store.updates == 0


def test_buy_signal_closes_only_sell_positions():
    store = InMemoryPositionStore()
    long_pos = store.add(position(OrderSide.BUY))
    short_pos = store.add(position(OrderSide.SELL, MarketType.DERIVATIVES, cost=1000.0))
    gw = FakeGateway(fills=[{"order_id": "c1", "cost": 980.0, "average_price": 98000.0,
                             "timestamp": OPENED_MS + 3_600_000}])
    rec = PositionReconciler(store, creds(alice=("k", "s")), gw)

    closed = rec.reconcile("buy", "BTCUSDC")

    assert [p.position_id for p in closed] == [short_pos.position_id]
    [order] = gw.orders
    assert order["side"] == OrderSide.BUY
    assert order["quantity"] == 0.01
    assert order["market_type"] == MarketType.DERIVATIVES
    assert order["params"] == {"reduceOnly": True}
    done = store.get(short_pos.position_id)
    assert done.state == PositionState.COMPLETED
    assert done.close_order_id == "c1"
    assert done.profit == pytest.approx(20.0)
    assert done.duration_ms == 3_600_000
    assert done.close_price == 98000.0
    assert store.get(long_pos.position_id).state == PositionState.OPEN


def test_sell_signal_closes_long_with_profit():
    store = InMemoryPositionStore()
    p = store.add(position(OrderSide.BUY, cost=1000.0))
    gw = FakeGateway(fills=[{"order_id": "c1", "cost": 1010.0, "timestamp": OPENED_MS + 1000}])
    rec = PositionReconciler(store, creds(alice=("k", "s")), gw)
    [closed] = rec.reconcile(OrderSide.SELL, "BTCUSDC")
    assert closed.profit == pytest.approx(10.0)
    assert gw.orders[0]["side"] == OrderSide.SELL
    assert gw.orders[0]["params"] == {}
    assert store.find_open_by_symbol_and_side("BTCUSDC", OrderSide.BUY) == []
    assert store.get(p.position_id).closed_at == OPENED + timedelta(seconds=1)


def test_other_symbols_are_untouched():
    store = InMemoryPositionStore()
    store.add(position(OrderSide.SELL, symbol="ETHUSDC"))
    gw = FakeGateway()
    rec = PositionReconciler(store, creds(alice=("k", "s")), gw)
    assert rec.reconcile(OrderSide.BUY, "BTCUSDC") == []
    assert gw.orders == []


def test_insufficient_funds_leaves_position_open(caplog):
    store = CountingStore()
    p = store.add(position(OrderSide.BUY))
    gw = FakeGateway(fills=[InsufficientFundsError("Account has insufficient balance", -2010)])
    rec = PositionReconciler(store, creds(alice=("k", "s")), gw)

    with caplog.at_level(logging.ERROR, logger="signal_trader"):
        closed = rec.reconcile(OrderSide.SELL, "BTCUSDC")

    assert closed == []
    assert store.updates == 0
    assert store.get(p.position_id).state == PositionState.OPEN
    assert f"position={p.position_id}" in caplog.text
    assert "Insufficient funds" in caplog.text


def test_one_failure_does_not_stop_the_rest():
    store = InMemoryPositionStore()
    first = store.add(position(OrderSide.BUY, order_id="o1"))
    second = store.add(position(OrderSide.BUY, order_id="o2", owner="bob"))
    third = store.add(position(OrderSide.BUY, order_id="o3"))
    gw = FakeGateway(fills=[
        ExchangeUnavailableError("timeout"),
        AuthenticationError("Invalid API-key", -2015),
        {"order_id": "c3", "cost": 1001.0},
    ])
    rec = PositionReconciler(store, creds(alice=("k", "s"), bob=("k2", "s2")), gw)
    closed = rec.reconcile(OrderSide.SELL, "BTCUSDC")
    assert [p.position_id for p in closed] == [third.position_id]
    assert store.get(first.position_id).is_open
    assert store.get(second.position_id).is_open
    assert len(gw.orders) == 3


def test_unknown_owner_and_missing_keys_are_skipped():
    store = InMemoryPositionStore()
    store.add(position(OrderSide.BUY, owner="ghost", order_id="o1"))
    store.add(position(OrderSide.BUY, owner="nokeys", order_id="o2"))
    gw = FakeGateway()
    rec = PositionReconciler(store, creds(nokeys=("", "")), gw)
    assert rec.reconcile(OrderSide.SELL, "BTCUSDC") == []
    assert gw.orders == []
    assert len(store.find_open_by_symbol_and_side("BTCUSDC", OrderSide.BUY)) == 2


@pytest.mark.parametrize("filled", [0.0, None])
def test_zero_or_missing_fill_is_skipped(filled):
    store = InMemoryPositionStore()
    store.add(position(OrderSide.BUY, filled=filled))
    gw = FakeGateway()
    rec = PositionReconciler(store, creds(alice=("k", "s")), gw)
    assert rec.reconcile(OrderSide.SELL, "BTCUSDC") == []
    assert gw.orders == []


def test_store_failure_aborts_before_any_order():
    class BrokenStore(InMemoryPositionStore):
        def find_open_by_symbol_and_side(self, symbol, side):
            raise StoreError("ledger unavailable")

    gw = FakeGateway()
    rec = PositionReconciler(BrokenStore(), creds(alice=("k", "s")), gw)
    assert rec.reconcile(OrderSide.BUY, "BTCUSDC") == []
    assert gw.orders == []


def test_missing_cost_records_closure_without_profit(caplog):
    store = InMemoryPositionStore()
    p = store.add(position(OrderSide.BUY, cost=None))
    gw = FakeGateway(fills=[{"order_id": "c1", "cost": 1010.0}])
    rec = PositionReconciler(store, creds(alice=("k", "s")), gw)
    with caplog.at_level(logging.WARNING, logger="signal_trader"):
        [closed] = rec.reconcile(OrderSide.SELL, "BTCUSDC")
    assert closed.state == PositionState.COMPLETED
    assert closed.profit is None
    assert "Could not calculate profit" in caplog.text
    assert store.get(p.position_id).close_cost == 1010.0


def test_close_time_falls_back_to_clock():
    now = OPENED + timedelta(minutes=30)
    store = InMemoryPositionStore()
    store.add(position(OrderSide.SELL))
    gw = FakeGateway(fills=[{"order_id": "c1", "cost": 990.0}])
    rec = PositionReconciler(store, creds(alice=("k", "s")), gw, clock=lambda: now)
    [closed] = rec.reconcile(OrderSide.BUY, "BTCUSDC")
    assert closed.closed_at == now
    assert closed.duration_ms == 30 * 60 * 1000


def test_completed_position_is_not_closed_twice():
    store = InMemoryPositionStore()
    store.add(position(OrderSide.BUY))
    gw = FakeGateway(fills=[{"order_id": "c1", "cost": 1010.0}, {"order_id": "c2", "cost": 1020.0}])
    rec = PositionReconciler(store, creds(alice=("k", "s")), gw)
    assert len(rec.reconcile(OrderSide.SELL, "BTCUSDC")) == 1
    assert rec.reconcile(OrderSide.SELL, "BTCUSDC") == []
    assert len(gw.orders) == 1


def test_ledger_write_failure_does_not_close_twice():
    class FlakyStore(InMemoryPositionStore):
        fail = False

        def _persist(self):
            if self.fail:
                raise StoreError("disk full")

    store = FlakyStore()
    store.add(position(OrderSide.BUY))
    gw = FakeGateway(fills=[{"order_id": "c1", "cost": 1010.0}, {"order_id": "c2", "cost": 1010.0}])
    rec = PositionReconciler(store, creds(alice=("k", "s")), gw)

    store.fail = True
    rec.reconcile(OrderSide.SELL, "BTCUSDC")
    store.fail = False
    rec.reconcile(OrderSide.SELL, "BTCUSDC")

    assert [(o["side"], o["quantity"]) for o in gw.orders] == [(OrderSide.SELL, 0.01)]


def test_rejected_closure_update_is_never_retried(caplog):
    class RejectingStore(InMemoryPositionStore):
        def update_closure(self, position_id, closure):
            raise StoreError("constraint violation")

    store = RejectingStore()
    p = store.add(position(OrderSide.BUY))
    gw = FakeGateway(fills=[{"order_id": "c1", "cost": 1010.0}, {"order_id": "c2", "cost": 1010.0}])
    rec = PositionReconciler(store, creds(alice=("k", "s")), gw)

    with caplog.at_level(logging.ERROR, logger="signal_trader"):
        assert rec.reconcile(OrderSide.SELL, "BTCUSDC") == []
        assert rec.reconcile(OrderSide.SELL, "BTCUSDC") == []

    assert len(gw.orders) == 1
    assert store.get(p.position_id).is_open
    assert "c1" in caplog.text
