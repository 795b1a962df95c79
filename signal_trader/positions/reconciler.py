"""
Position reconciler: when a directional signal arrives, close the OPEN positions on
the opposite side of the same symbol with a market order and record profit and
duration.

Positions are handled one at a time. A failure on one position is logged and the
loop moves on; that position stays OPEN and is retried on the next opposing signal.
A position whose closing order executed is never sent a second closing order.
"""

from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Union

from signal_trader.core.errors import (
    AuthenticationError,
    ExchangeError,
    ExchangeUnavailableError,
    InsufficientFundsError,
    InvalidOrderError,
    StoreError,
)
from signal_trader.core.types import (
    ClosureUpdate,
    MarketType,
    OrderResult,
    OrderSide,
    Position,
    TradingSignal,
)
from signal_trader.execution.base import ExchangeGateway
from signal_trader.positions.credentials import CredentialStore
from signal_trader.positions.store import PositionStore

logger = logging.getLogger("signal_trader.positions.reconciler")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def compute_profit(side: OrderSide, original_cost: Optional[float], close_cost: Optional[float]) -> Optional[float]:
    """
    BUY position: proceeds of the closing sell minus what the buy cost.
    SELL position: proceeds of the original sell minus what the closing buy cost.
    None when either leg's cost is unknown. Fees are not deducted.
    """
    if original_cost is None or close_cost is None:
        return None
    if side == OrderSide.BUY:
        return close_cost - original_cost
    return original_cost - close_cost


def closing_params(market_type: MarketType) -> dict:
    """Derivatives closes must not open an opposite position."""
    if market_type == MarketType.DERIVATIVES:
        return {"reduceOnly": True}
    return {}


class PositionReconciler:
    def __init__(
        self,
        store: PositionStore,
        credentials: CredentialStore,
        gateway: ExchangeGateway,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._store = store
        self._credentials = credentials
        self._gateway = gateway
        self._clock = clock
        # position ids whose closing order executed but whose closure could not be recorded
        self._unrecorded: dict[int, str] = {}

    def reconcile(
        self,
        signal_side: Union[OrderSide, str],
        symbol: str,
        signal: Optional[TradingSignal] = None,
    ) -> List[Position]:
        """Close every OPEN position on `symbol` opposite to `signal_side`. Returns the closed positions."""
        side = OrderSide(signal_side)
        opposite = side.invert()
        tag = f"[{side.value.upper()} signal - {symbol}]"
        logger.info("%s Checking for open %s positions to close. signal=%s", tag, opposite.value, signal)

        try:
            to_close = self._store.find_open_by_symbol_and_side(symbol, opposite)
        except Exception as e:
            logger.error("%s Error fetching open %s positions, aborting: %s", tag, opposite.value, e)
            return []

        if not to_close:
            logger.info("%s No open %s positions found to close.", tag, opposite.value)
            return []

        logger.info("%s Found %d open %s position(s) to close.", tag, len(to_close), opposite.value)
        closed: List[Position] = []
        for position in to_close:
            if position.position_id in self._unrecorded:
                logger.error("%s Position %s already closed by order %s but not recorded in the ledger. Skipping.",
                             tag, position.position_id, self._unrecorded[position.position_id])
                continue
            result = self._close(position)
            if result is not None:
                closed.append(result)
        logger.info("%s Closed %d of %d position(s).", tag, len(closed), len(to_close))
        return closed

    def _close(self, position: Position) -> Optional[Position]:
        pid = position.position_id
        logger.info("Attempting to close %s position %s on %s", position.side.value, pid, position.symbol)

        credentials = self._credentials.find_credentials_by_owner(position.owner_id)
        if credentials is None:
            logger.error("Owner %s not found for position %s. Skipping closure.", position.owner_id, pid)
            return None
        if not credentials.api_key or not credentials.api_secret:
            logger.error("Missing API key/secret for owner %s, position %s. Skipping closure.",
                         position.owner_id, pid)
            return None

        closing_side = position.side.invert()
        quantity = position.filled
        if quantity is None or quantity <= 0:
            logger.error("Invalid or zero filled quantity %s for position %s. Skipping closure.", quantity, pid)
            return None

        params = closing_params(position.market_type)
        context = (f"position={pid} owner={position.owner_id} symbol={position.symbol} "
                   f"market={position.market_type.value} side={closing_side.value} qty={quantity}")
        order = None
        try:
            logger.info("Placing closing order: %s params=%s", context, params)
            order = self._gateway.place_market_order(
                credentials, position.symbol, closing_side, quantity, position.market_type, params,
            )
            logger.info("Closing order %s placed for position %s", order.order_id, pid)
        except InsufficientFundsError as e:
            logger.error("Insufficient funds to close position: %s error=%s", context, e)
        except InvalidOrderError as e:
            logger.error("Invalid order parameters for closing position: %s error=%s", context, e)
        except AuthenticationError as e:
            logger.error("Authentication failed, check API keys: %s error=%s", context, e)
        except ExchangeUnavailableError as e:
            logger.error("Network or exchange error during closure: %s error=%s", context, e)
        except ExchangeError as e:
            logger.error("Exchange rejected closing order: %s error=%s", context, e)
        except Exception as e:
            logger.exception("Failed to place closing order: %s error=%s", context, e)
        if order is None:
            return None

        try:
            return self._record_closure(position, order)
        except StoreError as e:
            self._unrecorded[pid] = order.order_id
            logger.error("Closing order %s executed but position %s could not be marked closed: %s error=%s",
                         order.order_id, pid, context, e)
        return None

    def _record_closure(self, position: Position, order: OrderResult) -> Position:
        if order.timestamp is not None:
            closed_at = datetime.fromtimestamp(order.timestamp / 1000, tz=timezone.utc)
        else:
            closed_at = self._clock()
        duration_ms = int((closed_at - _as_utc(position.opened_at)).total_seconds() * 1000)

        profit = compute_profit(position.side, position.cost, order.cost)
        if profit is None:
            logger.warning("Could not calculate profit for position %s: original cost=%s close cost=%s",
                           position.position_id, position.cost, order.cost)
        else:
            logger.info("Position %s profit %.4f", position.position_id, profit)

        updated = self._store.update_closure(position.position_id, ClosureUpdate(
            close_order_id=order.order_id,
            closed_at=closed_at,
            close_price=order.average_price,
            close_cost=order.cost,
            profit=profit,
            duration_ms=duration_ms,
        ))
        logger.info("Position %s marked %s", position.position_id, updated.state.value)
        return updated
