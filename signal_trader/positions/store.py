"""
Position ledger. Append-only: entries are added OPEN and may move once to COMPLETED.
"""

from __future__ import annotations
import dataclasses
import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from signal_trader.core.errors import PositionStateError, StoreError
from signal_trader.core.types import ClosureUpdate, OrderSide, Position, PositionState

logger = logging.getLogger("signal_trader.positions.store")


class PositionStore(ABC):
    @abstractmethod
    def add(self, position: Position) -> Position:
        """Insert an OPEN position; an already-known order_id returns the existing entry."""
        pass

    @abstractmethod
    def get(self, position_id: int) -> Optional[Position]:
        pass

    @abstractmethod
    def find_open_by_symbol_and_side(self, symbol: str, side: OrderSide) -> List[Position]:
        pass

    @abstractmethod
    def find_by_owner(self, owner_id: str, limit: int = 50) -> List[Position]:
        """Newest first."""
        pass

    @abstractmethod
    def update_closure(self, position_id: int, closure: ClosureUpdate) -> Position:
        """Mark OPEN -> COMPLETED with the closing fields. Raises PositionStateError otherwise."""
        pass


class InMemoryPositionStore(PositionStore):
    """Thread-safe in-process ledger. Callers get copies, never the stored objects."""

    def __init__(self):
        self._positions: dict[int, Position] = {}
        self._next_id = 1
        self._lock = threading.RLock()

    def add(self, position: Position) -> Position:
        with self._lock:
            for existing in self._positions.values():
                if existing.order_id == position.order_id:
                    logger.warning("Duplicate order id %s for owner %s, keeping existing entry",
                                   position.order_id, position.owner_id)
                    return dataclasses.replace(existing)
            stored = dataclasses.replace(position, position_id=self._next_id, state=PositionState.OPEN)
            self._positions[stored.position_id] = stored
            try:
                self._persist()
            except StoreError:
                del self._positions[stored.position_id]
                raise
            self._next_id += 1
            logger.info("Position %d added: %s %s %s filled=%s", stored.position_id, stored.market_type.value,
                        stored.side.value, stored.symbol, stored.filled)
            return dataclasses.replace(stored)

    def get(self, position_id: int) -> Optional[Position]:
        with self._lock:
            p = self._positions.get(position_id)
            return dataclasses.replace(p) if p else None

    def find_open_by_symbol_and_side(self, symbol: str, side: OrderSide) -> List[Position]:
        with self._lock:
            return [
                dataclasses.replace(p)
                for p in sorted(self._positions.values(), key=lambda p: p.position_id)
                if p.is_open and p.symbol == symbol and p.side == side
            ]

    def find_by_owner(self, owner_id: str, limit: int = 50) -> List[Position]:
        with self._lock:
            owned = [p for p in self._positions.values() if p.owner_id == owner_id]
            owned.sort(key=lambda p: p.opened_at, reverse=True)
            return [dataclasses.replace(p) for p in owned[:limit]]

    def update_closure(self, position_id: int, closure: ClosureUpdate) -> Position:
        with self._lock:
            p = self._positions.get(position_id)
            if p is None:
                raise StoreError(f"Position {position_id} not found")
            if not p.is_open:
                raise PositionStateError(f"Position {position_id} is {p.state.value}, only OPEN positions can close")
            if any(o.close_order_id == closure.close_order_id for o in self._positions.values()):
                raise StoreError(f"Close order id {closure.close_order_id} already recorded")
            updated = dataclasses.replace(
                p,
                state=PositionState.COMPLETED,
                close_order_id=closure.close_order_id,
                closed_at=closure.closed_at,
                close_price=closure.close_price,
                close_cost=closure.close_cost,
                profit=closure.profit,
                duration_ms=closure.duration_ms,
            )
            self._positions[position_id] = updated
            # the closing order already executed: the closure stays in memory even if the write fails
            try:
                self._persist()
            except StoreError as e:
                logger.error("Position %d closed by order %s but the ledger write failed, kept in memory only: %s",
                             position_id, closure.close_order_id, e)
            return dataclasses.replace(updated)

    def _persist(self) -> None:
        pass


class JsonFilePositionStore(InMemoryPositionStore):
    """In-memory ledger mirrored to a JSON file after every write."""

    def __init__(self, path: Path):
        super().__init__()
        self.path = Path(path)
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                rows = json.load(f)
            positions = [Position.from_dict(r) for r in rows]
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise StoreError(f"Cannot read position ledger {self.path}: {e}") from e
        self._positions = {p.position_id: p for p in positions}
        self._next_id = max(self._positions, default=0) + 1
        logger.info("Loaded %d positions from %s", len(positions), self.path)

    def _persist(self) -> None:
        rows = [p.to_dict() for p in sorted(self._positions.values(), key=lambda p: p.position_id)]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(rows, f, indent=2)
            os.replace(tmp, self.path)
        except OSError as e:
            raise StoreError(f"Cannot write position ledger {self.path}: {e}") from e
