"""
Core data types for signals, grades, markets, orders, positions and suggestions.
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class OrderSide(str, Enum):
    BUY = "buy"
    SELL = "sell"

    def invert(self) -> "OrderSide":
        return OrderSide.SELL if self is OrderSide.BUY else OrderSide.BUY


class MarketType(str, Enum):
    SPOT = "spot"
    DERIVATIVES = "derivatives"


class PositionState(str, Enum):
    OPEN = "OPEN"
    COMPLETED = "COMPLETED"


class TradingAction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


@dataclass
class TradingSignal:
    """One row of the signal feed: -1 sell, 0 hold, 1 buy."""
    asset: str
    value: int
    date: str = ""


@dataclass
class TraderGrade:
    """Three 0-100 grades for one asset."""
    asset: str
    name: str
    ta_grade: Optional[float]
    quant_grade: Optional[float]
    tm_grade: Optional[float]
    date: str = ""


@dataclass
class Credentials:
    api_key: str
    api_secret: str

    def __repr__(self) -> str:
        return "Credentials(api_key=***, api_secret=***)"


@dataclass
class MinMax:
    min: Optional[float] = None
    max: Optional[float] = None


@dataclass
class MarketPrecision:
    """Decimal places for amount, price and cost."""
    amount: Optional[int] = None
    price: Optional[int] = None
    cost: Optional[int] = None


@dataclass
class MarketLimits:
    amount: Optional[MinMax] = None
    price: Optional[MinMax] = None
    cost: Optional[MinMax] = None
    market: Optional[MinMax] = None


@dataclass
class MarketInfo:
    """Tradable market with the precision and limits an order must respect."""
    symbol: str
    market_type: MarketType
    base_asset: str
    quote_asset: str
    precision: MarketPrecision = field(default_factory=MarketPrecision)
    limits: MarketLimits = field(default_factory=MarketLimits)
    contract_size: Optional[float] = None

    def to_dict(self) -> dict:
        d = asdict(self)
        d["market_type"] = self.market_type.value
        return d


@dataclass
class OrderResult:
    """Executed market order as reported by the exchange."""
    order_id: str
    symbol: str
    side: OrderSide
    market_type: MarketType
    timestamp: Optional[int] = None  # ms since epoch
    average_price: Optional[float] = None
    cost: Optional[float] = None
    filled_quantity: Optional[float] = None
    order_type: str = "market"
    fee_cost: Optional[float] = None
    fee_currency: Optional[str] = None
    raw: dict = field(default_factory=dict)


@dataclass
class Position:
    """Ledger entry for an executed order and its eventual closure."""
    owner_id: str
    order_id: str
    opened_at: datetime
    symbol: str
    market_type: MarketType
    side: OrderSide
    quantity: float
    price: Optional[float] = None
    filled: Optional[float] = None
    cost: Optional[float] = None
    order_type: str = "market"
    fee_cost: Optional[float] = None
    fee_currency: Optional[str] = None
    state: PositionState = PositionState.OPEN
    position_id: Optional[int] = None
    close_order_id: Optional[str] = None
    closed_at: Optional[datetime] = None
    close_price: Optional[float] = None
    close_cost: Optional[float] = None
    profit: Optional[float] = None
    duration_ms: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.state == PositionState.OPEN

    @classmethod
    def from_order(cls, owner_id: str, order: OrderResult) -> "Position":
        """Open a ledger entry for an order that has just executed."""
        if order.timestamp is not None:
            opened_at = datetime.fromtimestamp(order.timestamp / 1000, tz=timezone.utc)
        else:
            opened_at = datetime.now(timezone.utc)
        return cls(
            owner_id=owner_id,
            order_id=order.order_id,
            opened_at=opened_at,
            symbol=order.symbol,
            market_type=order.market_type,
            side=order.side,
            quantity=order.filled_quantity or 0.0,
            price=order.average_price,
            filled=order.filled_quantity,
            cost=order.cost,
            order_type=order.order_type,
            fee_cost=order.fee_cost,
            fee_currency=order.fee_currency,
        )

    def to_dict(self) -> dict:
        d = asdict(self)
        d["market_type"] = self.market_type.value
        d["side"] = self.side.value
        d["state"] = self.state.value
        d["opened_at"] = self.opened_at.isoformat()
        d["closed_at"] = self.closed_at.isoformat() if self.closed_at else None
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "Position":
        d = dict(data)
        d["market_type"] = MarketType(d["market_type"])
        d["side"] = OrderSide(d["side"])
        d["state"] = PositionState(d.get("state", PositionState.OPEN.value))
        d["opened_at"] = datetime.fromisoformat(d["opened_at"])
        if d.get("closed_at"):
            d["closed_at"] = datetime.fromisoformat(d["closed_at"])
        return cls(**d)


@dataclass
class ClosureUpdate:
    """Fields written when a position is closed."""
    close_order_id: str
    closed_at: datetime
    close_price: Optional[float] = None
    close_cost: Optional[float] = None
    profit: Optional[float] = None
    duration_ms: Optional[int] = None


@dataclass
class SuggestionGrades:
    ta_grade: float
    quant_grade: float
    tm_grade: float


@dataclass
class Suggestion:
    """Computed, non-persisted recommendation for one asset."""
    asset_id: str
    name: str
    spot_market: Optional[str]
    derivatives_market: Optional[str]
    spot_market_info: Optional[MarketInfo]
    derivatives_market_info: Optional[MarketInfo]
    action: TradingAction
    confidence: float
    grades: SuggestionGrades

    def to_dict(self) -> dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "name": self.name,
            "spot_market": self.spot_market,
            "derivatives_market": self.derivatives_market,
            "spot_market_info": self.spot_market_info.to_dict() if self.spot_market_info else None,
            "derivatives_market_info": (
                self.derivatives_market_info.to_dict() if self.derivatives_market_info else None
            ),
            "action": self.action.value,
            "confidence": self.confidence,
            "grades": asdict(self.grades),
        }
