"""
models.py
---------

Defines the data model for the trading journal. A trade record is the only
entity that gets persisted; everything else (portfolio statistics, position
sizing results) is derived on demand. Keeping the model in its own module
lets the validation engine, the analytics functions and both storage
backends share one definition.
"""

from dataclasses import dataclass, field, replace, asdict
from datetime import datetime, timezone
from enum import Enum
import math
from typing import Any, Dict, Mapping, Optional


class Direction(str, Enum):
    """Side of a trade. Determines the sign of every price comparison."""
    BUY = "BUY"
    SELL = "SELL"


class TradeStatus(str, Enum):
    """Lifecycle state of a trade. ``closed`` and ``cancelled`` are terminal."""
    OPEN = "open"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class InvalidTransition(Exception):
    """Raised when a trade is moved out of a terminal status."""


_ALLOWED_TRANSITIONS = {
    TradeStatus.OPEN: {TradeStatus.OPEN, TradeStatus.CLOSED, TradeStatus.CANCELLED},
    TradeStatus.CLOSED: {TradeStatus.CLOSED},
    TradeStatus.CANCELLED: {TradeStatus.CANCELLED},
}


def check_transition(current: TradeStatus, target: TradeStatus) -> None:
    """Raise InvalidTransition unless ``current`` may become ``target``."""
    if target not in _ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(f"cannot move a {current.value} trade to {target.value}")


# -------------------------
# small parse helpers
# -------------------------
def _to_float(x: Any) -> Optional[float]:
    """Blank -> None, unparseable or non-finite -> nan (left for validation to report)."""
    if x is None:
        return None
    if isinstance(x, str):
        x = x.strip().replace(",", "")
        if not x:
            return None
    try:
        value = float(x)
    except (TypeError, ValueError):
        return math.nan
    # inf and overflow ("1e400") are as unusable as garbage
    return value if math.isfinite(value) else math.nan


def _to_str(x: Any) -> Optional[str]:
    if x is None:
        return None
    s = str(x).strip()
    return s or None


def _parse_dt(s: Any) -> Optional[datetime]:
    if s is None or s == "":
        return None
    if isinstance(s, datetime):
        return s
    s = str(s)
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return datetime.fromisoformat(s)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TradeRecord:
    """Represents a single trade entry in the journal.

    Attributes
    ----------
    id: Optional[str]
        Opaque identifier assigned by the store (None before insertion).
    owner_id: str
        Identifier of the owning user. Every read and write is scoped by it.
    asset: str
        Symbol of the traded instrument (e.g. 'XAUUSD', 'AAPL').
    direction: Direction
        BUY or SELL.
    entry_price: float
        Price at which the position was opened.
    quantity: float
        Units traded; may be fractional.
    stop_loss, take_profit: Optional[float]
        Planned exit levels. Must sit on the correct side of the entry.
    fees: float
        Fees charged for the trade, counted regardless of status.
    status: TradeStatus
        open, closed or cancelled.
    profit_loss: Optional[float]
        Realised P&L net of fees; only set once the trade is closed.
    notes: str
        Free text.
    created_at, updated_at: Optional[datetime]
        Maintained by the store.
    """

    id: Optional[str]
    owner_id: str
    asset: str
    direction: Direction
    entry_price: float
    quantity: float
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    fees: float = 0.0
    status: TradeStatus = TradeStatus.OPEN
    profit_loss: Optional[float] = None
    notes: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.status is TradeStatus.OPEN

    @property
    def is_closed(self) -> bool:
        return self.status is TradeStatus.CLOSED

    # ----- lifecycle -----
    def close(self, profit_loss: float) -> "TradeRecord":
        """Return a closed copy of this trade carrying the realised P&L."""
        if not self.is_open:
            raise InvalidTransition(f"cannot close a {self.status.value} trade")
        return replace(self, status=TradeStatus.CLOSED, profit_loss=float(profit_loss))

    def cancel(self) -> "TradeRecord":
        """Return a cancelled copy of this trade."""
        if not self.is_open:
            raise InvalidTransition(f"cannot cancel a {self.status.value} trade")
        return replace(self, status=TradeStatus.CANCELLED, profit_loss=None)

    # ----- rows -----
    def to_row(self) -> Dict[str, Any]:
        """Flat dict with plain values, suitable for SQL parameters, CSV and JSON."""
        row = asdict(self)
        row["direction"] = self.direction.value
        row["status"] = self.status.value
        row["created_at"] = self.created_at.isoformat() if self.created_at else None
        row["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return row

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TradeRecord":
        return cls(
            id=str(row["id"]) if row.get("id") is not None else None,
            owner_id=str(row["owner_id"]),
            asset=str(row["asset"]),
            direction=Direction(str(row["direction"]).upper()),
            entry_price=float(row["entry_price"]),
            quantity=float(row["quantity"]),
            stop_loss=float(row["stop_loss"]) if row.get("stop_loss") is not None else None,
            take_profit=float(row["take_profit"]) if row.get("take_profit") is not None else None,
            fees=float(row.get("fees") or 0.0),
            status=TradeStatus(str(row["status"]).lower()),
            profit_loss=float(row["profit_loss"]) if row.get("profit_loss") is not None else None,
            notes=row.get("notes") or "",
            created_at=_parse_dt(row.get("created_at")),
            updated_at=_parse_dt(row.get("updated_at")),
        )


@dataclass
class TradeDraft:
    """A partially filled trade, as typed into the add/edit form.

    Every field is optional so that missing input is something the
    validation engine reports rather than something that fails to parse.
    ``direction`` and ``status`` stay raw strings for the same reason.
    """

    asset: Optional[str] = None
    direction: Optional[str] = None
    entry_price: Optional[float] = None
    quantity: Optional[float] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    fees: Optional[float] = None
    status: Optional[str] = None
    profit_loss: Optional[float] = None
    notes: Optional[str] = None

    @classmethod
    def from_form(cls, data: Mapping[str, Any]) -> "TradeDraft":
        """Build a draft from request form or JSON data."""
        return cls(
            asset=_to_str(data.get("asset")),
            direction=_to_str(data.get("direction")),
            entry_price=_to_float(data.get("entry_price")),
            quantity=_to_float(data.get("quantity")),
            stop_loss=_to_float(data.get("stop_loss")),
            take_profit=_to_float(data.get("take_profit")),
            fees=_to_float(data.get("fees")),
            status=_to_str(data.get("status")),
            profit_loss=_to_float(data.get("profit_loss")),
            notes=data.get("notes") or None,
        )

    @classmethod
    def from_record(cls, record: TradeRecord) -> "TradeDraft":
        return cls(
            asset=record.asset,
            direction=record.direction.value,
            entry_price=record.entry_price,
            quantity=record.quantity,
            stop_loss=record.stop_loss,
            take_profit=record.take_profit,
            fees=record.fees,
            status=record.status.value,
            profit_loss=record.profit_loss,
            notes=record.notes,
        )

    def to_record(self, owner_id: str, trade_id: Optional[str] = None) -> TradeRecord:
        """Convert a draft that passed validation into a TradeRecord."""
        status = TradeStatus(self.status.lower()) if self.status else TradeStatus.OPEN
        return TradeRecord(
            id=trade_id,
            owner_id=owner_id,
            asset=self.asset.strip().upper(),
            direction=Direction(self.direction.upper()),
            entry_price=float(self.entry_price),
            quantity=float(self.quantity),
            stop_loss=self.stop_loss,
            take_profit=self.take_profit,
            fees=self.fees or 0.0,
            status=status,
            profit_loss=self.profit_loss if status is TradeStatus.CLOSED else None,
            notes=self.notes or "",
        )


@dataclass
class PortfolioStats:
    """Aggregate performance over a snapshot of trades. Never persisted."""

    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    open_trades: int = 0
    cancelled_trades: int = 0
    win_rate: float = 0.0
    gross_profit: float = 0.0
    gross_loss: float = 0.0
    net_profit: float = 0.0
    average_win: float = 0.0
    average_loss: float = 0.0
    largest_win: float = 0.0
    largest_loss: float = 0.0
    profit_factor: float = 0.0
    risk_reward_ratio: float = 0.0
    expectancy: float = 0.0
    total_fees: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe dict; an unbounded profit factor becomes the string 'Infinity'."""
        out = asdict(self)
        if math.isinf(self.profit_factor):
            out["profit_factor"] = "Infinity"
        return out


@dataclass
class RiskCalculation:
    """A saved run of the position-sizing calculator."""

    owner_id: str
    symbol: str
    account_balance: float
    risk_percentage: float
    entry_price: float
    stop_loss: float
    position_size: float
    risk_amount: float
    take_profit: Optional[float] = None
    reward_amount: Optional[float] = None
    risk_reward_ratio: Optional[float] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = field(default=None)

    def to_row(self) -> Dict[str, Any]:
        row = asdict(self)
        row["created_at"] = self.created_at.isoformat() if self.created_at else None
        return row

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "RiskCalculation":
        def opt(key: str) -> Optional[float]:
            return float(row[key]) if row.get(key) is not None else None

        return cls(
            id=str(row["id"]) if row.get("id") is not None else None,
            owner_id=str(row["owner_id"]),
            symbol=str(row["symbol"]),
            account_balance=float(row["account_balance"]),
            risk_percentage=float(row["risk_percentage"]),
            entry_price=float(row["entry_price"]),
            stop_loss=float(row["stop_loss"]),
            position_size=float(row["position_size"]),
            risk_amount=float(row["risk_amount"]),
            take_profit=opt("take_profit"),
            reward_amount=opt("reward_amount"),
            risk_reward_ratio=opt("risk_reward_ratio"),
            created_at=_parse_dt(row.get("created_at")),
        )
