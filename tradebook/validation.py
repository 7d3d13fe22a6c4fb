"""
validation.py
-------------

Input validation for trades entered through the add/edit forms or the JSON
API. ``validate_trade`` never raises: every problem, including a missing
field, is returned as a human-readable message. Messages come back in a
fixed priority order so a caller that only has room for one can show the
first.
"""

import math
from typing import List, Optional

from .models import Direction, TradeDraft, TradeStatus

MAX_ASSET_LENGTH = 50

ASSET_REQUIRED = "Asset is required"
ASSET_TOO_LONG = f"Asset must be at most {MAX_ASSET_LENGTH} characters"
DIRECTION_REQUIRED = "Direction is required"
DIRECTION_INVALID = "Direction must be BUY or SELL"
ENTRY_PRICE_INVALID = "Entry price must be greater than 0"
QUANTITY_INVALID = "Quantity must be greater than 0"
FEES_NEGATIVE = "Fees cannot be negative"
STOP_LOSS_INVALID = "Stop loss must be greater than 0"
STOP_LOSS_BUY_SIDE = "Stop loss must be below the entry price for a BUY trade"
STOP_LOSS_SELL_SIDE = "Stop loss must be above the entry price for a SELL trade"
TAKE_PROFIT_INVALID = "Take profit must be greater than 0"
TAKE_PROFIT_BUY_SIDE = "Take profit must be above the entry price for a BUY trade"
TAKE_PROFIT_SELL_SIDE = "Take profit must be below the entry price for a SELL trade"
STATUS_INVALID = "Status must be open, closed or cancelled"
PROFIT_LOSS_NOT_CLOSED = "Profit/loss can only be set on a closed trade"
PROFIT_LOSS_INVALID = "Profit/loss must be a number"

_DIRECTIONS = {d.value for d in Direction}
_STATUSES = {s.value for s in TradeStatus}


def _finite(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value)


def _positive(value: Optional[float]) -> bool:
    return _finite(value) and value > 0


def validate_trade(draft: TradeDraft) -> List[str]:
    """Validate a (possibly partial) trade.

    Parameters
    ----------
    draft: TradeDraft
        The candidate trade. Any field may be None.

    Returns
    -------
    List[str]
        Validation failures in priority order; empty when the draft is valid.
    """
    errors: List[str] = []

    asset = (draft.asset or "").strip()
    if not asset:
        errors.append(ASSET_REQUIRED)
    elif len(asset) > MAX_ASSET_LENGTH:
        errors.append(ASSET_TOO_LONG)

    direction: Optional[Direction] = None
    if not draft.direction or not draft.direction.strip():
        errors.append(DIRECTION_REQUIRED)
    elif draft.direction.strip().upper() not in _DIRECTIONS:
        errors.append(DIRECTION_INVALID)
    else:
        direction = Direction(draft.direction.strip().upper())

    entry_ok = _positive(draft.entry_price)
    if not entry_ok:
        errors.append(ENTRY_PRICE_INVALID)

    if not _positive(draft.quantity):
        errors.append(QUANTITY_INVALID)

    if draft.fees is not None and not (_finite(draft.fees) and draft.fees >= 0):
        errors.append(FEES_NEGATIVE)

    # side checks only make sense against a usable entry price and direction
    can_compare = entry_ok and direction is not None
    entry = draft.entry_price

    if draft.stop_loss is not None:
        if not _positive(draft.stop_loss):
            errors.append(STOP_LOSS_INVALID)
        elif can_compare:
            if direction is Direction.BUY and not draft.stop_loss < entry:
                errors.append(STOP_LOSS_BUY_SIDE)
            elif direction is Direction.SELL and not draft.stop_loss > entry:
                errors.append(STOP_LOSS_SELL_SIDE)

    if draft.take_profit is not None:
        if not _positive(draft.take_profit):
            errors.append(TAKE_PROFIT_INVALID)
        elif can_compare:
            if direction is Direction.BUY and not draft.take_profit > entry:
                errors.append(TAKE_PROFIT_BUY_SIDE)
            elif direction is Direction.SELL and not draft.take_profit < entry:
                errors.append(TAKE_PROFIT_SELL_SIDE)

    status = (draft.status or "").strip().lower()
    if status and status not in _STATUSES:
        errors.append(STATUS_INVALID)
    elif draft.profit_loss is not None:
        if status != TradeStatus.CLOSED.value:
            errors.append(PROFIT_LOSS_NOT_CLOSED)
        elif not _finite(draft.profit_loss):
            errors.append(PROFIT_LOSS_INVALID)

    return errors


def is_valid(draft: TradeDraft) -> bool:
    return not validate_trade(draft)
