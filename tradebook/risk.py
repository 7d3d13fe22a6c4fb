"""
risk.py
-------

Position sizing for a single quote-currency instrument.

    risk_amount    = balance * risk_percentage / 100
    price_distance = |entry_price - stop_loss|
    position_size  = risk_amount / (price_distance * pip_value)

``pip_value`` converts one unit of price distance on one unit of position
into account currency. It is configured (``TJ_PIP_VALUE``), never derived.
"""

from dataclasses import dataclass, asdict
from typing import Optional

from .models import RiskCalculation

DEFAULT_PIP_VALUE = 1.0


@dataclass
class PositionSize:
    """Result of a position sizing calculation."""
    risk_amount: float
    price_distance: float
    position_size: float
    reward_amount: Optional[float] = None
    risk_reward_ratio: Optional[float] = None

    def to_dict(self):
        return asdict(self)

    def to_risk_calculation(
        self,
        owner_id: str,
        symbol: str,
        account_balance: float,
        risk_percentage: float,
        entry_price: float,
        stop_loss: float,
        take_profit: Optional[float] = None,
    ) -> RiskCalculation:
        """Package this result with its inputs so it can be saved to history."""
        return RiskCalculation(
            owner_id=owner_id,
            symbol=symbol.strip().upper(),
            account_balance=account_balance,
            risk_percentage=risk_percentage,
            entry_price=entry_price,
            stop_loss=stop_loss,
            take_profit=take_profit,
            position_size=self.position_size,
            risk_amount=self.risk_amount,
            reward_amount=self.reward_amount,
            risk_reward_ratio=self.risk_reward_ratio,
        )


def calculate_position_size(
    account_balance: float,
    risk_percentage: float,
    entry_price: float,
    stop_loss: float,
    take_profit: Optional[float] = None,
    pip_value: float = DEFAULT_PIP_VALUE,
) -> PositionSize:
    """
    Size a position so that hitting the stop loses ``risk_percentage`` of
    the balance.

    Args:
        account_balance: Account balance in account currency
        risk_percentage: Percent of the balance to risk (2 means 2%)
        entry_price: Planned entry price
        stop_loss: Stop-loss price
        take_profit: Optional take-profit price; enables reward and R:R
        pip_value: Account-currency value of one price unit per position unit

    Returns:
        PositionSize. A zero price distance, pip value or risk amount gives
        zeros instead of raising.

    Example:
        >>> calculate_position_size(10_000, 2, 100.0, 95.0).position_size
        40.0
    """
    risk_amount = account_balance * risk_percentage / 100
    price_distance = abs(entry_price - stop_loss)

    risk_per_unit = price_distance * pip_value
    position_size = risk_amount / risk_per_unit if risk_per_unit > 0 else 0.0

    reward_amount = None
    risk_reward_ratio = None
    if take_profit is not None:
        reward_amount = position_size * abs(take_profit - entry_price) * pip_value
        risk_reward_ratio = reward_amount / risk_amount if risk_amount > 0 else 0.0

    return PositionSize(
        risk_amount=risk_amount,
        price_distance=price_distance,
        position_size=position_size,
        reward_amount=reward_amount,
        risk_reward_ratio=risk_reward_ratio,
    )
