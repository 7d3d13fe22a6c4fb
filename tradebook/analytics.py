"""
analytics.py
-------------

This module contains functions to compute performance metrics from a list
of TradeRecord objects. Splitting analytics into its own module makes it
easy to reuse these functions in different contexts (Flask views, the JSON
API, the scripted assistant) without coupling them to UI or storage
concerns. Nothing here performs I/O or mutates its input.
"""

import math
from typing import Iterable, List, Sequence

import pandas as pd

from .models import Direction, PortfolioStats, TradeRecord, TradeStatus


def realized_pnl(
    direction: Direction,
    entry_price: float,
    exit_price: float,
    quantity: float,
    fees: float = 0.0,
) -> float:
    """Compute profit or loss for a position closed at ``exit_price``.

    For BUY trades, PnL = (exit_price - entry_price) * quantity - fees.
    For SELL trades, PnL = (entry_price - exit_price) * quantity - fees.
    """
    if direction is Direction.BUY:
        diff = exit_price - entry_price
    else:
        diff = entry_price - exit_price
    return diff * quantity - (fees or 0.0)


def _pnl(trade: TradeRecord) -> float:
    return trade.profit_loss if trade.profit_loss is not None else 0.0


def compute_portfolio_stats(trades: Sequence[TradeRecord]) -> PortfolioStats:
    """Compute performance statistics for the given trades.

    Parameters
    ----------
    trades: Sequence[TradeRecord]
        Snapshot of trades. Only closed trades contribute to P&L figures;
        fees are summed over every trade whatever its status.

    Returns
    -------
    PortfolioStats
        Every ratio falls back to 0 when its denominator is empty, except
        ``profit_factor`` which is ``math.inf`` when there are profits and
        no losses.
    """
    # status is the partition key, not the presence of profit_loss
    closed = [t for t in trades if t.status is TradeStatus.CLOSED]
    total_fees = sum(t.fees or 0.0 for t in trades)
    open_trades = sum(1 for t in trades if t.status is TradeStatus.OPEN)
    cancelled_trades = sum(1 for t in trades if t.status is TradeStatus.CANCELLED)

    stats = PortfolioStats(
        open_trades=open_trades,
        cancelled_trades=cancelled_trades,
        total_fees=total_fees,
    )
    total_trades = len(closed)
    if total_trades == 0:
        return stats

    pnls = [_pnl(t) for t in closed]
    wins = [p for p in pnls if p > 0]
    losses = [p for p in pnls if p < 0]

    gross_profit = sum(wins)
    gross_loss = -sum(losses)  # stored as a positive magnitude
    net_profit = sum(pnls)
    average_win = gross_profit / len(wins) if wins else 0.0
    average_loss = gross_loss / len(losses) if losses else 0.0

    if gross_loss > 0:
        profit_factor = gross_profit / gross_loss
    elif gross_profit > 0:
        profit_factor = math.inf
    else:
        profit_factor = 0.0

    stats.total_trades = total_trades
    stats.winning_trades = len(wins)
    stats.losing_trades = len(losses)
    stats.win_rate = len(wins) / total_trades * 100
    stats.gross_profit = gross_profit
    stats.gross_loss = gross_loss
    stats.net_profit = net_profit
    stats.average_win = average_win
    stats.average_loss = average_loss
    stats.largest_win = max(wins) if wins else 0.0
    stats.largest_loss = min(losses) if losses else 0.0
    stats.profit_factor = profit_factor
    stats.risk_reward_ratio = average_win / average_loss if average_loss > 0 else 0.0
    stats.expectancy = net_profit / total_trades
    return stats


def equity_curve(trades: Iterable[TradeRecord]) -> pd.DataFrame:
    """Daily realised P&L and cumulative equity from closed trades.

    A closed trade is bucketed by the date of its ``updated_at`` (the moment
    it was closed), falling back to ``created_at``. Returns a DataFrame with
    columns ['date', 'pnl', 'equity'] sorted by date.
    """
    rows: List[dict] = []
    for t in trades:
        if t.status is not TradeStatus.CLOSED:
            continue
        stamp = t.updated_at or t.created_at
        if stamp is None:
            continue
        rows.append({"date": stamp.date(), "pnl": _pnl(t)})

    if not rows:
        return pd.DataFrame(columns=["date", "pnl", "equity"])

    df = pd.DataFrame(rows)
    daily = df.groupby("date", as_index=False)["pnl"].sum().sort_values("date")
    daily["equity"] = daily["pnl"].cumsum()
    return daily.reset_index(drop=True)
